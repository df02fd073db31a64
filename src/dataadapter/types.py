"""
Type handling for procedure results and arguments.

This module provides:
- is_scalar_type: decide whether a target type hydrates from a single cell
- coerce: best-effort conversion of a cell value into a target type
- zero_value: the value a target type falls back to when coercion fails
- TypeConverter: convert Python argument values to driver-compatible values
- parameter_type: the SQLAlchemy type an argument value binds as

Coercion never raises. A cell that cannot be converted degrades to the
zero value of its target type so that one malformed column does not abort
the rest of the result set.
"""
import datetime
import decimal
import logging
import math
import types
import typing
import uuid
from collections.abc import Callable
from typing import Any, NamedTuple

import dateutil.parser
import numpy as np
import pandas as pd
import sqlalchemy as sa

__all__ = [
    'SCALAR_TYPES',
    'Coerced',
    'is_scalar_type',
    'is_struct_type',
    'unwrap_type',
    'try_coerce',
    'coerce',
    'zero_value',
    'TypeConverter',
    'parameter_type',
]

logger = logging.getLogger(__name__)

NUMPY_INT_TYPES = (np.int16, np.int32, np.int64)
NUMPY_FLOAT_TYPES = (np.float32, np.float64)

SCALAR_TYPES: tuple[type, ...] = (
    int, *NUMPY_INT_TYPES,
    float, *NUMPY_FLOAT_TYPES,
    datetime.datetime,
    uuid.UUID,
    str,
    bool,
    decimal.Decimal,
    datetime.date,
    datetime.time,
    bytes,
)

_ZERO_VALUES: dict[type, Any] = {
    int: 0,
    float: 0.0,
    str: '',
    bool: False,
    decimal.Decimal: decimal.Decimal(0),
    datetime.datetime: datetime.datetime.min,
    datetime.date: datetime.date.min,
    datetime.time: datetime.time.min,
    uuid.UUID: uuid.UUID(int=0),
    bytes: b'',
}


class Coerced(NamedTuple):
    """Outcome of a coercion attempt."""
    ok: bool
    value: Any


def _is_union(tp: Any) -> bool:
    return typing.get_origin(tp) in {typing.Union, types.UnionType}


def unwrap_type(tp: Any) -> tuple[Any, bool]:
    """Strip Annotated and Optional wrappers from a type.

    Returns the inner type and whether None is an accepted value. Unions
    with more than one non-None arm are returned as they are.
    """
    nullable = False
    while True:
        if typing.get_origin(tp) is typing.Annotated:
            tp = typing.get_args(tp)[0]
            continue
        if _is_union(tp):
            args = typing.get_args(tp)
            arms = [arg for arg in args if arg is not type(None)]
            nullable = nullable or len(arms) < len(args)
            if len(arms) == 1:
                tp = arms[0]
                continue
        return tp, nullable


def is_scalar_type(tp: Any) -> bool:
    """Return True when values of `tp` are read from the first cell of a row.

    Unspecified types (None, Any) count as scalars. Every type outside the
    fixed scalar set is a record populated column by column.
    """
    if tp is None or tp is Any:
        return True
    tp, _ = unwrap_type(tp)
    if tp is Any:
        return True
    return any(tp is scalar for scalar in SCALAR_TYPES)


is_struct_type = is_scalar_type


def zero_value(tp: Any) -> Any:
    """Return the value a field of type `tp` holds when nothing converts.
    """
    tp, nullable = unwrap_type(tp)
    if nullable or tp is None or tp is Any:
        return None
    if any(tp is t for t in NUMPY_INT_TYPES + NUMPY_FLOAT_TYPES):
        return tp(0)
    if isinstance(tp, type):
        return _ZERO_VALUES.get(tp)
    return None


# Converters - one per scalar target, each raises on mismatch

def _to_str(value: Any) -> str:
    return '' if value is None else f'{value}'


def _to_int(value: Any) -> int:
    if isinstance(value, bool | np.bool_):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, decimal.Decimal):
        return round(value)
    if isinstance(value, float | np.floating):
        return round(float(value))
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f'Cannot convert {type(value).__name__} to int')


def _numpy_int(target: type) -> Callable[[Any], Any]:
    info = np.iinfo(target)

    def convert(value: Any) -> Any:
        number = _to_int(value)
        if not info.min <= number <= info.max:
            raise OverflowError(f'{number} out of range for {target.__name__}')
        return target(number)

    return convert


def _to_float(value: Any) -> float:
    if isinstance(value, int | float | decimal.Decimal | np.number | np.bool_):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f'Cannot convert {type(value).__name__} to float')


def _numpy_float(target: type) -> Callable[[Any], Any]:
    return lambda value: target(_to_float(value))


def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            raise ValueError('NaT has no datetime value')
        return pd.Timestamp(value).to_pydatetime()
    if isinstance(value, str):
        return dateutil.parser.parse(value)
    raise TypeError(f'Cannot convert {type(value).__name__} to datetime')


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return _to_datetime(value).date()


def _to_time(value: Any) -> datetime.time:
    if isinstance(value, datetime.time):
        return value
    if isinstance(value, datetime.datetime):
        return value.time()
    if isinstance(value, datetime.timedelta):
        return (datetime.datetime.min + value).time()
    if isinstance(value, str):
        return datetime.time.fromisoformat(value.strip())
    raise TypeError(f'Cannot convert {type(value).__name__} to time')


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, bytes | bytearray) and len(value) == 16:
        return uuid.UUID(bytes=bytes(value))
    if isinstance(value, str):
        return uuid.UUID(value.strip())
    raise TypeError(f'Cannot convert {type(value).__name__} to UUID')


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool | np.bool_):
        return bool(value)
    if isinstance(value, int | float | decimal.Decimal | np.number):
        return bool(value != 0)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in {'true', 'false'}:
            return text == 'true'
        raise ValueError(f'Not a boolean: {value!r}')
    raise TypeError(f'Cannot convert {type(value).__name__} to bool')


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, bool | int | np.integer):
        return decimal.Decimal(int(value))
    if isinstance(value, float | np.floating):
        return decimal.Decimal(str(float(value)))
    if isinstance(value, str):
        return decimal.Decimal(value.strip())
    raise TypeError(f'Cannot convert {type(value).__name__} to Decimal')


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, bytearray | memoryview):
        return bytes(value)
    raise TypeError(f'Cannot convert {type(value).__name__} to bytes')


_CONVERTERS: dict[type, Callable[[Any], Any]] = {
    int: _to_int,
    float: _to_float,
    datetime.datetime: _to_datetime,
    datetime.date: _to_date,
    datetime.time: _to_time,
    uuid.UUID: _to_uuid,
    bool: _to_bool,
    decimal.Decimal: _to_decimal,
    bytes: _to_bytes,
}
_CONVERTERS.update({t: _numpy_int(t) for t in NUMPY_INT_TYPES})
_CONVERTERS.update({t: _numpy_float(t) for t in NUMPY_FLOAT_TYPES})


def _generic_converter(target: Any) -> Callable[[Any], Any]:
    origin = typing.get_origin(target) or target

    def convert(value: Any) -> Any:
        if isinstance(origin, type) and isinstance(value, origin):
            return value
        if not callable(origin):
            raise TypeError(f'Cannot convert to {target!r}')
        return origin(value)

    return convert


def _converter(target: Any) -> Callable[[Any], Any]:
    if isinstance(target, type) and target in _CONVERTERS:
        return _CONVERTERS[target]
    return _generic_converter(target)


def try_coerce(target: Any, value: Any) -> Coerced:
    """Attempt to convert a cell value to `target`.

    Returns Coerced(ok=False, ...) instead of raising. A None target never
    converts; str always does; Any passes the value through untouched.
    """
    if target is str:
        return Coerced(True, _to_str(value))
    if target is Any:
        return Coerced(True, value)
    if target is None:
        return Coerced(False, None)

    inner, nullable = unwrap_type(target)
    if value is None:
        return Coerced(nullable, None)
    if inner is str:
        return Coerced(True, _to_str(value))
    if inner is Any:
        return Coerced(True, value)

    if _is_union(inner):
        for arm in typing.get_args(inner):
            if arm is type(None):
                continue
            result = try_coerce(arm, value)
            if result.ok:
                return result
        return Coerced(False, None)

    try:
        return Coerced(True, _converter(inner)(value))
    except Exception as err:
        logger.debug(f'Could not coerce {value!r} to {target!r}: {err}')
        return Coerced(False, None)


def coerce(target: Any, value: Any) -> Any:
    """Convert a cell value to `target`, falling back to its zero value.
    """
    ok, result = try_coerce(target, value)
    return result if ok else zero_value(target)


# Type Converter - Handles Python -> Database argument conversion

class TypeConverter:
    """Convert procedure arguments to values every DB-API driver accepts.

    Handles NumPy and Pandas scalars; NaN-like values become NULL.
    """

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single argument value."""
        if value is None:
            return None

        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None

        if value is pd.NaT or value is pd.NA:
            return None

        if isinstance(value, np.datetime64):
            if np.isnat(value):
                return None
            return pd.Timestamp(value).to_pydatetime()

        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()

        if isinstance(value, np.bool_):
            return bool(value)

        if isinstance(value, np.floating):
            return None if np.isnan(value) else value.item()

        if isinstance(value, np.integer):
            return value.item()

        return value

    @staticmethod
    def convert_params(params: Any) -> Any:
        """Convert a collection of arguments."""
        if params is None:
            return None

        if isinstance(params, dict):
            return {k: TypeConverter.convert_value(v) for k, v in params.items()}

        if isinstance(params, list | tuple):
            return type(params)(TypeConverter.convert_value(v) for v in params)

        return TypeConverter.convert_value(params)


def parameter_type(value: Any) -> sa.types.TypeEngine:
    """Return the SQLAlchemy type an argument value binds as.

    Integers pick the narrowest of SMALLINT, INTEGER and BIGINT that holds
    them; unrecognised values bind as strings.
    """
    if isinstance(value, bool):
        return sa.Boolean()
    if isinstance(value, int):
        if -2**15 <= value < 2**15:
            return sa.SmallInteger()
        if -2**31 <= value < 2**31:
            return sa.Integer()
        return sa.BigInteger()
    if isinstance(value, float):
        return sa.Float()
    if isinstance(value, decimal.Decimal):
        return sa.Numeric()
    if isinstance(value, bytes | bytearray | memoryview):
        return sa.LargeBinary()
    if isinstance(value, datetime.datetime):
        return sa.DateTime()
    if isinstance(value, datetime.date):
        return sa.Date()
    if isinstance(value, datetime.time):
        return sa.Time()
    if isinstance(value, uuid.UUID):
        return sa.Uuid()
    return sa.String()
