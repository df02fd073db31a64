"""
Base strategy interface for stored procedure invocation.

Each concrete strategy renders the statement that calls a procedure in
its dialect. Argument binding follows the DB-API paramstyle of the driver
so the statement can be executed on the raw driver cursor, which keeps
driver errors unwrapped.
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from dataadapter.exceptions import ValidationError

# Registry of dialect name -> strategy class
_STRATEGY_REGISTRY: dict[str, type['ProcedureStrategy']] = {}

_PARAMETER_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

NAMED_PARAMSTYLES = {'named', 'pyformat'}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mssql')
        class SQLServerStrategy(ProcedureStrategy):
            ...
    """
    def decorator(cls: type['ProcedureStrategy']) -> type['ProcedureStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


@dataclass
class Invocation:
    """A rendered procedure call ready for cursor.execute()."""
    procedure: str
    sql: str
    params: dict[str, Any] | list[Any] = field(default_factory=list)
    returns_rows: bool = True


class ProcedureStrategy(ABC):
    """Base class for dialect-specific procedure calls.

    Set `paramstyle` on a subclass to bind with a style other than the
    driver's default.
    """

    paramstyle: str | None = None

    @staticmethod
    def parameter_name(name: str) -> str:
        """Normalize an argument name; a leading '@' is dropped."""
        normalized = name[1:] if name.startswith('@') else name
        if not _PARAMETER_NAME.match(normalized):
            raise ValidationError(f'Invalid parameter name: {name!r}')
        return normalized

    @staticmethod
    def placeholder(paramstyle: str, name: str, position: int) -> str:
        """Render the placeholder for one argument in a paramstyle."""
        if paramstyle == 'qmark':
            return '?'
        if paramstyle == 'format':
            return '%s'
        if paramstyle == 'numeric':
            return f':{position}'
        if paramstyle == 'named':
            return f':{name}'
        if paramstyle == 'pyformat':
            return f'%({name})s'
        raise ValidationError(f'Unsupported paramstyle: {paramstyle}')

    def quote_procedure(self, procedure: str, preparer: Any) -> str:
        """Quote each dotted part of a procedure name that needs it.

        Parts already wrapped in the dialect's quote characters are kept.
        """
        parts = procedure.split('.')
        if not all(part.strip() for part in parts):
            raise ValidationError(f'Invalid procedure name: {procedure!r}')
        quoted = []
        for part in parts:
            if part.startswith(preparer.initial_quote) and part.endswith(preparer.final_quote):
                quoted.append(part)
            else:
                quoted.append(preparer.quote(part))
        return '.'.join(quoted)

    def bind(self, arguments: dict[str, Any] | None,
             paramstyle: str) -> tuple[list[tuple[str, str]], dict[str, Any] | list[Any]]:
        """Pair each argument name with its placeholder and collect the values.

        None values are bound as NULL parameters, never dropped.
        """
        paramstyle = self.paramstyle or paramstyle
        named = paramstyle in NAMED_PARAMSTYLES
        bindings: list[tuple[str, str]] = []
        params: dict[str, Any] | list[Any] = {} if named else []
        for position, (key, value) in enumerate((arguments or {}).items(), start=1):
            name = self.parameter_name(key)
            if any(name == bound for bound, _ in bindings):
                raise ValidationError(f'Duplicate parameter name: {name!r}')
            bindings.append((name, self.placeholder(paramstyle, name, position)))
            if named:
                params[name] = value
            else:
                params.append(value)
        return bindings, params

    @abstractmethod
    def query_sql(self, procedure: str, bindings: list[tuple[str, str]]) -> str:
        """Statement that calls a procedure and returns its rows."""

    def execute_sql(self, procedure: str, bindings: list[tuple[str, str]]) -> str:
        """Statement that calls a procedure for its side effects."""
        return self.query_sql(procedure, bindings)

    def build_invocation(self, procedure: str, arguments: dict[str, Any] | None,
                         paramstyle: str, preparer: Any,
                         returns_rows: bool = True) -> Invocation:
        """Render the call of `procedure` with named input arguments."""
        quoted = self.quote_procedure(procedure, preparer)
        bindings, params = self.bind(arguments, paramstyle)
        if returns_rows:
            sql = self.query_sql(quoted, bindings)
        else:
            sql = self.execute_sql(quoted, bindings)
        return Invocation(procedure=procedure, sql=sql, params=params,
                          returns_rows=returns_rows)
