"""
Row cursor over a DB-API 2.0 cursor (PEP-249).

The cursor exposes the current result row by position and column name and
advances with read(), which returns False once the result set is exhausted.
"""
import logging
import time
from collections.abc import Iterator
from functools import wraps
from typing import Any

from dataadapter.types import TypeConverter, parameter_type

logger = logging.getLogger(__name__)


def describe_params(params: Any) -> Any:
    """Summarise bound parameters by SQLAlchemy type name for logging."""
    if isinstance(params, dict):
        return {k: type(parameter_type(v)).__name__ for k, v in params.items()}
    return [type(parameter_type(v)).__name__ for v in params or ()]


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, params: Any = None, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {params}\ntypes: {describe_params(params)}')
        try:
            return func(self, operation, params, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {params}')
            raise
        finally:
            elapsed = time.time() - start
            if self.connwrapper is not None:
                self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class RowCursor:
    """Positional and named access to the current row of a result set.

    Usage:
        cursor.execute(sql, params)
        while cursor.read():
            cursor.get_name(0), cursor.get_value(0)
    """

    def __init__(self, cursor: Any, connection_wrapper: Any = None) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying DB-API cursor
            connection_wrapper: Connection that tracks call statistics, if any
        """
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self._row: Any = None

    def __iter__(self) -> Iterator['RowCursor']:
        """Advance through the remaining rows, yielding self on each."""
        while self.read():
            yield self

    @property
    def description(self) -> list[tuple] | None:
        """Column descriptions for the current result set."""
        return self.dbapi_cursor.description

    @property
    def field_count(self) -> int:
        """Number of columns in the current result set."""
        return len(self.description or ())

    def get_name(self, i: int) -> str:
        """Name of column `i`."""
        return self.description[i][0]

    def get_names(self) -> list[str]:
        return [desc[0] for desc in self.description or ()]

    def get_value(self, i: int) -> Any:
        """Value of column `i` in the current row."""
        return self._row[i]

    def get_values(self) -> tuple:
        return tuple(self._row)

    def read(self) -> bool:
        """Move to the next row; False at the end of the result set."""
        if self.description is None:
            self._row = None
            return False
        self._row = self.dbapi_cursor.fetchone()
        return self._row is not None

    def nextset(self) -> bool | None:
        """Move to the next result set.

        Returns None for drivers that don't support multiple result sets.
        """
        if hasattr(self.dbapi_cursor, 'nextset'):
            return self.dbapi_cursor.nextset()
        return None

    def skip_empty_result_sets(self) -> None:
        """Skip leading result sets that carry no columns.

        SQL Server reports row counts of statements inside a procedure as
        column-less result sets ahead of the rows selected.
        """
        while self.description is None and self.nextset():
            pass

    @dumpsql
    def execute(self, operation: str, params: Any = None) -> None:
        """Execute a statement with driver-compatible parameters."""
        params = TypeConverter.convert_params(params)
        if params:
            self.dbapi_cursor.execute(operation, params)
        else:
            self.dbapi_cursor.execute(operation)

    def close(self) -> None:
        """Close cursor."""
        self.dbapi_cursor.close()
