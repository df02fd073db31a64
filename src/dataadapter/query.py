"""
Stored procedure execution.

Every call resolves its connection from the registry (loading the default
configuration on first use), opens one connection, runs one procedure and
closes the connection before returning. Result sets are read completely
into memory.
"""
import logging
from typing import Any, TypeVar

import pandas as pd

from dataadapter.connection import connect
from dataadapter.hydration import row_hydrator
from dataadapter.registry import get_registry

__all__ = ['query_many', 'query_one', 'execute', 'query_frame']

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _connection_string(connection: str | None) -> str:
    registry = get_registry()
    registry.ensure_configured()
    return registry.resolve(connection)


def query_many(target: type[T], procedure: str, arguments: dict[str, Any] | None = None,
               connection: str | None = None) -> list[T]:
    """Run a procedure and convert every row to `target`.

    Scalar targets take the first column of each row; record targets are
    filled by column name. None arguments are passed as NULL.
    """
    connection_string = _connection_string(connection)
    with connect(connection_string) as cn, cn.call(procedure, arguments) as cursor:
        hydrate_row = row_hydrator(target)
        rows = [hydrate_row(row) for row in cursor]
    logger.debug(f'{procedure} returned {len(rows)} rows')
    return rows


def query_one(target: type[T], procedure: str, arguments: dict[str, Any] | None = None,
              connection: str | None = None) -> T | None:
    """Run a procedure and return its first converted row, or None.
    """
    rows = query_many(target, procedure, arguments, connection)
    return rows[0] if rows else None


def execute(procedure: str, arguments: dict[str, Any] | None = None,
            connection: str | None = None) -> None:
    """Run a procedure for its side effects.
    """
    connection_string = _connection_string(connection)
    with connect(connection_string) as cn, cn.call(procedure, arguments, returns_rows=False):
        pass
    logger.debug(f'Executed {procedure}')


def query_frame(procedure: str, arguments: dict[str, Any] | None = None,
                connection: str | None = None) -> pd.DataFrame:
    """Run a procedure and load its rows into a DataFrame without conversion.

    Always returns a DataFrame, with columns preserved for empty results.
    """
    connection_string = _connection_string(connection)
    with connect(connection_string) as cn, cn.call(procedure, arguments) as cursor:
        columns = cursor.get_names()
        data = [row.get_values() for row in cursor]
    if not data:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame.from_records(data, columns=columns)
