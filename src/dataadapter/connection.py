"""
Database connection handling with SQLAlchemy.

This module provides:
1. A thread-safe registry of SQLAlchemy engines keyed by connection string
2. The `connect()` function that opens one connection per procedure call
3. The `ProcedureConnection` class that runs a procedure on the raw DB-API
   connection and releases the cursor and connection on every path

Engines use NullPool, so closing a ProcedureConnection closes the driver
connection. Statements run on the driver cursor, so execution errors reach
the caller as the driver raised them.
"""
import atexit
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from dataadapter.cursor import RowCursor
from dataadapter.exceptions import ConnectionFailure
from dataadapter.strategy import ProcedureStrategy, get_strategy

__all__ = [
    'ProcedureConnection',
    'connect',
    'get_engine',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def get_engine(connection_string: str,
               engine_factory: Callable[..., Engine] = sa.create_engine) -> Engine:
    """Get or create a SQLAlchemy engine for a connection string.
    """
    with _engine_registry_lock:
        if connection_string in _engine_registry:
            return _engine_registry[connection_string]

        engine = engine_factory(connection_string, poolclass=NullPool)
        _engine_registry[connection_string] = engine
        logger.debug(f'Created new engine for {engine.url.render_as_string(hide_password=True)}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class ProcedureConnection:
    """Wraps a SQLAlchemy connection for the span of one procedure call

    This class:
    1. Tracks query execution counts and timing
    2. Builds the dialect's procedure invocation
    3. Commits after a successful call and rolls back after a failed one
    4. Supports context manager protocol for guaranteed release
    """

    def __init__(self, sa_connection: sa.engine.Connection) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.dbapi_connection = sa_connection.connection
        self.dialect = sa_connection.dialect.name
        self.paramstyle = sa_connection.dialect.paramstyle
        self.calls = 0
        self.time = 0

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def strategy(self) -> ProcedureStrategy:
        return get_strategy(self.dialect)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def cursor(self) -> RowCursor:
        return RowCursor(self.dbapi_connection.cursor(), self)

    @contextmanager
    def call(self, procedure: str, arguments: dict[str, Any] | None = None,
             returns_rows: bool = True) -> Iterator[RowCursor]:
        """Execute a procedure and yield the cursor positioned before its rows.

        The call is committed when the block completes and rolled back when
        it raises; the cursor is closed either way.
        """
        invocation = self.strategy.build_invocation(
            procedure, arguments, self.paramstyle,
            self.sa_connection.dialect.identifier_preparer, returns_rows)
        cursor = self.cursor()
        try:
            cursor.execute(invocation.sql, invocation.params)
            if returns_rows:
                cursor.skip_empty_result_sets()
            yield cursor
            self.dbapi_connection.commit()
        except Exception:
            self.rollback()
            raise
        finally:
            cursor.close()

    def rollback(self) -> None:
        """Roll back, logging rather than masking the error being handled.
        """
        try:
            self.dbapi_connection.rollback()
        except Exception as err:
            logger.debug(f'Rollback failed: {err}')

    def close(self) -> None:
        """Close the SQLAlchemy connection and its driver connection
        """
        if not self.sa_connection.closed:
            self.sa_connection.close()
            logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s')


def connect(connection_string: str) -> ProcedureConnection:
    """Open a connection for one procedure call.

    Raises ConnectionFailure when the URL is invalid, the driver is missing
    or the database refuses the connection.
    """
    try:
        engine = get_engine(connection_string)
        sa_connection = engine.connect()
    except (sa.exc.SQLAlchemyError, ImportError) as err:
        raise ConnectionFailure(f'Unable to open connection: {err}') from err
    return ProcedureConnection(sa_connection)
