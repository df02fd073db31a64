"""
Exception classes for the data adapter.

Package errors derive from DatabaseError. Driver errors raised while a
procedure executes are never wrapped; ExecutionError groups their base
classes so callers can catch them in one clause and still inspect the
vendor-specific error.
"""
import sqlite3

import psycopg

try:
    import pyodbc
except ImportError:
    pyodbc = None


class DatabaseError(Exception):
    """Base class for all data adapter errors.
    """


class ConfigurationError(DatabaseError):
    """No connections could be configured.
    """


class ConnectionNotFoundError(DatabaseError):
    """A named connection was requested but never registered.
    """


class ConnectionFailure(DatabaseError):
    """Error opening a database connection.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


DbConnectionError = (
    ConnectionFailure,
    ConnectionNotFoundError,
    )

ExecutionError = (
    sqlite3.Error,
    psycopg.Error,
    *((pyodbc.Error,) if pyodbc is not None else ()),
    )
