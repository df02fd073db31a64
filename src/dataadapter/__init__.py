"""
Stored procedure data adapter for SQL Server and PostgreSQL.

Procedures are called by name with a dict of arguments and their rows come
back as typed values or populated objects:

    import dataadapter as da

    da.configure('appsettings.json')
    users = da.query_many(User, 'dbo.GetUsers', {'active': True})
    total = da.query_one(int, 'dbo.CountUsers')
    da.execute('dbo.DeleteUser', {'id': 7})

Connections are read from the "ConnectionStrings" object of the JSON
document, on first use when configure() was never called.
"""
__version__ = '0.1.0'

from dataadapter.exceptions import ConfigurationError, ConnectionFailure
from dataadapter.exceptions import ConnectionNotFoundError, DatabaseError
from dataadapter.exceptions import DbConnectionError, ExecutionError
from dataadapter.exceptions import ValidationError
from dataadapter.options import AdapterOptions
from dataadapter.query import execute, query_frame, query_many, query_one
from dataadapter.registry import get_registry
from dataadapter.strategy import ProcedureStrategy, register_strategy
from dataadapter.types import coerce, is_scalar_type, is_struct_type


def configure(path: str | None = None) -> None:
    """Load connection strings from a JSON document.

    Names already registered are kept. Defaults to appsettings.json.
    """
    get_registry().load(path)


def register_connection(name: str, connection_string: str) -> None:
    """Register a connection string (a SQLAlchemy URL) under a name.

    Unlike configure(), this replaces an existing connection of that name.
    """
    get_registry().register(name, connection_string)


__all__ = [
    'configure',
    'register_connection',
    'query_many',
    'query_one',
    'execute',
    'query_frame',
    'is_scalar_type',
    'is_struct_type',
    'coerce',
    'register_strategy',
    'ProcedureStrategy',
    'AdapterOptions',
    'DatabaseError',
    'ConfigurationError',
    'ConnectionNotFoundError',
    'ConnectionFailure',
    'DbConnectionError',
    'ExecutionError',
    'ValidationError',
]
