"""
Procedure strategy factory for dialect-specific invocation.
"""
from dataadapter.exceptions import ValidationError
from dataadapter.strategy.base import _STRATEGY_REGISTRY
from dataadapter.strategy.base import Invocation as Invocation
from dataadapter.strategy.base import ProcedureStrategy as ProcedureStrategy
from dataadapter.strategy.base import register_strategy as register_strategy
from dataadapter.strategy.postgres import PostgresStrategy as PostgresStrategy
from dataadapter.strategy.sqlserver import SQLServerStrategy as SQLServerStrategy


def get_strategy(dialect: str) -> ProcedureStrategy:
    """Get strategy instance for a dialect name."""
    if dialect not in _STRATEGY_REGISTRY:
        available = list(_STRATEGY_REGISTRY.keys())
        raise ValidationError(f'Unsupported dialect: {dialect}. Available: {available}')
    return _STRATEGY_REGISTRY[dialect]()


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_STRATEGY_REGISTRY.keys())


def is_supported_dialect(dialect: str) -> bool:
    """Check if a dialect is supported."""
    return dialect in _STRATEGY_REGISTRY
