"""
PostgreSQL-specific strategy implementation.

Rows come from set-returning functions, selected from like a table.
Procedures without results are run with CALL. Both use named notation.
"""
from dataadapter.strategy.base import ProcedureStrategy, register_strategy


def _arguments(bindings):
    return ', '.join(f'{name} => {placeholder}' for name, placeholder in bindings)


@register_strategy('postgresql')
class PostgresStrategy(ProcedureStrategy):
    """PostgreSQL function and procedure calls"""

    def query_sql(self, procedure, bindings):
        return f'SELECT * FROM {procedure}({_arguments(bindings)})'

    def execute_sql(self, procedure, bindings):
        return f'CALL {procedure}({_arguments(bindings)})'
