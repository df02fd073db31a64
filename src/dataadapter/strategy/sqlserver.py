"""
SQL Server-specific strategy implementation.

Procedures are called with EXEC and named parameter assignments, which
works for both result-returning and side-effecting procedures.
"""
from dataadapter.strategy.base import ProcedureStrategy, register_strategy


@register_strategy('mssql')
class SQLServerStrategy(ProcedureStrategy):
    """SQL Server procedure calls"""

    def query_sql(self, procedure, bindings):
        """EXEC dbo.proc @a=?, @b=?"""
        if not bindings:
            return f'EXEC {procedure}'
        assignments = ', '.join(f'@{name}={placeholder}' for name, placeholder in bindings)
        return f'EXEC {procedure} {assignments}'
