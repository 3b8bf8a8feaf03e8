"""Domain service interfaces (ports).

These protocols define the contracts that infrastructure implementations
must satisfy.  The application layer depends on these abstractions,
not on concrete classes.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sql_assistant.domain.models import (
    ConnectionConfig,
    ConnectionStatus,
    ConnectionTestResult,
    QueryResult,
    SchemaDocument,
)

# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------


@runtime_checkable
class IConnectionManager(Protocol):
    """Interface for the single-session connection lifecycle.

    Implementations: ConnectionManager (SQLAlchemy asyncio engine).
    """

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTestResult: ...

    async def connect(self, config: ConnectionConfig) -> SchemaDocument: ...

    async def disconnect(self) -> bool: ...

    def status(self) -> ConnectionStatus: ...


# ---------------------------------------------------------------------------
# Query execution
# ---------------------------------------------------------------------------


@runtime_checkable
class IQueryExecutor(Protocol):
    """Interface for SQL execution that never raises.

    Implementations: QueryExecutor.
    """

    async def execute(self, sql: str) -> QueryResult: ...
