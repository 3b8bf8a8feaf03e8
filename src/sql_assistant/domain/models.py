"""Domain entities and value objects.

These are the core data structures of the SQL assistant domain,
independent of any infrastructure or framework concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Connection configuration
# ---------------------------------------------------------------------------

Dialect = Literal["mssql", "sqlite"]


class ConnectionConfig(BaseModel):
    """Parameters for one database connection.

    Frozen once accepted: a reconnect replaces the whole config instead of
    patching it.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    server: str = Field(default="", description="Database host name")
    database: str = Field(description="Database name (file path for sqlite)")
    user: str = Field(default="", description="Login name")
    password: str = Field(default="", repr=False, description="Login password")
    port: int = Field(default=1433, ge=1, le=65535)
    encrypt: bool = Field(default=True, description="Encrypt the connection")
    trust_server_certificate: bool = Field(
        default=False,
        alias="trustServerCertificate",
        description="Skip server certificate validation",
    )
    dialect: Dialect = Field(default="mssql", description="Database engine")
    odbc_driver: str = Field(
        default="ODBC Driver 18 for SQL Server",
        alias="odbcDriver",
        description="ODBC driver name used for SQL Server connections",
    )


class SessionState(str, Enum):
    """States of the connection lifecycle."""

    DISCONNECTED = "disconnected"
    TESTING = "testing"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ConnectionTestResult:
    ok: bool
    message: str


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    state: SessionState
    database: str | None = None
    server: str | None = None


# ---------------------------------------------------------------------------
# Schema metadata
# ---------------------------------------------------------------------------


@dataclass
class ColumnInfo:
    name: str
    data_type: str
    max_length: int | None = None
    nullable: bool = True
    default: str | None = None
    primary_key: bool = False
    foreign_keys: list[str] = field(default_factory=list)


@dataclass
class TableInfo:
    schema: str
    name: str
    row_count: int | None = None
    columns: list[ColumnInfo] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name


@dataclass(frozen=True)
class SchemaDocument:
    """Rendered schema text handed to the agent as tool context."""

    text: str
    table_count: int
    fallback: bool = False

    def __str__(self) -> str:
        return self.text


# ---------------------------------------------------------------------------
# Query results (tagged union: never raised)
# ---------------------------------------------------------------------------

FailureCode = Literal["not_initialized", "timeout", "execution_error"]


@dataclass(frozen=True)
class QuerySuccess:
    rows: list[dict[str, Any]]
    rows_affected: int
    query: str
    returned_rows: bool = True

    success: Literal[True] = True


@dataclass(frozen=True)
class QueryFailure:
    error: str
    query: str
    code: FailureCode = "execution_error"

    success: Literal[False] = False


QueryResult = QuerySuccess | QueryFailure


# ---------------------------------------------------------------------------
# Shared DTO (used by both use-case and presentation layers)
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    """A single message in the conversation (used internally by the use case)."""

    role: str = Field(description="Message role: 'user' or 'assistant'")
    content: str = Field(description="Message content")
