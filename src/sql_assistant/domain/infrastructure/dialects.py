"""Per-dialect SQL text and engine options.

Everything that differs between SQL Server and SQLite lives here: the async
driver URL, pool arguments, the catalog queries used for introspection and
the usage guidelines shown to the agent. The rest of the gateway is dialect
agnostic.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy.engine import URL

from sql_assistant.domain.models import ConnectionConfig

LIVENESS_QUERY = "SELECT 1 AS test"

# ---------------------------------------------------------------------------
# SQL Server
# ---------------------------------------------------------------------------

_MSSQL_COLUMNS_FULL = """\
SELECT
    c.TABLE_SCHEMA AS schema_name,
    c.TABLE_NAME AS table_name,
    c.COLUMN_NAME AS column_name,
    c.DATA_TYPE AS data_type,
    c.CHARACTER_MAXIMUM_LENGTH AS max_length,
    c.IS_NULLABLE AS is_nullable,
    c.COLUMN_DEFAULT AS column_default,
    c.ORDINAL_POSITION AS ordinal_position,
    CASE WHEN pk.COLUMN_NAME IS NOT NULL THEN 1 ELSE 0 END AS is_primary_key,
    fk.referenced AS foreign_key
FROM INFORMATION_SCHEMA.COLUMNS AS c
JOIN INFORMATION_SCHEMA.TABLES AS t
    ON t.TABLE_SCHEMA = c.TABLE_SCHEMA
    AND t.TABLE_NAME = c.TABLE_NAME
    AND t.TABLE_TYPE = 'BASE TABLE'
LEFT JOIN (
    SELECT ku.TABLE_SCHEMA, ku.TABLE_NAME, ku.COLUMN_NAME
    FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS AS tc
    JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE AS ku
        ON ku.CONSTRAINT_SCHEMA = tc.CONSTRAINT_SCHEMA
        AND ku.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
    WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
) AS pk
    ON pk.TABLE_SCHEMA = c.TABLE_SCHEMA
    AND pk.TABLE_NAME = c.TABLE_NAME
    AND pk.COLUMN_NAME = c.COLUMN_NAME
LEFT JOIN (
    SELECT
        OBJECT_SCHEMA_NAME(fkc.parent_object_id) AS table_schema,
        OBJECT_NAME(fkc.parent_object_id) AS table_name,
        pc.name AS column_name,
        OBJECT_SCHEMA_NAME(fkc.referenced_object_id) + '.'
            + OBJECT_NAME(fkc.referenced_object_id) + '.' + rc.name AS referenced
    FROM sys.foreign_key_columns AS fkc
    JOIN sys.columns AS pc
        ON pc.object_id = fkc.parent_object_id AND pc.column_id = fkc.parent_column_id
    JOIN sys.columns AS rc
        ON rc.object_id = fkc.referenced_object_id AND rc.column_id = fkc.referenced_column_id
) AS fk
    ON fk.table_schema = c.TABLE_SCHEMA
    AND fk.table_name = c.TABLE_NAME
    AND fk.column_name = c.COLUMN_NAME
ORDER BY c.TABLE_SCHEMA, c.TABLE_NAME, c.ORDINAL_POSITION
"""

_MSSQL_COLUMNS_FALLBACK = """\
SELECT
    c.TABLE_SCHEMA AS schema_name,
    c.TABLE_NAME AS table_name,
    c.COLUMN_NAME AS column_name,
    c.DATA_TYPE AS data_type,
    c.CHARACTER_MAXIMUM_LENGTH AS max_length,
    c.IS_NULLABLE AS is_nullable,
    c.COLUMN_DEFAULT AS column_default,
    c.ORDINAL_POSITION AS ordinal_position,
    0 AS is_primary_key,
    NULL AS foreign_key
FROM INFORMATION_SCHEMA.COLUMNS AS c
JOIN INFORMATION_SCHEMA.TABLES AS t
    ON t.TABLE_SCHEMA = c.TABLE_SCHEMA
    AND t.TABLE_NAME = c.TABLE_NAME
    AND t.TABLE_TYPE = 'BASE TABLE'
ORDER BY c.TABLE_SCHEMA, c.TABLE_NAME, c.ORDINAL_POSITION
"""

_MSSQL_ROW_COUNTS = """\
SELECT
    s.name AS schema_name,
    t.name AS table_name,
    SUM(p.rows) AS row_count
FROM sys.tables AS t
JOIN sys.schemas AS s ON s.schema_id = t.schema_id
JOIN sys.partitions AS p ON p.object_id = t.object_id AND p.index_id IN (0, 1)
GROUP BY s.name, t.name
"""

_MSSQL_GUIDELINES = """\
SQL Server (T-SQL) query guidelines:
- Use TOP N instead of LIMIT N (e.g. "SELECT TOP 10 * FROM dbo.customers")
- Use square brackets [name] for tables/columns with spaces or special characters
- Use schema.table notation (e.g. dbo.customers)
- Date functions: GETDATE(), DATEPART(), DATEADD(), DATEDIFF()
- String functions: LEN(), SUBSTRING(), CHARINDEX(), CONCAT()
- Use single quotes for string literals
- For pagination use OFFSET ... ROWS FETCH NEXT ... ROWS ONLY
- Common data types: VARCHAR, NVARCHAR, INT, BIGINT, DECIMAL, DATETIME, BIT"""

# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

_SQLITE_COLUMNS_FULL = """\
SELECT
    'main' AS schema_name,
    m.name AS table_name,
    p.name AS column_name,
    p.type AS data_type,
    NULL AS max_length,
    CASE WHEN p."notnull" = 0 THEN 'YES' ELSE 'NO' END AS is_nullable,
    p.dflt_value AS column_default,
    p.cid + 1 AS ordinal_position,
    CASE WHEN p.pk > 0 THEN 1 ELSE 0 END AS is_primary_key,
    CASE
        WHEN f."table" IS NULL THEN NULL
        WHEN f."to" IS NULL THEN 'main.' || f."table"
        ELSE 'main.' || f."table" || '.' || f."to"
    END AS foreign_key
FROM sqlite_master AS m
JOIN pragma_table_info(m.name) AS p
LEFT JOIN pragma_foreign_key_list(m.name) AS f ON f."from" = p.name
WHERE m.type = 'table' AND m.name NOT LIKE 'sqlite_%'
ORDER BY schema_name, table_name, ordinal_position, foreign_key
"""

_SQLITE_COLUMNS_FALLBACK = """\
SELECT
    'main' AS schema_name,
    m.name AS table_name,
    p.name AS column_name,
    p.type AS data_type,
    NULL AS max_length,
    CASE WHEN p."notnull" = 0 THEN 'YES' ELSE 'NO' END AS is_nullable,
    p.dflt_value AS column_default,
    p.cid + 1 AS ordinal_position,
    0 AS is_primary_key,
    NULL AS foreign_key
FROM sqlite_master AS m
JOIN pragma_table_info(m.name) AS p
WHERE m.type = 'table' AND m.name NOT LIKE 'sqlite_%'
ORDER BY schema_name, table_name, ordinal_position
"""

_SQLITE_GUIDELINES = """\
SQLite query guidelines:
- Use LIMIT N to restrict rows (e.g. "SELECT * FROM customer LIMIT 10")
- Quote identifiers with double quotes when they are keywords or contain spaces (e.g. "order")
- Date functions: date(), datetime(), strftime(), julianday()
- Concatenate strings with ||
- Use single quotes for string literals
- For pagination use LIMIT ... OFFSET ...
- Types are dynamic: INTEGER, REAL, TEXT, BLOB, NUMERIC"""


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class DialectProfile:
    """SQL text and engine options for one database engine."""

    name: str
    display_name: str
    columns_query: str
    fallback_columns_query: str
    guidelines: str

    def build_url(self, config: ConnectionConfig) -> URL:
        if self.name == "sqlite":
            return URL.create("sqlite+aiosqlite", database=config.database)
        return URL.create(
            "mssql+aioodbc",
            username=config.user or None,
            password=config.password or None,
            host=config.server,
            port=config.port,
            database=config.database,
            query={
                "driver": config.odbc_driver,
                "Encrypt": "yes" if config.encrypt else "no",
                "TrustServerCertificate": "yes" if config.trust_server_certificate else "no",
            },
        )

    def engine_options(self, *, pool_size: int, pool_timeout: float, connect_timeout: float) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``.

        aiosqlite does not accept queue-pool sizing, so SQLite only gets the
        driver timeout.
        """
        if self.name == "sqlite":
            return {"connect_args": {"timeout": connect_timeout}}
        return {
            "pool_size": pool_size,
            "max_overflow": 0,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
            "connect_args": {"timeout": int(connect_timeout)},
        }

    def row_count_query(self, tables: Sequence[tuple[str, str]]) -> str | None:
        """Return the approximate row-count query, or None when there is nothing to count."""
        if self.name != "sqlite":
            return _MSSQL_ROW_COUNTS
        if not tables:
            return None
        selects = [
            f"SELECT {_quote_literal(schema)} AS schema_name, {_quote_literal(table)} AS table_name, "
            f"COUNT(*) AS row_count FROM {_quote_identifier(table)}"
            for schema, table in tables
        ]
        return "\nUNION ALL\n".join(selects)


MSSQL = DialectProfile(
    name="mssql",
    display_name="SQL Server",
    columns_query=_MSSQL_COLUMNS_FULL,
    fallback_columns_query=_MSSQL_COLUMNS_FALLBACK,
    guidelines=_MSSQL_GUIDELINES,
)

SQLITE = DialectProfile(
    name="sqlite",
    display_name="SQLite",
    columns_query=_SQLITE_COLUMNS_FULL,
    fallback_columns_query=_SQLITE_COLUMNS_FALLBACK,
    guidelines=_SQLITE_GUIDELINES,
)

_PROFILES = {profile.name: profile for profile in (MSSQL, SQLITE)}


def get_dialect(name: str) -> DialectProfile:
    """Look up a dialect profile by name ('mssql' or 'sqlite')."""
    try:
        return _PROFILES[name]
    except KeyError:
        raise ValueError(f"Unsupported dialect: {name!r}. Supported: {', '.join(_PROFILES)}") from None
