"""Schema introspection: catalog metadata -> structured tables -> schema text.

The rendered document is the only view of the database the agent gets, so
it must list every base table and every column, in a stable order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from loguru import logger
from sqlalchemy import RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from sql_assistant.domain.exceptions import SchemaIntrospectionError
from sql_assistant.domain.infrastructure.dialects import DialectProfile, get_dialect
from sql_assistant.domain.infrastructure.errors import describe_error
from sql_assistant.domain.models import ColumnInfo, SchemaDocument, TableInfo

FALLBACK_BANNER = (
    "NOTE: fallback schema. Primary keys, foreign keys and row counts could not be read."
)


# ---------------------------------------------------------------------------
# Building the structured intermediate
# ---------------------------------------------------------------------------


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def build_tables(rows: Iterable[Mapping[str, Any]]) -> list[TableInfo]:
    """Group ordered catalog rows into tables.

    Rows must already be ordered by schema, table and ordinal position. A
    column that appears on consecutive rows (one per foreign key it takes
    part in) is merged into a single ``ColumnInfo``.
    """
    tables: list[TableInfo] = []
    current: TableInfo | None = None

    for row in rows:
        schema = row["schema_name"] or ""
        table = row["table_name"]
        if current is None or (current.schema, current.name) != (schema, table):
            current = TableInfo(schema=schema, name=table)
            tables.append(current)

        name = row["column_name"]
        foreign_key = row.get("foreign_key")
        if current.columns and current.columns[-1].name == name:
            if foreign_key and foreign_key not in current.columns[-1].foreign_keys:
                current.columns[-1].foreign_keys.append(foreign_key)
            continue

        default = row.get("column_default")
        current.columns.append(
            ColumnInfo(
                name=name,
                data_type=row["data_type"] or "",
                max_length=_as_int(row.get("max_length")),
                nullable=str(row["is_nullable"]).upper() == "YES",
                default=str(default) if default is not None else None,
                primary_key=bool(row.get("is_primary_key")),
                foreign_keys=[foreign_key] if foreign_key else [],
            )
        )

    return tables


def apply_row_counts(tables: list[TableInfo], counts: Mapping[str, int]) -> None:
    """Attach row counts by qualified table name; tables without a count get 0."""
    for table in tables:
        table.row_count = counts.get(table.qualified_name, 0)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_column(column: ColumnInfo) -> str:
    data_type = column.data_type or "UNKNOWN"
    if column.max_length is not None:
        length = "MAX" if column.max_length < 0 else str(column.max_length)
        data_type = f"{data_type}({length})"

    parts = [f"{column.name}: {data_type}", "NULLABLE" if column.nullable else "NOT NULL"]
    if column.default is not None:
        parts.append(f"DEFAULT {column.default}")
    if column.primary_key:
        parts.append("PK")
    for target in column.foreign_keys:
        parts.append(f"FK -> {target}")
    return " ".join(parts)


def render_table_header(table: TableInfo) -> str:
    if table.row_count is None:
        return f"Table: {table.qualified_name}"
    return f"Table: {table.qualified_name} (~{table.row_count} rows)"


def render_schema(
    tables: list[TableInfo],
    dialect: DialectProfile,
    database: str,
    *,
    fallback: bool = False,
) -> SchemaDocument:
    """Render tables into the schema document handed to the agent."""
    lines = [f"Database: {database} ({dialect.display_name})"]
    if fallback:
        lines.append(FALLBACK_BANNER)

    for table in tables:
        lines.append("")
        lines.append(render_table_header(table))
        lines.extend(f"  - {render_column(column)}" for column in table.columns)

    lines.append("")
    lines.append(f"Total tables: {len(tables)}")
    lines.append("")
    lines.append(dialect.guidelines)

    return SchemaDocument(text="\n".join(lines), table_count=len(tables), fallback=fallback)


# ---------------------------------------------------------------------------
# Introspector
# ---------------------------------------------------------------------------


class SchemaIntrospector:
    """Reads catalog metadata from a connected engine and renders it.

    Each catalog query gets ``query_timeout`` seconds; a slow full query is
    treated like a failed one and the reduced query is tried instead.
    """

    def __init__(self, *, query_timeout: float | None = 30.0) -> None:
        self.query_timeout = query_timeout

    async def introspect(self, engine: AsyncEngine, database: str) -> SchemaDocument:
        """Build the schema document, falling back to the reduced query once.

        Raises:
            SchemaIntrospectionError: If both the full and the fallback
                queries fail.
        """
        dialect = get_dialect(engine.dialect.name)

        try:
            tables = await self._load_full(engine, dialect)
        except (SQLAlchemyError, TimeoutError) as full_exc:
            full_error = describe_error(full_exc, timeout=self.query_timeout)
            logger.warning("Full schema query failed, trying fallback | error={}", full_error)
            try:
                tables = await self._load_fallback(engine, dialect)
            except (SQLAlchemyError, TimeoutError) as fallback_exc:
                fallback_error = describe_error(fallback_exc, timeout=self.query_timeout)
                logger.error("Fallback schema query failed | error={}", fallback_error)
                raise SchemaIntrospectionError(full_error, fallback_error) from fallback_exc
            document = render_schema(tables, dialect, database, fallback=True)
        else:
            document = render_schema(tables, dialect, database)

        logger.info(
            "Schema introspected | database={} tables={} fallback={}",
            database,
            document.table_count,
            document.fallback,
        )
        return document

    async def _load_full(self, engine: AsyncEngine, dialect: DialectProfile) -> list[TableInfo]:
        async with engine.connect() as conn:
            tables = build_tables(await self._fetch(conn, dialect.columns_query))

            counts: dict[str, int] = {}
            count_sql = dialect.row_count_query([(t.schema, t.name) for t in tables])
            if count_sql:
                for row in await self._fetch(conn, count_sql):
                    key = TableInfo(schema=row["schema_name"] or "", name=row["table_name"]).qualified_name
                    counts[key] = int(row["row_count"] or 0)

        apply_row_counts(tables, counts)
        return tables

    async def _load_fallback(self, engine: AsyncEngine, dialect: DialectProfile) -> list[TableInfo]:
        async with engine.connect() as conn:
            return build_tables(await self._fetch(conn, dialect.fallback_columns_query))

    async def _fetch(self, conn: AsyncConnection, sql: str) -> Sequence[RowMapping]:
        return await asyncio.wait_for(self._query(conn, sql), timeout=self.query_timeout)

    @staticmethod
    async def _query(conn: AsyncConnection, sql: str) -> Sequence[RowMapping]:
        result = await conn.exec_driver_sql(sql)
        return result.mappings().all()
