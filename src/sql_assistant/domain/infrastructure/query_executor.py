"""Executes caller-supplied SQL against the active session.

Every outcome is returned as a ``QuerySuccess`` or ``QueryFailure``; nothing
raised by the driver escapes ``QueryExecutor.execute``.
"""

from __future__ import annotations

import asyncio

from loguru import logger
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from sql_assistant.domain.exceptions import NotInitializedError, QueryExecutionError
from sql_assistant.domain.infrastructure.connection_manager import ConnectionManager
from sql_assistant.domain.infrastructure.errors import describe_error
from sql_assistant.domain.infrastructure.session import ActiveConnection
from sql_assistant.domain.models import QueryFailure, QueryResult, QuerySuccess

_LOG_PREVIEW_CHARS = 200


def _preview(sql: str) -> str:
    flat = " ".join(sql.split())
    if len(flat) <= _LOG_PREVIEW_CHARS:
        return flat
    return flat[:_LOG_PREVIEW_CHARS] + "..."


class QueryExecutor:
    """Runs one statement at a time under a fixed timeout.

    Executes are not serialized against each other; the pool bounds
    concurrency.
    """

    def __init__(self, manager: ConnectionManager, *, statement_timeout: float = 30.0) -> None:
        self._manager = manager
        self.statement_timeout = statement_timeout

    async def execute(self, sql: str) -> QueryResult:
        """Execute *sql* verbatim and return a structured result."""
        active: ActiveConnection | None = None
        try:
            async with self._manager.lease() as active:
                logger.info("Executing SQL | query={}", _preview(sql))
                result = await asyncio.wait_for(
                    self._run(active.engine, sql), timeout=self.statement_timeout
                )
        except NotInitializedError as exc:
            logger.warning("Query rejected, no active connection | query={}", _preview(sql))
            return QueryFailure(error=str(exc), query=sql, code="not_initialized")
        except TimeoutError:
            message = describe_error(TimeoutError(), timeout=self.statement_timeout)
            logger.warning("SQL timed out | timeout={}s query={}", self.statement_timeout, _preview(sql))
            return QueryFailure(error=message, query=sql, code="timeout")
        except QueryExecutionError as exc:
            logger.warning("SQL failed | error={} query={}", exc, _preview(sql))
            if exc.connection_invalidated and active is not None:
                await self._manager.invalidate(active.engine, str(exc))
            return QueryFailure(error=str(exc), query=sql)
        except Exception as exc:
            logger.exception("Unexpected error while executing SQL | query={}", _preview(sql))
            return QueryFailure(error=describe_error(exc), query=sql)

        logger.info("SQL succeeded | rows={} rows_affected={}", len(result.rows), result.rows_affected)
        return result

    @staticmethod
    async def _run(engine: AsyncEngine, sql: str) -> QuerySuccess:
        try:
            async with engine.begin() as conn:
                result = await conn.exec_driver_sql(sql)
                if result.returns_rows:
                    rows = [dict(row) for row in result.mappings().all()]
                    return QuerySuccess(rows=rows, rows_affected=len(rows), query=sql)
                rowcount = result.rowcount
                affected = rowcount if rowcount is not None and rowcount >= 0 else 0
                return QuerySuccess(rows=[], rows_affected=affected, query=sql, returned_rows=False)
        except DBAPIError as exc:
            raise QueryExecutionError(
                describe_error(exc), sql, connection_invalidated=exc.connection_invalidated
            ) from exc
        except SQLAlchemyError as exc:
            raise QueryExecutionError(describe_error(exc), sql) from exc
