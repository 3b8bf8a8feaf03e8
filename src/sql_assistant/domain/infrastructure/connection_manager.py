"""Connection lifecycle: test, connect, disconnect, status.

The manager owns the one ``Session`` of the application. Connect, disconnect
and invalidation run under a single lock. Executes hold a lease on the active
connection; teardown empties the session, waits for outstanding leases and
only then disposes the pool, so no statement ever runs on a closed pool.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from sql_assistant.domain.exceptions import ConnectFailure, ConnectionTestError, GatewayError
from sql_assistant.domain.infrastructure.dialects import LIVENESS_QUERY, DialectProfile, get_dialect
from sql_assistant.domain.infrastructure.errors import describe_error
from sql_assistant.domain.infrastructure.schema_introspector import SchemaIntrospector
from sql_assistant.domain.infrastructure.session import ActiveConnection, Session
from sql_assistant.domain.models import (
    ConnectionConfig,
    ConnectionStatus,
    ConnectionTestResult,
    SchemaDocument,
)

EngineFactory = Callable[..., AsyncEngine]

_CONNECT_ERRORS = (SQLAlchemyError, TimeoutError, OSError, ImportError)


class ConnectionManager:
    """State machine around the single database session.

    Parameters
    ----------
    introspector:
        Builds the schema document after the pool opens.
    engine_factory:
        Callable with the signature of ``create_async_engine``. Tests swap it
        to point every config at a local database.
    test_connect_timeout / connect_timeout:
        Seconds allowed for the throwaway liveness check and for opening the
        real pool.
    statement_timeout:
        Seconds allowed for each catalog query and for waiting on a pooled
        connection.
    pool_size:
        Upper bound of pooled connections (no overflow).
    """

    def __init__(
        self,
        *,
        introspector: SchemaIntrospector | None = None,
        engine_factory: EngineFactory = create_async_engine,
        test_connect_timeout: float = 10.0,
        connect_timeout: float = 15.0,
        statement_timeout: float = 30.0,
        pool_size: int = 10,
    ) -> None:
        self.session = Session()
        self.introspector = introspector or SchemaIntrospector(query_timeout=statement_timeout)
        self._engine_factory = engine_factory
        self.test_connect_timeout = test_connect_timeout
        self.connect_timeout = connect_timeout
        self.statement_timeout = statement_timeout
        self.pool_size = pool_size
        self._lock = asyncio.Lock()
        self._in_flight = 0
        self._idle = asyncio.Condition()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def test_connection(self, config: ConnectionConfig) -> ConnectionTestResult:
        """Run ``SELECT 1`` through a throwaway pool. Never touches the session."""
        logger.info("Testing connection | server={} database={}", config.server, config.database)
        try:
            engine = self._create_engine(config, connect_timeout=self.test_connect_timeout, throwaway=True)
        except _CONNECT_ERRORS as exc:
            return ConnectionTestResult(ok=False, message=describe_error(exc))

        try:
            await asyncio.wait_for(self._ping(engine), timeout=self.test_connect_timeout)
        except _CONNECT_ERRORS as exc:
            message = describe_error(exc, timeout=self.test_connect_timeout)
            logger.warning("Connection test failed | database={} error={}", config.database, message)
            return ConnectionTestResult(ok=False, message=message)
        finally:
            await self._dispose(engine)

        return ConnectionTestResult(ok=True, message="Connection test successful")

    async def connect(self, config: ConnectionConfig) -> SchemaDocument:
        """Replace the session with a new, tested, introspected connection.

        Any existing pool is closed first. Connect is all-or-nothing: on
        failure the session is left empty.

        Raises:
            ConnectionTestError: The liveness check failed.
            ConnectFailure: The real pool could not be opened.
            SchemaIntrospectionError: The schema could not be read.
        """
        async with self._lock:
            await self._teardown("reconnect")
            self.session.begin_testing()
            try:
                result = await self.test_connection(config)
                if not result.ok:
                    raise ConnectionTestError(result.message)
                active = await self._open(config)
            except Exception:
                self.session.abort()
                raise
            self.session.activate(active)

        logger.info(
            "Connected | server={} database={} dialect={} tables={}",
            config.server,
            config.database,
            active.dialect.name,
            active.schema.table_count,
        )
        return active.schema

    async def disconnect(self) -> bool:
        """Close the pool and clear the session.

        Idempotent: returns False (and does nothing) when already disconnected.
        """
        async with self._lock:
            return await self._teardown("disconnect")

    async def invalidate(self, engine: AsyncEngine, reason: str) -> None:
        """Tear the session down after its pool reported a dropped connection.

        Ignored when *engine* is no longer the active one (a reconnect already
        replaced it).
        """
        async with self._lock:
            active = self.session.active
            if active is None or active.engine is not engine:
                return
            logger.error("Connection lost, clearing session | reason={}", reason)
            await self._teardown("connection lost")

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[ActiveConnection]:
        """Hold the active connection for one statement.

        Teardown waits until every lease is released before disposing the
        pool. Do not call ``disconnect`` or ``invalidate`` while holding one.

        Raises:
            NotInitializedError: No connection is active.
        """
        async with self._idle:
            active = self.session.require_active()
            self._in_flight += 1
        try:
            yield active
        finally:
            async with self._idle:
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._idle.notify_all()

    def status(self) -> ConnectionStatus:
        """Current connection status, derived from the session only."""
        config = self.session.config
        return ConnectionStatus(
            connected=self.session.connected,
            state=self.session.state,
            database=config.database if config else None,
            server=config.server if config else None,
        )

    async def close(self) -> None:
        """Release the pool at application shutdown."""
        await self.disconnect()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _create_engine(
        self,
        config: ConnectionConfig,
        *,
        connect_timeout: float,
        throwaway: bool = False,
    ) -> AsyncEngine:
        dialect = get_dialect(config.dialect)
        options: dict[str, Any] = dialect.engine_options(
            pool_size=self.pool_size,
            pool_timeout=self.statement_timeout,
            connect_timeout=connect_timeout,
        )
        if throwaway:
            options = {"connect_args": options.get("connect_args", {}), "poolclass": NullPool}
        return self._engine_factory(dialect.build_url(config), **options)

    async def _open(self, config: ConnectionConfig) -> ActiveConnection:
        try:
            engine = self._create_engine(config, connect_timeout=self.connect_timeout)
        except _CONNECT_ERRORS as exc:
            raise ConnectFailure(describe_error(exc)) from exc

        try:
            await asyncio.wait_for(self._ping(engine), timeout=self.connect_timeout)
            schema = await self.introspector.introspect(engine, config.database)
            profile: DialectProfile = get_dialect(engine.dialect.name)
        except GatewayError:
            await self._dispose(engine)
            raise
        except Exception as exc:
            await self._dispose(engine)
            raise ConnectFailure(describe_error(exc, timeout=self.connect_timeout)) from exc

        return ActiveConnection(engine=engine, config=config, schema=schema, dialect=profile)

    async def _teardown(self, reason: str) -> bool:
        previous = self.session.clear()
        if previous is None:
            return False
        async with self._idle:
            if self._in_flight:
                logger.info("Waiting for {} running statement(s) before closing the pool", self._in_flight)
            await self._idle.wait_for(lambda: self._in_flight == 0)
        await self._dispose(previous.engine)
        logger.info(
            "Disconnected ({}) | server={} database={}",
            reason,
            previous.config.server,
            previous.config.database,
        )
        return True

    @staticmethod
    async def _ping(engine: AsyncEngine) -> None:
        async with engine.connect() as conn:
            result = await conn.exec_driver_sql(LIVENESS_QUERY)
            result.fetchall()

    @staticmethod
    async def _dispose(engine: AsyncEngine) -> None:
        try:
            await engine.dispose()
        except Exception as exc:
            logger.warning("Error while closing connection pool, continuing | error={}", exc)
