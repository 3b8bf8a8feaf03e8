"""Tests for the connection lifecycle and the session state machine."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from sql_assistant.domain.exceptions import (
    ConnectFailure,
    ConnectionTestError,
    IllegalTransitionError,
    NotInitializedError,
    SchemaIntrospectionError,
)
from sql_assistant.domain.infrastructure.connection_manager import ConnectionManager
from sql_assistant.domain.infrastructure.dialects import SQLITE
from sql_assistant.domain.infrastructure.session import ActiveConnection, Session
from sql_assistant.domain.models import ConnectionConfig, SchemaDocument, SessionState


def _record_disposals(manager: ConnectionManager, events: list) -> None:
    original = manager._dispose

    async def spy(engine):
        events.append(("dispose", engine))
        await original(engine)

    manager._dispose = spy


class TestSession:
    """Guarded transitions of the session state machine."""

    def test_starts_disconnected(self):
        session = Session()
        assert session.state is SessionState.DISCONNECTED
        assert session.active is None
        assert session.schema is None

    def test_require_active_raises_when_empty(self):
        with pytest.raises(NotInitializedError, match="not initialized"):
            Session().require_active()

    def test_cannot_activate_without_testing(self):
        connection = ActiveConnection(
            engine=object(),  # type: ignore[arg-type]
            config=ConnectionConfig(database="d"),
            schema=SchemaDocument(text="", table_count=0),
            dialect=SQLITE,
        )
        with pytest.raises(IllegalTransitionError):
            Session().activate(connection)

    def test_clear_when_empty_is_noop(self):
        session = Session()
        assert session.clear() is None
        assert session.state is SessionState.DISCONNECTED


class TestConnectionTest:
    """The throwaway liveness check."""

    async def test_success_leaves_session_untouched(self, manager, conn_config):
        result = await manager.test_connection(conn_config)
        assert result.ok is True
        assert result.message == "Connection test successful"
        assert manager.session.state is SessionState.DISCONNECTED

    async def test_uses_throwaway_pool(self, manager, engine_factory, conn_config):
        await manager.test_connection(conn_config)
        _url, options = engine_factory.calls[0]
        assert "poolclass" in options
        assert "pool_size" not in options

    async def test_failure_reports_driver_message(self, tmp_path: Path):
        manager = ConnectionManager()
        config = ConnectionConfig(database=str(tmp_path / "missing" / "x.sqlite"), dialect="sqlite")
        result = await manager.test_connection(config)
        assert result.ok is False
        assert "unable to open database file" in result.message


class TestConnect:
    """Connect, reconnect, disconnect and status."""

    async def test_connect_populates_session(self, manager, conn_config):
        schema = await manager.connect(conn_config)

        assert manager.session.state is SessionState.CONNECTED
        assert manager.session.config == conn_config
        assert manager.session.schema is schema
        assert schema.table_count == 2
        assert "Table: main.customer" in schema.text

    async def test_status_after_connect(self, connected_manager):
        status = connected_manager.status()
        assert status.connected is True
        assert status.database == "d"
        assert status.server == "s"

    async def test_status_when_disconnected(self, manager):
        status = manager.status()
        assert status.connected is False
        assert status.database is None
        assert status.server is None

    async def test_real_pool_gets_sizing_options(self, manager, engine_factory, conn_config):
        await manager.connect(conn_config)
        _url, options = engine_factory.calls[-1]
        assert options["pool_size"] == 10
        assert options["max_overflow"] == 0
        assert options["pool_pre_ping"] is True

    async def test_disconnect_twice(self, connected_manager):
        assert await connected_manager.disconnect() is True
        assert await connected_manager.disconnect() is False
        assert connected_manager.status().connected is False

    async def test_reconnect_disposes_previous_pool_first(self, manager, engine_factory, conn_config):
        await manager.connect(conn_config)
        first_engine = manager.session.active.engine
        _record_disposals(manager, engine_factory.events)
        created_before = len(engine_factory.created)

        await manager.connect(conn_config.model_copy(update={"database": "d2"}))

        events = engine_factory.events
        dispose_at = events.index(("dispose", first_engine))
        next_create_at = events.index(("create", engine_factory.created[created_before]))
        assert dispose_at < next_create_at
        assert manager.session.active.engine is not first_engine
        assert manager.status().database == "d2"

    async def test_failed_test_leaves_session_empty(self, tmp_path: Path):
        manager = ConnectionManager()
        config = ConnectionConfig(database=str(tmp_path / "missing" / "x.sqlite"), dialect="sqlite")

        with pytest.raises(ConnectionTestError, match="unable to open database file"):
            await manager.connect(config)

        assert manager.session.state is SessionState.DISCONNECTED
        assert manager.session.active is None

    async def test_failed_reconnect_drops_previous_session(self, connected_manager, tmp_path: Path):
        connected_manager._engine_factory = create_async_engine
        config = ConnectionConfig(database=str(tmp_path / "missing" / "x.sqlite"), dialect="sqlite")

        with pytest.raises(ConnectionTestError):
            await connected_manager.connect(config)

        assert connected_manager.status().connected is False

    async def test_introspection_failure_aborts_connect(self, engine_factory, conn_config):
        introspector = AsyncMock()
        introspector.introspect.side_effect = SchemaIntrospectionError("full failed", "fallback failed")
        manager = ConnectionManager(introspector=introspector, engine_factory=engine_factory)
        events: list = []
        _record_disposals(manager, events)

        with pytest.raises(SchemaIntrospectionError):
            await manager.connect(conn_config)

        assert manager.session.state is SessionState.DISCONNECTED
        assert manager.session.schema is None
        assert ("dispose", engine_factory.created[-1]) in events

    async def test_unexpected_introspection_error_becomes_connect_failure(self, engine_factory, conn_config):
        introspector = AsyncMock()
        introspector.introspect.side_effect = KeyError("row_count")
        manager = ConnectionManager(introspector=introspector, engine_factory=engine_factory)
        events: list = []
        _record_disposals(manager, events)

        with pytest.raises(ConnectFailure, match="row_count") as exc_info:
            await manager.connect(conn_config)

        assert isinstance(exc_info.value.__cause__, KeyError)
        assert manager.session.state is SessionState.DISCONNECTED
        assert ("dispose", engine_factory.created[-1]) in events

    async def test_default_introspector_uses_statement_timeout(self):
        assert ConnectionManager(statement_timeout=7.5).introspector.query_timeout == 7.5

    async def test_invalidate_ignores_stale_engine(self, connected_manager):
        stale = object()
        await connected_manager.invalidate(stale, "gone")  # type: ignore[arg-type]
        assert connected_manager.status().connected is True

    async def test_invalidate_clears_active_engine(self, connected_manager):
        engine = connected_manager.session.active.engine
        await connected_manager.invalidate(engine, "connection reset by peer")
        assert connected_manager.status().connected is False
