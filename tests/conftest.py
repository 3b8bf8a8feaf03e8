"""Shared fixtures for the SQL assistant tests."""

import sqlite3
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from sql_assistant.application.infrastructure.tool_bridge import ToolBridge
from sql_assistant.domain.infrastructure.connection_manager import ConnectionManager
from sql_assistant.domain.infrastructure.query_executor import QueryExecutor
from sql_assistant.domain.models import ConnectionConfig


def pytest_configure(config):
    """Set pytest-asyncio mode to auto so async test functions work without markers."""
    config.option.asyncio_mode = "auto"


class RecordingEngineFactory:
    """Engine factory pointing every URL at one SQLite file.

    Records each engine it creates in ``created`` and appends
    ``("create", engine)`` to ``events`` so tests can check ordering.
    """

    def __init__(self, db_path: Path) -> None:
        self.url = f"sqlite+aiosqlite:///{db_path}"
        self.created = []
        self.events = []
        self.calls = []

    def __call__(self, url, **options):
        self.calls.append((url, options))
        engine = create_async_engine(self.url, poolclass=options.get("poolclass"))
        self.created.append(engine)
        self.events.append(("create", engine))
        return engine


@pytest.fixture()
def tmp_db(tmp_path: Path) -> Path:
    """Create a temporary SQLite database with two related tables."""
    db_path = tmp_path / "test.sqlite"
    conn = sqlite3.connect(str(db_path))
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE customer (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT,
            status TEXT DEFAULT 'active'
        )
    """)
    cursor.execute("""
        CREATE TABLE "order" (
            id INTEGER PRIMARY KEY,
            customer_id INTEGER REFERENCES customer(id),
            total REAL NOT NULL DEFAULT 0
        )
    """)

    cursor.executemany(
        "INSERT INTO customer (name, email) VALUES (?, ?)",
        [
            ("Alice Smith", "alice@example.com"),
            ("Bob Jones", "bob@example.com"),
        ],
    )
    cursor.executemany(
        'INSERT INTO "order" (customer_id, total) VALUES (?, ?)',
        [
            (1, 120.0),
            (1, 35.5),
            (2, 80.25),
        ],
    )

    conn.commit()
    conn.close()
    return db_path


@pytest.fixture()
def engine_factory(tmp_db: Path) -> RecordingEngineFactory:
    return RecordingEngineFactory(tmp_db)


@pytest.fixture()
async def manager(engine_factory: RecordingEngineFactory):
    """A disconnected ConnectionManager whose engines all open the temp database."""
    mgr = ConnectionManager(engine_factory=engine_factory, statement_timeout=5.0)
    yield mgr
    await mgr.close()


@pytest.fixture()
async def connected_manager(manager: ConnectionManager, conn_config: ConnectionConfig) -> ConnectionManager:
    await manager.connect(conn_config)
    return manager


@pytest.fixture()
def executor(manager: ConnectionManager) -> QueryExecutor:
    return QueryExecutor(manager, statement_timeout=5.0)


@pytest.fixture()
def tool_bridge(executor: QueryExecutor, manager: ConnectionManager) -> ToolBridge:
    return ToolBridge(executor, manager.session)


@pytest.fixture()
def conn_config() -> ConnectionConfig:
    """SQL Server style parameters; ``engine_factory`` routes them to the temp database."""
    return ConnectionConfig(server="s", database="d", user="u", password="p")
