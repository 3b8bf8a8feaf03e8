"""FastAPI application for the SQL assistant.

This module is a thin **presentation layer**.  All business logic lives in
the ``application.use_cases`` package so it can be tested and reused
independently of any HTTP framework.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from sql_assistant import __version__
from sql_assistant.application.infrastructure.agent import create_agent
from sql_assistant.application.infrastructure.tool_bridge import ToolBridge
from sql_assistant.application.use_cases.chat import ChatUseCase
from sql_assistant.application.use_cases.connection import ConnectionUseCase
from sql_assistant.config import Settings, get_settings
from sql_assistant.domain.infrastructure.connection_manager import ConnectionManager
from sql_assistant.domain.infrastructure.query_executor import QueryExecutor
from sql_assistant.logging_config import setup_logging
from sql_assistant.presentation.routes.chat import router as chat_router
from sql_assistant.presentation.routes.connection import router as connection_router
from sql_assistant.telemetry import setup_telemetry


def build_manager(settings: Settings) -> ConnectionManager:
    """Create the connection manager from the gateway settings."""
    return ConnectionManager(
        test_connect_timeout=settings.test_connect_timeout_s,
        connect_timeout=settings.connect_timeout_s,
        statement_timeout=settings.statement_timeout_s,
        pool_size=settings.pool_max_size,
    )


# ---------------------------------------------------------------------------
# Lifespan: initialise shared resources once at startup
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Set up and tear down services around the application lifetime."""
    settings: Settings = app.state.settings
    settings.validate_runtime()

    manager = build_manager(settings)
    executor = QueryExecutor(manager, statement_timeout=settings.statement_timeout_s)
    tool_bridge = ToolBridge(executor, manager.session)
    agent = create_agent(settings)

    # Wire up the use cases with all their dependencies
    app.state.manager = manager
    app.state.connection_uc = ConnectionUseCase(manager)
    app.state.chat_uc = ChatUseCase(agent=agent, manager=manager, tool_bridge=tool_bridge)

    logger.info("Application startup complete")
    yield

    await manager.close()
    logger.info("Application shutdown complete")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application and register all routes."""
    settings = settings or get_settings()
    setup_logging(level=settings.log_level, json=settings.log_json)

    app = FastAPI(
        title="SQL Assistant",
        description="Ask questions in natural language about a connected SQL database.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(connection_router)

    # Instrument FastAPI with observability (no-op when OBSERVABILITY=off)
    setup_telemetry(app, settings)

    return app


app = create_app()


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("sql_assistant.main:app", host="0.0.0.0", port=8000, reload=True)
