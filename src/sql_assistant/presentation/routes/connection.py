"""Connection routes: connect, status and disconnect endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from loguru import logger

from sql_assistant.application.use_cases.connection import ConnectionUseCase
from sql_assistant.domain.models import ConnectionConfig
from sql_assistant.presentation.schemas import (
    ConnectionStatusResponse,
    ConnectResponse,
    DisconnectResponse,
)

router = APIRouter(prefix="/api", tags=["connection"])


@router.post("/connect", response_model=ConnectResponse)
async def connect(config: ConnectionConfig, raw_request: Request):
    """Test the supplied parameters, then open and introspect the connection."""
    uc: ConnectionUseCase = raw_request.app.state.connection_uc

    logger.info(
        "POST /api/connect | server={} database={} dialect={}",
        config.server,
        config.database,
        config.dialect,
    )

    result = await uc.connect(config)
    return ConnectResponse(success=result.success, message=result.message, schema_text=result.schema)


@router.get("/connection", response_model=ConnectionStatusResponse)
async def connection_status(raw_request: Request):
    """Report whether a database is connected, and which one."""
    uc: ConnectionUseCase = raw_request.app.state.connection_uc
    status = uc.status()
    return ConnectionStatusResponse(
        connected=status.connected,
        database=status.database,
        server=status.server,
    )


@router.delete("/connection", response_model=DisconnectResponse)
async def disconnect(raw_request: Request):
    """Close the active connection. Safe to call when nothing is connected."""
    uc: ConnectionUseCase = raw_request.app.state.connection_uc
    result = await uc.disconnect()
    logger.info("DELETE /api/connection | {}", result.message)
    return DisconnectResponse(success=result.success, message=result.message)
