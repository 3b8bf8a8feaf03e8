"""Connection use case: connect, status and disconnect.

Translates lifecycle exceptions into plain results so every transport
reports a failed attempt the same way.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from sql_assistant.domain.exceptions import ConnectFailure, ConnectionTestError
from sql_assistant.domain.models import ConnectionConfig, ConnectionStatus
from sql_assistant.domain.protocols import IConnectionManager


@dataclass
class ConnectResult:
    success: bool
    message: str
    schema: str | None = None


@dataclass
class DisconnectResult:
    success: bool
    message: str


class ConnectionUseCase:
    """Drives the connection lifecycle on behalf of a caller."""

    def __init__(self, manager: IConnectionManager) -> None:
        self.manager = manager

    async def connect(self, config: ConnectionConfig) -> ConnectResult:
        """Test, open and introspect a connection; all-or-nothing."""
        try:
            schema = await self.manager.connect(config)
        except ConnectionTestError as exc:
            return ConnectResult(success=False, message=f"Connection test failed: {exc}")
        except ConnectFailure as exc:
            logger.error("Database connection failed | database={} error={}", config.database, exc)
            return ConnectResult(success=False, message=f"Connection failed: {exc}")

        return ConnectResult(
            success=True,
            message=f'Successfully connected to database "{config.database}" on server "{config.server}"',
            schema=schema.text,
        )

    def status(self) -> ConnectionStatus:
        return self.manager.status()

    async def disconnect(self) -> DisconnectResult:
        closed = await self.manager.disconnect()
        if closed:
            return DisconnectResult(success=True, message="Disconnected from database")
        return DisconnectResult(success=True, message="No active database connection")
