"""HTTP request/response schemas (Pydantic models) for the REST API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from sql_assistant.domain.models import ChatMessage

# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


class ConnectResponse(BaseModel):
    """Response from POST /api/connect.

    The outcome travels in ``success``; failed attempts still return 200.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    schema_text: str | None = Field(
        default=None,
        alias="schema",
        description="Rendered schema document, present only on success",
    )


class ConnectionStatusResponse(BaseModel):
    """Response from GET /api/connection."""

    connected: bool
    database: str | None = None
    server: str | None = None


class DisconnectResponse(BaseModel):
    """Response from DELETE /api/connection."""

    success: bool
    message: str


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class MessageRequest(BaseModel):
    """Request body for POST /api/message.

    The caller owns the conversation; the full history is sent each turn.
    """

    messages: list[ChatMessage] = Field(description="Conversation so far, last entry is the new user message")


class MessageResponse(BaseModel):
    """Response body from POST /api/message."""

    result: str = Field(description="The assistant's reply")
    tool_calls: list[dict] = Field(
        default_factory=list,
        description="Tool calls made during this turn: [{name, args, result}]",
    )
    latency_ms: int = 0
