"""Chat routes: message turn and health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from loguru import logger

from sql_assistant.application.exceptions import EmptyConversationError
from sql_assistant.application.use_cases.chat import ChatResult, ChatUseCase
from sql_assistant.presentation.schemas import MessageRequest, MessageResponse

router = APIRouter(tags=["chat"])


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
async def health():
    """Simple liveness / readiness check."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Message turn
# ---------------------------------------------------------------------------


@router.post("/api/message", response_model=MessageResponse)
async def message(request: MessageRequest, raw_request: Request):
    """Answer the last user message using the connected database."""
    uc: ChatUseCase = raw_request.app.state.chat_uc

    if request.messages:
        logger.info(
            "POST /api/message | turns={} msg={}",
            len(request.messages),
            request.messages[-1].content[:60],
        )

    try:
        result: ChatResult = await uc.execute(request.messages)
    except EmptyConversationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return MessageResponse(
        result=result.answer,
        tool_calls=result.tool_calls,
        latency_ms=result.latency_ms,
    )
