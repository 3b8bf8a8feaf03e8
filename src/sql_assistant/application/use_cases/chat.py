"""Chat use case: one conversation turn with the SQL agent.

This module contains the business logic for handling a message turn:
message validation, the connected-session check, history conversion, agent
execution and error handling.  It has **no dependency on FastAPI** and can
be invoked from any transport layer (HTTP, CLI, WebSocket, ...).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

import httpx
import openai
from loguru import logger
from pydantic_ai import Agent, ModelRequest, ModelResponse, TextPart, UserPromptPart
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.messages import ToolCallPart, ToolReturnPart

from sql_assistant.application.exceptions import EmptyConversationError
from sql_assistant.application.infrastructure.agent import AgentDeps
from sql_assistant.application.infrastructure.tool_bridge import ToolBridge
from sql_assistant.domain.infrastructure.connection_manager import ConnectionManager
from sql_assistant.domain.models import ChatMessage

NOT_CONNECTED_REPLY = (
    "Please connect to a database first before asking questions. "
    "Use the 'Connect Database' button to establish a connection."
)

_TOOL_RESULT_PREVIEW_CHARS = 500


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass
class ChatResult:
    """Result of a single chat turn, including the tool calls made."""

    answer: str
    tool_calls: list[dict] = field(default_factory=list)
    latency_ms: int = 0


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


class ChatUseCase:
    """Orchestrates a single chat turn with the SQL agent.

    Parameters
    ----------
    agent:
        A fully-configured PydanticAI ``Agent`` instance.
    manager:
        The connection manager owning the database session.
    tool_bridge:
        The ``get_from_db`` tool implementation handed to the agent.
    """

    def __init__(
        self,
        agent: Agent[AgentDeps, str],
        manager: ConnectionManager,
        tool_bridge: ToolBridge,
    ) -> None:
        self.agent = agent
        self.manager = manager
        self.tool_bridge = tool_bridge

    async def execute(self, messages: list[ChatMessage]) -> ChatResult:
        """Run a single chat turn and return the final answer.

        Args:
            messages: Full conversation history. The last entry must be the
                      new user message.

        Raises:
            EmptyConversationError: If *messages* is empty.
        """
        if not messages:
            raise EmptyConversationError("messages list must not be empty")

        active = self.manager.session.active
        if active is None:
            logger.info("Chat turn rejected: no database connected")
            return ChatResult(answer=NOT_CONNECTED_REPLY)

        deps = AgentDeps(
            tool_bridge=self.tool_bridge,
            server=active.config.server,
            database=active.config.database,
            dialect=active.dialect.display_name,
        )

        message_history = self._build_history(messages[:-1])
        user_prompt = messages[-1].content

        t0 = time.perf_counter()

        try:
            result = await self.agent.run(
                user_prompt,
                deps=deps,
                message_history=message_history if message_history else None,
            )
        except (ModelHTTPError, UnexpectedModelBehavior, openai.APIError, httpx.HTTPError) as exc:
            # provider transport errors reach here unwrapped
            latency = int((time.perf_counter() - t0) * 1000)
            logger.error("Agent run failed | error={}", exc)
            return ChatResult(
                answer=(
                    f"An error occurred while processing your request: {exc}. "
                    "Please try again or check your database connection."
                ),
                latency_ms=latency,
            )

        latency = int((time.perf_counter() - t0) * 1000)
        tool_calls = self._extract_tool_calls(result.all_messages())

        logger.info("Chat completed | latency={}ms | tools={}", latency, len(tool_calls))

        return ChatResult(answer=result.output, tool_calls=tool_calls, latency_ms=latency)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_history(
        prior_messages: list[ChatMessage],
    ) -> list[ModelRequest | ModelResponse]:
        """Convert prior ChatMessages into PydanticAI message-history objects."""
        history: list[ModelRequest | ModelResponse] = []
        for msg in prior_messages:
            if msg.role == "user":
                history.append(ModelRequest(parts=[UserPromptPart(content=msg.content)]))
            else:
                history.append(ModelResponse(parts=[TextPart(content=msg.content)]))
        return history

    @staticmethod
    def _extract_tool_calls(
        messages: list[ModelRequest | ModelResponse],
    ) -> list[dict]:
        """Pull tool-call / tool-return pairs from the PydanticAI message list."""
        calls: dict[str, dict] = {}
        for msg in messages:
            for part in msg.parts:
                if isinstance(part, ToolCallPart):
                    calls[part.tool_call_id] = {
                        "name": part.tool_name,
                        "args": part.args_as_dict(),
                    }
                elif isinstance(part, ToolReturnPart):
                    if part.tool_call_id in calls:
                        content = part.content
                        if not isinstance(content, str):
                            content = str(content)
                        calls[part.tool_call_id]["result"] = content[:_TOOL_RESULT_PREVIEW_CHARS]
        return list(calls.values())
