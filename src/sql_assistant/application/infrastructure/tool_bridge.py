"""The ``get_from_db`` tool: input validation, execution and the JSON envelope.

The agent only ever sees what this module returns: a JSON object with
``success`` plus either ``data``/``rowsAffected`` or ``error``, and a
one-line ``message`` it can quote directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sql_assistant.application.exceptions import ToolInputError
from sql_assistant.domain.infrastructure.session import Session
from sql_assistant.domain.models import QueryFailure, QueryResult
from sql_assistant.domain.protocols import IQueryExecutor

TOOL_NAME = "get_from_db"
NO_SQL_ERROR = "No SQL query provided"
NO_SQL_MESSAGE = "Please provide a valid SQL query to execute."
NOT_CONNECTED_DESCRIPTION = "No database is connected. Ask the user to connect to a database first."

_TOOL_RULES = """\
Rules:
- Use only the tables and columns listed in the schema above; never invent names
- Prefer explicit column lists over SELECT *
- Use meaningful aliases for calculated columns
- If a query fails, read the error, fix the SQL and try again"""

# ---------------------------------------------------------------------------
# Input / output models
# ---------------------------------------------------------------------------


class GetFromDbInput(BaseModel):
    """Arguments of the ``get_from_db`` tool."""

    sql: str = Field(description="A complete, valid SQL query to execute against the connected database.")

    @field_validator("sql")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sql must not be empty")
        return value


class ToolSuccessEnvelope(BaseModel):
    model_config = ConfigDict(ser_json_bytes="base64")

    data: list[dict[str, Any]]
    rows_affected: int = Field(serialization_alias="rowsAffected")
    success: Literal[True] = True
    query: str
    message: str


class ToolFailureEnvelope(BaseModel):
    error: str
    success: Literal[False] = False
    query: str | None = None
    message: str


ToolEnvelope = ToolSuccessEnvelope | ToolFailureEnvelope


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------


def parse_tool_input(arguments: Mapping[str, Any] | None) -> GetFromDbInput:
    """Validate raw tool arguments.

    Raises:
        ToolInputError: If ``sql`` is missing, not a string or blank.
    """
    if not isinstance(arguments, Mapping):
        raise ToolInputError(NO_SQL_ERROR)
    try:
        return GetFromDbInput.model_validate(dict(arguments))
    except ValidationError as exc:
        raise ToolInputError(NO_SQL_ERROR) from exc


def build_envelope(result: QueryResult) -> ToolEnvelope:
    """Wrap a query result in the envelope the agent reads."""
    if isinstance(result, QueryFailure):
        return ToolFailureEnvelope(
            error=result.error,
            query=result.query,
            message=f"Query execution failed: {result.error}",
        )

    if result.returned_rows:
        message = f"Query executed successfully. Returned {len(result.rows)} rows."
    else:
        message = f"Query executed successfully. {result.rows_affected} rows affected."
    return ToolSuccessEnvelope(
        data=result.rows,
        rows_affected=result.rows_affected,
        query=result.query,
        message=message,
    )


def serialize_envelope(envelope: ToolEnvelope) -> str:
    return envelope.model_dump_json(by_alias=True)


class ToolBridge:
    """Adapter exposing the query executor as one schema-aware tool."""

    def __init__(self, executor: IQueryExecutor, session: Session) -> None:
        self._executor = executor
        self._session = session

    async def invoke(self, arguments: Mapping[str, Any] | None) -> str:
        """Validate *arguments*, run the query and return the JSON envelope."""
        try:
            tool_input = parse_tool_input(arguments)
        except ToolInputError as exc:
            logger.warning("Tool call rejected | tool={} error={}", TOOL_NAME, exc)
            return serialize_envelope(ToolFailureEnvelope(error=str(exc), message=NO_SQL_MESSAGE))

        result = await self._executor.execute(tool_input.sql)
        envelope = build_envelope(result)
        logger.debug("Tool call finished | tool={} success={}", TOOL_NAME, envelope.success)
        return serialize_envelope(envelope)

    async def run(self, sql: str | None) -> str:
        """Convenience wrapper used by the agent tool function."""
        return await self.invoke({"sql": sql} if sql is not None else {})

    def description(self) -> str:
        """Tool description with the current schema document embedded verbatim."""
        active = self._session.active
        if active is None:
            return NOT_CONNECTED_DESCRIPTION

        dialect = active.dialect.display_name
        return (
            f"Execute SQL queries on the connected {dialect} database.\n\n"
            f"Current Database Schema:\n{active.schema.text}\n\n"
            f"{_TOOL_RULES}\n\n"
            f"Always generate syntactically correct {dialect} queries based on the actual schema provided above."
        )

    def sql_parameter_description(self) -> str:
        active = self._session.active
        dialect = active.dialect.display_name if active else "SQL"
        return (
            f"A complete, valid {dialect} query to execute against the connected database. "
            "Use the exact table and column names from the schema."
        )
