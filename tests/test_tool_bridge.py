"""Tests for the get_from_db tool bridge."""

import json
from unittest.mock import AsyncMock

import pytest

from sql_assistant.application.exceptions import ToolInputError
from sql_assistant.application.infrastructure.tool_bridge import (
    NO_SQL_ERROR,
    NO_SQL_MESSAGE,
    NOT_CONNECTED_DESCRIPTION,
    ToolBridge,
    build_envelope,
    parse_tool_input,
)
from sql_assistant.domain.infrastructure.session import Session
from sql_assistant.domain.models import QueryFailure, QuerySuccess


class TestParseToolInput:
    """Validation of raw tool arguments."""

    @pytest.mark.parametrize("arguments", [None, {}, {"sql": ""}, {"sql": "   "}, {"sql": 42}, {"query": "SELECT 1"}])
    def test_rejects_missing_sql(self, arguments):
        with pytest.raises(ToolInputError, match=NO_SQL_ERROR):
            parse_tool_input(arguments)

    def test_accepts_sql(self):
        assert parse_tool_input({"sql": "SELECT 1"}).sql == "SELECT 1"


class TestBuildEnvelope:
    """Mapping query results to the envelope the agent reads."""

    def test_rows_message(self):
        envelope = build_envelope(QuerySuccess(rows=[{"a": 1}, {"a": 2}], rows_affected=2, query="q"))
        assert envelope.message == "Query executed successfully. Returned 2 rows."

    def test_rows_affected_message(self):
        envelope = build_envelope(QuerySuccess(rows=[], rows_affected=3, query="q", returned_rows=False))
        assert envelope.message == "Query executed successfully. 3 rows affected."

    def test_empty_result_set_reports_returned_rows(self):
        envelope = build_envelope(QuerySuccess(rows=[], rows_affected=0, query="q"))
        assert envelope.message == "Query executed successfully. Returned 0 rows."

    def test_failure_message(self):
        envelope = build_envelope(QueryFailure(error="boom", query="q"))
        assert envelope.success is False
        assert envelope.message == "Query execution failed: boom"


class TestToolBridge:
    """End-to-end tool calls."""

    async def test_empty_arguments_do_not_touch_database(self):
        executor = AsyncMock()
        bridge = ToolBridge(executor, Session())

        payload = json.loads(await bridge.invoke({}))

        assert payload == {
            "error": NO_SQL_ERROR,
            "success": False,
            "query": None,
            "message": NO_SQL_MESSAGE,
        }
        executor.execute.assert_not_called()

    async def test_select_literal(self, connected_manager, tool_bridge):
        payload = json.loads(await tool_bridge.invoke({"sql": "SELECT 1 AS test"}))
        assert payload == {
            "data": [{"test": 1}],
            "rowsAffected": 1,
            "success": True,
            "query": "SELECT 1 AS test",
            "message": "Query executed successfully. Returned 1 rows.",
        }

    async def test_empty_select_and_update_messages(self, connected_manager, tool_bridge):
        empty = json.loads(await tool_bridge.run("SELECT id FROM customer WHERE id < 0"))
        assert empty["message"] == "Query executed successfully. Returned 0 rows."

        updated = json.loads(await tool_bridge.run("UPDATE customer SET name = name"))
        assert updated["data"] == []
        assert updated["message"] == "Query executed successfully. 2 rows affected."

    async def test_syntax_error(self, connected_manager, tool_bridge):
        payload = json.loads(await tool_bridge.run("SELEC 1"))
        assert payload["success"] is False
        assert payload["query"] == "SELEC 1"
        assert payload["message"].startswith("Query execution failed: ")
        assert "syntax error" in payload["error"]

    async def test_not_connected(self, tool_bridge):
        payload = json.loads(await tool_bridge.run("SELECT 1"))
        assert payload["success"] is False
        assert "not initialized" in payload["error"]

    async def test_run_without_sql(self, tool_bridge):
        payload = json.loads(await tool_bridge.run(None))
        assert payload["error"] == NO_SQL_ERROR

    async def test_description_when_disconnected(self, tool_bridge):
        assert tool_bridge.description() == NOT_CONNECTED_DESCRIPTION

    async def test_description_embeds_schema(self, connected_manager, tool_bridge):
        description = tool_bridge.description()
        assert connected_manager.session.schema.text in description
        assert "SQLite" in description
        assert "SQLite" in tool_bridge.sql_parameter_description()
