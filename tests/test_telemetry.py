"""Tests for tracing setup."""

from fastapi import FastAPI
from pydantic_ai.models.instrumented import InstrumentationSettings

from sql_assistant.config import Settings
from sql_assistant.telemetry import agent_instrumentation, setup_telemetry


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, azure_openai_api_key="k", azure_openai_endpoint="https://e/", **overrides)


class TestAgentInstrumentation:
    def test_off_means_no_instrumentation(self):
        assert agent_instrumentation(_settings()) is None

    def test_content_excluded_by_default(self):
        instrumentation = agent_instrumentation(_settings(observability="otel"))
        assert isinstance(instrumentation, InstrumentationSettings)
        assert instrumentation.include_content is False

    def test_content_opt_in(self):
        instrumentation = agent_instrumentation(_settings(observability="otel", otel_include_content=True))
        assert instrumentation.include_content is True


class TestSetupTelemetry:
    def test_off_leaves_app_untouched(self):
        app = FastAPI()
        middleware_before = list(app.user_middleware)
        setup_telemetry(app, _settings())
        assert app.user_middleware == middleware_before
