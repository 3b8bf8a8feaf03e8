"""Configuration for the SQL assistant using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent  # src/sql_assistant/ → project root


class Settings(BaseSettings):
    """All service settings, loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Azure OpenAI: Chat model
    # ------------------------------------------------------------------
    azure_openai_api_key: str = ""
    azure_openai_endpoint: str = ""
    azure_openai_api_version: str = "2025-01-01-preview"
    azure_openai_chat_deployment: str = "gpt-4o-mini"
    llm_temperature: float = 0.1  # low temperature keeps generated SQL stable

    # ------------------------------------------------------------------
    # Database gateway
    # ------------------------------------------------------------------
    test_connect_timeout_s: float = Field(default=10.0, gt=0)
    connect_timeout_s: float = Field(default=15.0, gt=0)
    statement_timeout_s: float = Field(default=30.0, gt=0)
    pool_max_size: int = Field(default=10, ge=1)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False

    # ------------------------------------------------------------------
    # Observability: "off", "logfire" or "otel"
    # ------------------------------------------------------------------
    observability: Literal["off", "logfire", "otel"] = "off"
    otel_service_name: str = "sql-assistant"
    otel_exporter_otlp_endpoint: str = "http://localhost:4318"
    otel_console_exporter: bool = False
    # Agent spans carry prompts, generated SQL and result rows only when enabled
    otel_include_content: bool = False

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def validate_runtime(self) -> None:
        """Check that the LLM credentials are present.

        Call this at application startup (not at import time) so that
        tests can override settings before validation runs.
        """
        if not self.azure_openai_api_key:
            raise ValueError("AZURE_OPENAI_API_KEY not set. Add it to .env")
        if not self.azure_openai_endpoint:
            raise ValueError("AZURE_OPENAI_ENDPOINT not set. Add it to .env")


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings singleton."""
    return Settings()
