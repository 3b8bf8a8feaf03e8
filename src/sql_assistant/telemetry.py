"""Tracing for the HTTP surface, the agent loop and gateway logs.

``OBSERVABILITY`` selects the backend:

- ``"logfire"``: Pydantic Logfire (set ``LOGFIRE_TOKEN``); loguru records from
  the gateway are forwarded as Logfire logs.
- ``"otel"``: OpenTelemetry SDK with the OTLP HTTP exporter.
- ``"off"``: nothing is installed (default).

Agent spans omit message content (prompts, generated SQL, result rows) unless
``OTEL_INCLUDE_CONTENT`` is set.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI
from loguru import logger

from sql_assistant import __version__
from sql_assistant.config import Settings

if TYPE_CHECKING:
    from pydantic_ai.models.instrumented import InstrumentationSettings

# Comma-separated URL patterns served without HTTP spans.
UNTRACED_URLS = "health"


def setup_telemetry(app: FastAPI, settings: Settings) -> None:
    """Install the configured tracing backend and instrument *app*."""
    if settings.observability == "logfire":
        _setup_logfire(app, settings)
    elif settings.observability == "otel":
        _setup_otel(app, settings)
    else:
        logger.info("Observability disabled (OBSERVABILITY=off)")


def agent_instrumentation(settings: Settings) -> InstrumentationSettings | None:
    """Instrumentation for the SQL agent, or ``None`` when tracing is off."""
    if settings.observability == "off":
        return None

    from pydantic_ai.models.instrumented import InstrumentationSettings

    return InstrumentationSettings(include_content=settings.otel_include_content)


def _setup_logfire(app: FastAPI, settings: Settings) -> None:
    import logfire

    logfire.configure(
        service_name=settings.otel_service_name,
        service_version=__version__,
        send_to_logfire="if-token-present",
    )
    logfire.instrument_fastapi(app, excluded_urls=UNTRACED_URLS)
    logger.add(**logfire.loguru_handler())

    logger.info("Logfire enabled | service={} content={}", settings.otel_service_name, settings.otel_include_content)


def _setup_otel(app: FastAPI, settings: Settings) -> None:
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor

    provider = TracerProvider(
        resource=Resource.create(
            {"service.name": settings.otel_service_name, "service.version": __version__}
        )
    )
    endpoint = settings.otel_exporter_otlp_endpoint.rstrip("/") + "/v1/traces"
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    if settings.otel_console_exporter:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls=UNTRACED_URLS)

    logger.info(
        "OpenTelemetry enabled | service={} endpoint={} content={}",
        settings.otel_service_name,
        endpoint,
        settings.otel_include_content,
    )
