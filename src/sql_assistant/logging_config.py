"""Loguru logging configuration.

Call ``setup_logging()`` once at application startup to:
- configure the loguru stderr sink (coloured text or JSON)
- intercept all stdlib ``logging`` records (uvicorn, sqlalchemy, openai,
  pydantic_ai) and route them through loguru.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

_INTERCEPTED_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "fastapi",
    "sqlalchemy",
    "aiosqlite",
    "openai",
    "httpx",
    "pydantic_ai",
)


class InterceptHandler(logging.Handler):
    """Redirect stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(*, level: str = "INFO", json: bool = False) -> None:
    """Configure loguru as the single logging backend.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ...).
        json: If True, emit structured JSON to stderr (useful for log aggregators).
    """
    logger.remove()

    if json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
            colorize=True,
        )

    intercept = InterceptHandler()
    for name in _INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [intercept]
        stdlib_logger.propagate = False

    # SQLAlchemy echoes every statement at INFO; the executor already logs them
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.root.handlers = [intercept]
    logging.root.setLevel(logging.DEBUG)
