"""Turning driver exceptions into one-line messages."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError


def describe_error(exc: BaseException, *, timeout: float | None = None) -> str:
    """Return the most useful single-line message for *exc*.

    SQLAlchemy wraps driver errors and appends the statement and a
    documentation link; the original driver message is what a user (or the
    agent) can act on.
    """
    if isinstance(exc, TimeoutError):
        if timeout is not None:
            return f"Operation timed out after {timeout:g} seconds"
        return "Operation timed out"
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        message = str(exc.orig)
    else:
        message = str(exc)
    message = " ".join(message.split())
    return message or exc.__class__.__name__
