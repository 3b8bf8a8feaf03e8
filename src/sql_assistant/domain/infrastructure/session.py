"""Session state: the single active pool, its config and cached schema."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from sql_assistant.domain.exceptions import IllegalTransitionError, NotInitializedError
from sql_assistant.domain.infrastructure.dialects import DialectProfile
from sql_assistant.domain.models import ConnectionConfig, SchemaDocument, SessionState

_ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.DISCONNECTED: frozenset({SessionState.TESTING}),
    SessionState.TESTING: frozenset({SessionState.CONNECTED, SessionState.DISCONNECTED}),
    SessionState.CONNECTED: frozenset({SessionState.DISCONNECTED}),
}


@dataclass(frozen=True)
class ActiveConnection:
    """Everything a connected session holds, swapped in and out as one value."""

    engine: AsyncEngine
    config: ConnectionConfig
    schema: SchemaDocument
    dialect: DialectProfile


class Session:
    """Holds at most one active connection.

    The connection and the state move together: ``active`` is set iff the
    state is CONNECTED, so a schema document exists exactly when the session
    is connected.
    """

    def __init__(self) -> None:
        self._state = SessionState.DISCONNECTED
        self._active: ActiveConnection | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def active(self) -> ActiveConnection | None:
        return self._active

    @property
    def config(self) -> ConnectionConfig | None:
        return self._active.config if self._active else None

    @property
    def schema(self) -> SchemaDocument | None:
        return self._active.schema if self._active else None

    def require_active(self) -> ActiveConnection:
        """Return the active connection or raise ``NotInitializedError``."""
        active = self._active
        if active is None:
            raise NotInitializedError()
        return active

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, target: SessionState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self._state]:
            raise IllegalTransitionError(
                f"Cannot move session from {self._state.value} to {target.value}"
            )
        self._state = target

    def begin_testing(self) -> None:
        self._transition(SessionState.TESTING)

    def activate(self, connection: ActiveConnection) -> None:
        self._transition(SessionState.CONNECTED)
        self._active = connection

    def abort(self) -> None:
        """Return from TESTING to DISCONNECTED after a failed connect."""
        self._transition(SessionState.DISCONNECTED)
        self._active = None

    def clear(self) -> ActiveConnection | None:
        """Drop the active connection and return it so the caller can dispose it.

        Clearing an already empty session is a no-op returning None.
        """
        previous = self._active
        if self._state is not SessionState.DISCONNECTED:
            self._transition(SessionState.DISCONNECTED)
        self._active = None
        return previous
