"""Database gateway exceptions.

Raised by the session, connection manager, introspector and executor.
Statement-level failures are normally carried as ``QueryFailure`` values;
the exceptions below cover the connection itself.
"""


class GatewayError(Exception):
    """Base class for all database gateway errors."""


class ConnectionTestError(GatewayError):
    """The liveness check against a candidate config failed."""


class ConnectFailure(GatewayError):
    """Opening the session pool failed; the session was left empty."""


class SchemaIntrospectionError(ConnectFailure):
    """Both the full and the fallback catalog queries failed."""

    def __init__(self, full_error: str, fallback_error: str) -> None:
        self.full_error = full_error
        self.fallback_error = fallback_error
        super().__init__(
            f"Schema introspection failed: {full_error}; fallback query also failed: {fallback_error}"
        )


class NotInitializedError(GatewayError):
    """An operation needed an active session but none exists."""

    def __init__(
        self,
        message: str = "Database connection not initialized. Please connect to a database first.",
    ) -> None:
        super().__init__(message)


class QueryExecutionError(GatewayError):
    """A single statement failed at the driver level.

    ``connection_invalidated`` is set when the driver reports the underlying
    connection as lost, so the caller can drop the session.
    """

    def __init__(self, message: str, query: str, *, connection_invalidated: bool = False) -> None:
        self.query = query
        self.connection_invalidated = connection_invalidated
        super().__init__(message)


class IllegalTransitionError(GatewayError):
    """A lifecycle transition not allowed by the state machine was attempted."""
