"""Errors raised by the remote resource gateway."""


class GatewayError(Exception):
    """Base exception for failures of the backing service."""

    pass


class StorageError(GatewayError):
    """Raised when an object storage call fails."""

    pass


class DatabaseError(GatewayError):
    """Raised when a query against the records table fails."""

    pass


class AuthError(GatewayError):
    """Raised when an authentication call fails."""

    pass
