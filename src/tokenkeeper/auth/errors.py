"""Error kinds raised by the session layer."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for every error raised by tokenkeeper."""


class IdentityGatewayError(SessionError):
    """Raised when the identity endpoint rejects a call.

    ``message`` is the server-supplied text; ``status`` is the HTTP status or
    ``None`` when no response was received.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class InvalidCredentials(IdentityGatewayError):
    """Raised when the login route rejects the submitted credentials."""


class TransportFailure(IdentityGatewayError):
    """Raised when the endpoint is unreachable or returns a malformed payload."""


class NoActiveSession(SessionError):
    """Raised when logout is requested without an authenticated user."""

    def __init__(self, message: str = "No user logged in") -> None:
        super().__init__(message)


class NoCredentialsAvailable(SessionError):
    """Raised when renewal is requested without a credential pair."""

    def __init__(self, message: str = "No tokens available") -> None:
        super().__init__(message)


class RefreshExpired(SessionError):
    """Raised when renewal is attempted with an expired refresh credential."""

    def __init__(self, message: str = "Refresh token expired") -> None:
        super().__init__(message)
