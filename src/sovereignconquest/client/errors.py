"""Exception types raised by the Sovereign Conquest client."""

from typing import Optional


class ClientError(RuntimeError):
    """Base class for client-side failures."""


class ApiError(ClientError):
    """Raised when the server answers with a non-success status."""

    def __init__(
        self, endpoint: str, status: int, message: str, data: Optional[object] = None
    ) -> None:
        super().__init__(message or f"HTTP {status}")
        self.endpoint = endpoint
        self.status = status
        self.message = message or f"HTTP {status}"
        self.data = data

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(endpoint={self.endpoint!r}, "
            f"status={self.status}, message={self.message!r})"
        )


class AuthenticationError(ApiError):
    """The server rejected the bearer credential (HTTP 401)."""


class TransportError(ApiError):
    """The request never produced a usable response (network or decoding failure)."""

    def __init__(self, endpoint: str, message: str = "Network error") -> None:
        super().__init__(endpoint, 0, message)


class SessionError(ClientError):
    """The operation is not available in the current session phase."""
