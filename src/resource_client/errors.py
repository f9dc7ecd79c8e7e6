"""Exception hierarchy for the resource API client.

Only an expired-token response is recovered locally (by re-acquiring the
token and replaying the request once); every other error propagates to the
caller of the originating operation.
"""

from typing import Any


class ResourceClientError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(ResourceClientError):
    """Raised before any network call when a required argument is missing."""


class TransportError(ResourceClientError):
    """Raised when the network call failed without producing an HTTP response."""


class HTTPError(ResourceClientError):
    """Raised for a response with status >= 400 that is not retried."""

    def __init__(self, message: str, *, status_code: int, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthExpiryError(HTTPError):
    """Raised when a request replayed after token renewal is rejected as expired again."""


class TokenAcquisitionError(ResourceClientError):
    """Raised when the token endpoint fails or returns a malformed success response."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


__all__ = [
    "AuthExpiryError",
    "HTTPError",
    "ResourceClientError",
    "TokenAcquisitionError",
    "TransportError",
    "ValidationError",
]
