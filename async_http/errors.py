"""
errors — typed errors of the client core.

Every failure is a distinct subclass of :class:`HTTPClientError`, so callers can
catch them one by one or all at once.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .abstraction.request import Request
    from .abstraction.response import Response

__all__ = [
    "HTTPClientError",
    "MalformedURLError",
    "EncodingError",
    "TransportError",
    "DecodeError",
    "StorageError",
]


class HTTPClientError(Exception):
    """Base class for every error raised by the client."""


class MalformedURLError(HTTPClientError, ValueError):
    """Scheme/host/port/path cannot form a valid URL. Raised before any I/O."""


class EncodingError(HTTPClientError, ValueError):
    """The request payload cannot be serialized into the requested representation."""


class TransportError(HTTPClientError):
    """Connection, timeout or TLS failure while waiting for the response."""

    def __init__(self, message: str, *, request: Optional["Request"] = None) -> None:
        super().__init__(message)
        self.request = request


class DecodeError(HTTPClientError):
    """The response body does not match the requested type."""

    def __init__(
        self,
        message: str,
        *,
        request: Optional["Request"] = None,
        response: Optional["Response"] = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.response = response


class StorageError(HTTPClientError):
    """The cookie persistence backend is unavailable or corrupt."""
