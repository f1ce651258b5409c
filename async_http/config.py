from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .abstraction.headers import Header, HeadersLike, normalize_headers
from .tools.url_builder import split_base_url

DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings of an :class:`~async_http.client.HTTPClient`."""

    scheme: str = "https"
    """URL scheme, ``https`` unless told otherwise."""

    host: str = ""
    """Target host. An empty host is only rejected when a request is built."""

    port: Optional[int] = None
    """Explicit port, or ``None`` for the scheme default."""

    path: str = ""
    """Base path prepended to every endpoint (plain concatenation)."""

    default_headers: tuple[Header, ...] = field(default_factory=tuple)
    """Headers sent with every request; per-call headers override them by name."""

    timeout: float = DEFAULT_TIMEOUT
    """Per-request timeout in seconds."""

    sweep_expired_cookies: bool = True
    """Drop expired cookies from the store before each request reads it."""

    @classmethod
    def from_base_url(
        cls,
        base_url: str,
        *,
        default_headers: HeadersLike = None,
        timeout: float = DEFAULT_TIMEOUT,
        sweep_expired_cookies: bool = True,
    ) -> "ClientConfig":
        """
        Args:
            base_url: e.g. ``https://api.test:8443/v1``
            default_headers: mapping, ``(name, value)`` pairs or ``Header`` objects
            timeout: per-request timeout in seconds
            sweep_expired_cookies: see :attr:`sweep_expired_cookies`
        """
        scheme, host, port, path = split_base_url(base_url)
        return cls(
            scheme=scheme,
            host=host,
            port=port,
            path=path,
            default_headers=tuple(normalize_headers(default_headers)),
            timeout=timeout,
            sweep_expired_cookies=sweep_expired_cookies,
        )

    def with_base_url(self, base_url: str) -> "ClientConfig":
        """Same settings, different endpoint."""
        scheme, host, port, path = split_base_url(base_url)
        return replace(self, scheme=scheme, host=host, port=port, path=path)
