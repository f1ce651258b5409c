"""
URL builder: ``scheme://host[:port]`` + ``base_path + endpoint`` + ``?query``.

The path is a plain concatenation; duplicate slashes are kept as-is, so
callers own the segment boundaries. Everything is validated here, before any
network I/O happens.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote, urlencode, urlsplit

from ..abstraction.http import URL, QueryLike, QueryParam, normalize_query
from ..errors import MalformedURLError

__all__ = ["EndpointTarget", "build_url", "encode_query", "split_base_url"]

# RFC 3986 §3.1
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
# reg-name (unreserved / pct-encoded / sub-delims) or a bracketed IP literal
_HOST_RE = re.compile(r"^(?:\[[0-9A-Fa-f:.]+\]|[A-Za-z0-9\-._~!$&'()*+,;=%]+)$")
_PATH_SAFE = "/:@!$&'()*+,;=~%"


def encode_query(params: QueryLike) -> str:
    """``name=value`` pairs joined with ``&``, percent-encoded, in the given order."""
    pairs = [(p.name, p.value) for p in normalize_query(params)]
    return urlencode(pairs, quote_via=quote)


def build_url(
    scheme: str,
    host: str,
    port: Optional[int],
    base_path: str,
    endpoint: str,
    query_params: QueryLike = None,
) -> URL:
    """Compose and validate an absolute URL. Raises :class:`MalformedURLError`."""
    if not scheme or not _SCHEME_RE.match(scheme):
        raise MalformedURLError(f"Invalid URL scheme: {scheme!r}")
    if not host:
        raise MalformedURLError("URL host is empty")
    if not _HOST_RE.match(host):
        raise MalformedURLError(f"Invalid URL host: {host!r}")
    if port is not None and not 0 <= port <= 65535:
        raise MalformedURLError(f"Invalid URL port: {port!r}")

    path = (base_path or "") + (endpoint or "")
    if path and not path.startswith("/"):
        raise MalformedURLError(
            f"Path {path!r} must start with '/' when a host is present"
        )

    authority = host if port is None else f"{host}:{port}"
    url = f"{scheme.lower()}://{authority}{quote(path, safe=_PATH_SAFE)}"
    query = encode_query(query_params)
    if query:
        url = f"{url}?{query}"
    return URL(full_url=url)


def split_base_url(base_url: str) -> tuple[str, str, Optional[int], str]:
    """
    Split a base URL into ``(scheme, host, port, path)``.

    A missing scheme defaults to ``https`` and a missing host is left empty, so
    an unusable base only fails once a request is built.
    """
    try:
        parts = urlsplit(base_url)
        port = parts.port
    except ValueError as exc:
        raise MalformedURLError(f"Cannot parse base URL {base_url!r}: {exc}") from exc
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    return (parts.scheme or "https", host, port, parts.path)


@dataclass(frozen=True)
class EndpointTarget:
    """Everything needed to resolve one request URL."""

    scheme: str
    host: str
    port: Optional[int] = None
    base_path: str = ""
    endpoint: str = ""
    query_params: tuple[QueryParam, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        scheme: str,
        host: str,
        port: Optional[int] = None,
        base_path: str = "",
        endpoint: str = "",
        query_params: QueryLike = None,
    ) -> "EndpointTarget":
        return cls(scheme, host, port, base_path, endpoint, tuple(normalize_query(query_params)))

    @property
    def domain(self) -> str:
        return self.host.strip("[]").lower()

    def build_url(self, *, with_query: bool = True) -> URL:
        return build_url(
            self.scheme,
            self.host,
            self.port,
            self.base_path,
            self.endpoint,
            self.query_params if with_query else None,
        )
