from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import urlsplit


class HttpMethod(Enum):
    """HTTP request methods understood by the client."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    UPDATE = "UPDATE"
    HEAD = "HEAD"
    TRACE = "TRACE"
    OPTIONS = "OPTIONS"
    CONNECT = "CONNECT"
    SEARCH = "SEARCH"
    COPY = "COPY"
    MERGE = "MERGE"
    LABEL = "LABEL"
    LOCK = "LOCK"
    UNLOCK = "UNLOCK"
    MOVE = "MOVE"
    MKCOL = "MKCOL"
    PROPFIND = "PROPFIND"
    PROPPATCH = "PROPPATCH"

    @classmethod
    def coerce(cls, method: "HttpMethod | str") -> "HttpMethod":
        """Accept an enum member or its (case-insensitive) string form."""
        if isinstance(method, HttpMethod):
            return method
        try:
            return cls[str(method).upper()]
        except KeyError:
            raise ValueError(f"Unknown HTTP method: {method!r}") from None

    @property
    def has_body(self) -> bool:
        """Whether the method carries a serialized payload."""
        return self in _BODY_METHODS


_BODY_METHODS = frozenset(
    {
        HttpMethod.POST,
        HttpMethod.PUT,
        HttpMethod.PATCH,
        HttpMethod.DELETE,
        HttpMethod.UPDATE,
        HttpMethod.SEARCH,
        HttpMethod.MERGE,
        HttpMethod.LOCK,
        HttpMethod.PROPFIND,
        HttpMethod.PROPPATCH,
    }
)


class StatusClass(Enum):
    """Coarse classification of an HTTP status code."""

    INFORMATIONAL = "informational"
    SUCCESS = "success"
    REDIRECTION = "redirection"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, status_code: int) -> "StatusClass":
        return _STATUS_CLASSES.get(status_code // 100, cls.UNKNOWN)


_STATUS_CLASSES = {
    1: StatusClass.INFORMATIONAL,
    2: StatusClass.SUCCESS,
    3: StatusClass.REDIRECTION,
    4: StatusClass.CLIENT_ERROR,
    5: StatusClass.SERVER_ERROR,
}


@dataclass(frozen=True)
class URL:
    """A parsed, read-only view of an absolute URL."""

    full_url: str
    """The absolute URL as it goes on the wire."""

    scheme: str = field(init=False)
    domain: str = field(init=False)
    """Lower-cased host, without port."""

    port: Optional[int] = field(init=False)
    path: str = field(init=False)
    query: str = field(init=False)

    def __post_init__(self) -> None:
        parts = urlsplit(self.full_url)
        object.__setattr__(self, "scheme", parts.scheme)
        object.__setattr__(self, "domain", (parts.hostname or "").lower())
        object.__setattr__(self, "port", parts.port)
        object.__setattr__(self, "path", parts.path)
        object.__setattr__(self, "query", parts.query)

    @property
    def secure(self) -> bool:
        return self.scheme in ("https", "wss")

    def __str__(self) -> str:
        return self.full_url


@dataclass(frozen=True)
class QueryParam:
    """A single ``name=value`` query item."""

    name: str
    value: str

    def __str__(self) -> str:
        return f"{self.name}={self.value}"


QueryLike = Union[
    None,
    Mapping[str, Any],
    Iterable[QueryParam],
    Iterable[Tuple[str, Any]],
]


def normalize_query(params: QueryLike) -> list[QueryParam]:
    """Accept a mapping, ``(name, value)`` pairs or ``QueryParam`` objects; keep order."""
    if params is None:
        return []
    if isinstance(params, Mapping):
        return [QueryParam(str(k), str(v)) for k, v in params.items()]
    out: list[QueryParam] = []
    for item in params:
        if isinstance(item, QueryParam):
            out.append(item)
        else:
            name, value = item
            out.append(QueryParam(str(name), str(value)))
    return out
