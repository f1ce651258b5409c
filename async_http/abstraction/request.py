from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .headers import Header, as_map
from .http import URL, HttpMethod


@dataclass(frozen=True)
class Request:
    """Represents all the data passed in the request. Fully determined before dispatch."""

    method: HttpMethod
    """The method used in the request."""

    url: URL
    """The URL of the request."""

    headers: tuple[Header, ...] = field(default_factory=tuple)
    """The merged headers of the request, including ``Cookie`` if any was attached."""

    body: Optional[bytes] = None
    """The encoded body of the request."""

    def header_map(self) -> dict[str, str]:
        """The headers as a last-write-wins dictionary."""
        return as_map(self.headers)
