from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass
class Cookie:
    """
    A dataclass containing the information about a cookie.

    Please, see the MDN Web Docs for the full documentation:
    https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/Set-Cookie
    """

    name: str
    """
    This is the name of the cookie that will be used to identify the cookie in the Cookie header.
    """

    value: str
    """
    This is the value that will be sent with the Cookie header.
    """

    domain: str = ""
    """
    This is the domain the cookie is stored under. Together with ``name`` it is the storage key.
    """

    path: str = "/"
    """
    This is the path from which the cookie will be readable.
    """

    expires: Optional[float] = None
    """
    This is the date when the cookie expires. Coded in Unix timestamp; ``None`` means a session cookie.
    """

    secure: bool = False
    """
    This is whether the cookie will be sent over a secure connection.
    """

    http_only: bool = False
    """
    This is whether the cookie will be accessible to JavaScript.
    """

    @property
    def key(self) -> tuple[str, str]:
        """Storage identity: ``(domain, name)``."""
        return (self.domain.lower(), self.name)

    def is_expired(self, now: Optional[float] = None) -> bool:
        """True if ``expires`` is set and strictly in the past."""
        if self.expires is None:
            return False
        now = time.time() if now is None else now
        return self.expires < now

    def expires_as_datetime(self) -> Optional[datetime]:
        """
        This is the same as the `expires` property but as an aware UTC datetime.
        """
        if self.expires is None:
            return None
        return datetime.fromtimestamp(self.expires, tz=timezone.utc)

    def to_header_pair(self) -> str:
        return f"{self.name}={self.value}"
