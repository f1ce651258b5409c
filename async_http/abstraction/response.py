from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Generic, Mapping, Optional, TypeVar

from .cookies import Cookie
from .http import URL, StatusClass
from .request import Request
from ..tools.codec import decode

T = TypeVar("T")


@dataclass(frozen=True)
class Response:
    """Represents the raw response of a request."""

    request: Request
    """The request that was made."""

    url: URL
    """The URL of the response. Due to redirects, it can differ from `request.url`."""

    status_code: int
    """The status code of the response."""

    headers: Mapping[str, str]
    """The headers of the response, names lower-cased."""

    body: bytes
    """The raw body of the response."""

    set_cookie_headers: tuple[str, ...] = ()
    """Every raw ``Set-Cookie`` header value, in order of arrival."""

    cookies: list[Cookie] = field(default_factory=list)
    """The cookies parsed from ``Set-Cookie``."""

    duration: float = 0.0
    """The duration of the request in seconds."""

    encoding: str = "utf-8"
    """Charset taken from ``Content-Type``."""

    @property
    def text(self) -> str:
        return self.body.decode(self.encoding, errors="replace")

    def json(self) -> Any:
        """Parsed JSON body. Raises :class:`~async_http.errors.DecodeError`."""
        return decode(self.body, Any, encoding=self.encoding)

    @property
    def status(self) -> Optional[HTTPStatus]:
        try:
            return HTTPStatus(self.status_code)
        except ValueError:
            return None

    @property
    def status_class(self) -> StatusClass:
        return StatusClass.of(self.status_code)

    @property
    def is_success(self) -> bool:
        return self.status_class is StatusClass.SUCCESS

    @property
    def is_redirection(self) -> bool:
        return self.status_class is StatusClass.REDIRECTION

    @property
    def is_client_error(self) -> bool:
        return self.status_class is StatusClass.CLIENT_ERROR

    @property
    def is_server_error(self) -> bool:
        return self.status_class is StatusClass.SERVER_ERROR

    @property
    def is_internal_server_error(self) -> bool:
        return self.status_code == HTTPStatus.INTERNAL_SERVER_ERROR


@dataclass(frozen=True)
class DecodedResponse(Generic[T]):
    """The decoded body together with the response it came from."""

    data: T
    response: Response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def status_class(self) -> StatusClass:
        return self.response.status_class
