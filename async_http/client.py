"""
client — asynchronous HTTP client with a persistent, shared cookie store.

Main methods
============
* ``HTTPClient.request`` — build, send, capture cookies, decode into a type.
* ``HTTPClient.send``    — same, but returns the decoded data with its Response.
* ``HTTPClient.fetch``   — same pipeline without decoding, returns the Response.
* ``HTTPClient.build``   — only the building step, returns the Request.
* ``get``/``post``/``put``/``patch``/``delete``/``update``/``form`` — verb shortcuts.

Call lifecycle
==============
``IDLE → BUILDING → AWAITING_RESPONSE → DECODING → COMPLETE | FAILED``, linear,
no retries. Every failure before ``AWAITING_RESPONSE`` happens without I/O.
``Set-Cookie`` headers are captured for every response, whatever its status;
a storage failure at that point is reported to ``on_cookie_error`` and does not
fail the call. Status codes never gate decoding: check ``status_class``
yourself if a non-2xx response should be treated differently.

The transport is a curl_cffi ``AsyncSession``. Pass your own through
``session=`` to share it (the client will not close an injected session).
Every request is sent with ``discard_cookies=True``: the session's own jar is
never fed, so the ``Cookie`` header built from the store is the only one that
replays cookies.
"""
from __future__ import annotations

import itertools
import logging
from enum import Enum
from time import perf_counter
from types import TracebackType
from typing import Any, Callable, Optional, TypeVar, Union

from curl_cffi import CurlError
from curl_cffi import requests as cffi_requests

from .abstraction.headers import (
    FORM_URL_ENCODED,
    Header,
    HeadersLike,
    merge,
    normalize_headers,
)
from .abstraction.http import URL, HttpMethod, QueryLike
from .abstraction.request import Request
from .abstraction.response import DecodedResponse, Response
from .config import DEFAULT_TIMEOUT, ClientConfig
from .cookie_store import CookieStore
from .errors import DecodeError, HTTPClientError, StorageError, TransportError
from .tools.codec import decode
from .tools.http_utils import (
    collect_set_cookie_headers,
    guess_encoding,
    parse_set_cookie,
)
from .tools.request_builder import QueryPlacement, build_request
from .tools.url_builder import EndpointTarget

__all__ = ["CallState", "HTTPClient"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

CookieErrorHandler = Callable[[StorageError], None]


class CallState(Enum):
    """States a single call moves through."""

    IDLE = "idle"
    BUILDING = "building"
    AWAITING_RESPONSE = "awaiting_response"
    DECODING = "decoding"
    COMPLETE = "complete"
    FAILED = "failed"


_call_ids = itertools.count(1)


def _log_state(call_id: int, state: CallState, request: Optional[Request] = None) -> None:
    if request is None:
        logger.debug("call #%d → %s", call_id, state.name)
    else:
        logger.debug(
            "call #%d → %s (%s %s)", call_id, state.name, request.method.value, request.url
        )


def _default_cookie_error_handler(error: StorageError) -> None:
    logger.warning("cookie capture failed: %s", error)


class HTTPClient:
    """curl_cffi.AsyncSession + ClientConfig + shared CookieStore."""

    def __init__(
        self,
        config: Union[ClientConfig, str, None] = None,
        *,
        default_headers: HeadersLike = None,
        timeout: float = DEFAULT_TIMEOUT,
        cookie_store: Optional[CookieStore] = None,
        session: Optional[cffi_requests.AsyncSession] = None,
        on_cookie_error: Optional[CookieErrorHandler] = None,
    ) -> None:
        """
        Args:
            config: a ready :class:`ClientConfig`, or a base URL string
            default_headers: only used when ``config`` is a base URL string
            timeout: only used when ``config`` is a base URL string
            cookie_store: store shared with other clients; a private in-memory
                store is created when omitted
            session: curl_cffi ``AsyncSession`` (or anything with the same
                ``request`` coroutine); created lazily when omitted
            on_cookie_error: receives storage errors raised while capturing
                ``Set-Cookie``; logs a warning by default
        """
        if not isinstance(config, ClientConfig):
            config = ClientConfig.from_base_url(
                config or "", default_headers=default_headers, timeout=timeout
            )
        self.config: ClientConfig = config
        """Endpoint, default headers and timeout."""

        if cookie_store is None:
            logger.debug("no cookie store given, using a private in-memory one")
            cookie_store = CookieStore()
        self.cookies: CookieStore = cookie_store
        """Cookie store shared with every client it was passed to."""

        self.on_cookie_error: CookieErrorHandler = (
            on_cookie_error or _default_cookie_error_handler
        )

        self._session: Optional[cffi_requests.AsyncSession] = session
        self._owns_session: bool = session is None

    # ────── configuration ──────
    def set_base_url(self, base_url: str) -> None:
        """Point the client at another base URL, keeping headers and timeout."""
        self.config = self.config.with_base_url(base_url)

    @property
    def default_headers(self) -> tuple[Header, ...]:
        return self.config.default_headers

    def _target(self, endpoint: str, query_params: QueryLike) -> EndpointTarget:
        return EndpointTarget.create(
            scheme=self.config.scheme,
            host=self.config.host,
            port=self.config.port,
            base_path=self.config.path,
            endpoint=endpoint,
            query_params=query_params,
        )

    # ────── building ──────
    def build(
        self,
        method: HttpMethod | str,
        endpoint: str = "",
        query_params: QueryLike = None,
        body: Any = None,
        headers: HeadersLike = None,
        *,
        query_placement: QueryPlacement = QueryPlacement.AUTO,
    ) -> Request:
        """
        Build the request exactly as it would be sent, stored cookies included.

        Raises ``MalformedURLError``, ``EncodingError`` or ``StorageError``;
        never touches the network.
        """
        target = self._target(endpoint, query_params)
        override = normalize_headers(headers)

        if self.config.sweep_expired_cookies:
            self.cookies.delete_expired_cookies()
        cookie_header = self.cookies.get_cookie_header(target.domain)
        if cookie_header is not None:
            override = merge([cookie_header], override)

        return build_request(
            method,
            target,
            body,
            override,
            default_headers=self.config.default_headers,
            query_placement=query_placement,
        )

    # ────── transport ──────
    def _ensure_session(self) -> cffi_requests.AsyncSession:
        if self._session is None:
            self._session = cffi_requests.AsyncSession()
        return self._session

    async def _dispatch(self, call_id: int, request: Request) -> Response:
        session = self._ensure_session()
        _log_state(call_id, CallState.AWAITING_RESPONSE, request)

        t0 = perf_counter()
        try:
            r = await session.request(
                request.method.value,
                request.url.full_url,
                headers=request.header_map(),
                data=request.body,
                timeout=self.config.timeout,
                discard_cookies=True,
            )
        except CurlError as exc:
            raise TransportError(
                f"{request.method.value} {request.url} failed: {exc}", request=request
            ) from exc
        duration = perf_counter() - t0

        # response → cookies
        effective_url = URL(full_url=str(r.url or request.url.full_url))
        domain = effective_url.domain or request.url.domain
        raw_sc = collect_set_cookie_headers(r.headers)
        resp_cookies = parse_set_cookie(raw_sc, domain)
        if resp_cookies:
            try:
                self.cookies.save_cookies(resp_cookies, domain)
            except StorageError as exc:
                self.on_cookie_error(exc)

        resp_headers = {k.lower(): v for k, v in r.headers.items()}
        return Response(
            request=request,
            url=effective_url,
            status_code=r.status_code,
            headers=resp_headers,
            body=r.content or b"",
            set_cookie_headers=tuple(raw_sc),
            cookies=resp_cookies,
            duration=duration,
            encoding=guess_encoding(resp_headers),
        )

    async def _perform(
        self,
        method: HttpMethod | str,
        endpoint: str,
        query_params: QueryLike,
        body: Any,
        headers: HeadersLike,
        query_placement: QueryPlacement,
        into: Any,
        decode_body: bool,
    ) -> DecodedResponse[Any]:
        call_id = next(_call_ids)
        _log_state(call_id, CallState.IDLE)
        try:
            _log_state(call_id, CallState.BUILDING)
            request = self.build(
                method,
                endpoint,
                query_params,
                body,
                headers,
                query_placement=query_placement,
            )
            response = await self._dispatch(call_id, request)

            data: Any = response
            if decode_body:
                _log_state(call_id, CallState.DECODING, request)
                try:
                    data = decode(response.body, into, encoding=response.encoding)
                except DecodeError as exc:
                    exc.request = request
                    exc.response = response
                    raise
        except HTTPClientError as exc:
            _log_state(call_id, CallState.FAILED)
            logger.debug("call #%d failed: %s", call_id, exc)
            raise

        _log_state(call_id, CallState.COMPLETE, request)
        return DecodedResponse(data=data, response=response)

    # ────── public API ──────
    async def request(
        self,
        method: HttpMethod | str,
        endpoint: str = "",
        query_params: QueryLike = None,
        body: Any = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
        query_placement: QueryPlacement = QueryPlacement.AUTO,
    ) -> T:
        """
        Send a request and decode the response body into ``into``.

        ``into`` defaults to ``Any`` (plain parsed JSON). Use ``bytes`` for the raw
        body, ``str`` for text, a pydantic model / dataclass / typed container
        for validated data, or a class with a ``from_bytes`` classmethod.
        """
        result = await self._perform(
            method, endpoint, query_params, body, headers, query_placement, into, True
        )
        return result.data

    async def send(
        self,
        method: HttpMethod | str,
        endpoint: str = "",
        query_params: QueryLike = None,
        body: Any = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
        query_placement: QueryPlacement = QueryPlacement.AUTO,
    ) -> DecodedResponse[T]:
        """Like :meth:`request`, but keeps the :class:`Response` next to the data."""
        return await self._perform(
            method, endpoint, query_params, body, headers, query_placement, into, True
        )

    async def fetch(
        self,
        method: HttpMethod | str,
        endpoint: str = "",
        query_params: QueryLike = None,
        body: Any = None,
        headers: HeadersLike = None,
        *,
        query_placement: QueryPlacement = QueryPlacement.AUTO,
    ) -> Response:
        """Send a request and return the raw :class:`Response` without decoding."""
        result = await self._perform(
            method, endpoint, query_params, body, headers, query_placement, None, False
        )
        return result.data

    # ────── verb shortcuts ──────
    async def get(
        self,
        endpoint: str = "",
        query_params: QueryLike = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
    ) -> T:
        return await self.request(
            HttpMethod.GET, endpoint, query_params, None, headers, into=into
        )

    async def post(
        self,
        endpoint: str = "",
        body: Any = None,
        query_params: QueryLike = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
    ) -> T:
        return await self.request(
            HttpMethod.POST, endpoint, query_params, body, headers, into=into
        )

    async def put(
        self,
        endpoint: str = "",
        body: Any = None,
        query_params: QueryLike = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
    ) -> T:
        return await self.request(
            HttpMethod.PUT, endpoint, query_params, body, headers, into=into
        )

    async def patch(
        self,
        endpoint: str = "",
        body: Any = None,
        query_params: QueryLike = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
    ) -> T:
        return await self.request(
            HttpMethod.PATCH, endpoint, query_params, body, headers, into=into
        )

    async def delete(
        self,
        endpoint: str = "",
        body: Any = None,
        query_params: QueryLike = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
    ) -> T:
        return await self.request(
            HttpMethod.DELETE, endpoint, query_params, body, headers, into=into
        )

    async def update(
        self,
        endpoint: str = "",
        body: Any = None,
        query_params: QueryLike = None,
        headers: HeadersLike = None,
        *,
        into: type[T] = Any,  # type: ignore[assignment]
    ) -> T:
        return await self.request(
            HttpMethod.UPDATE, endpoint, query_params, body, headers, into=into
        )

    async def form(
        self,
        endpoint: str = "",
        query_params: QueryLike = None,
        headers: HeadersLike = None,
        *,
        method: HttpMethod | str = HttpMethod.POST,
        into: type[T] = Any,  # type: ignore[assignment]
    ) -> T:
        """Send ``query_params`` as an ``application/x-www-form-urlencoded`` body."""
        form_headers = merge(
            [Header.content_type(FORM_URL_ENCODED)], normalize_headers(headers)
        )
        return await self.request(
            method,
            endpoint,
            query_params,
            None,
            form_headers,
            into=into,
        )

    # ────── cleanup ──────
    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HTTPClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()
