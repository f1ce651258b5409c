"""
Request builder: method + target + payload + headers → :class:`Request`.

Query items do double duty. With :attr:`QueryPlacement.AUTO` they go on the URL,
unless the merged headers say ``application/x-www-form-urlencoded``: then they
become the body and the URL is left without a query string. ``URL`` and
``BODY`` force the placement explicitly.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from ..abstraction.headers import (
    JSON_CONTENT_TYPE,
    Header,
    HeadersLike,
    find,
    is_form_url_encoded,
    merge,
    normalize_headers,
)
from ..abstraction.http import HttpMethod
from ..abstraction.request import Request
from ..errors import EncodingError
from .codec import encode_json
from .url_builder import EndpointTarget, encode_query

__all__ = ["QueryPlacement", "build_request", "encode_body"]

logger = logging.getLogger(__name__)


class QueryPlacement(Enum):
    """Where the query items of a call end up."""

    AUTO = "auto"
    """URL, or the body when the request is form-url-encoded."""

    URL = "url"
    BODY = "body"


def encode_body(payload: Any) -> Optional[bytes]:
    """Serialize a payload: ``bytes``/``str`` verbatim, everything else as JSON."""
    if payload is None:
        return None
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return encode_json(payload)


def build_request(
    method: HttpMethod | str,
    target: EndpointTarget,
    body: Any = None,
    headers: HeadersLike = None,
    *,
    default_headers: HeadersLike = None,
    query_placement: QueryPlacement = QueryPlacement.AUTO,
) -> Request:
    """
    Build a fully-determined :class:`Request`.

    Raises :class:`~async_http.errors.MalformedURLError` for a bad target and
    :class:`~async_http.errors.EncodingError` for a payload that cannot be
    serialized.
    """
    method_enum = HttpMethod.coerce(method)
    all_headers: list[Header] = merge(
        normalize_headers(default_headers), normalize_headers(headers)
    )

    if query_placement is QueryPlacement.AUTO:
        query_in_body = is_form_url_encoded(all_headers)
    else:
        query_in_body = query_placement is QueryPlacement.BODY

    url = target.build_url(with_query=not query_in_body)

    payload: Optional[bytes] = None
    if query_in_body:
        if body is not None:
            logger.warning(
                "%s %s: form-encoded request, payload ignored in favour of query items",
                method_enum.value,
                url,
            )
        payload = encode_query(target.query_params).encode("ascii")
    elif body is not None:
        if not method_enum.has_body:
            raise EncodingError(f"{method_enum.value} requests cannot carry a payload")
        payload = encode_body(body)
        if not isinstance(body, (bytes, bytearray, memoryview, str)) and find(
            all_headers, "content-type"
        ) is None:
            all_headers.append(Header.content_type(JSON_CONTENT_TYPE))

    return Request(
        method=method_enum,
        url=url,
        headers=tuple(all_headers),
        body=payload,
    )
