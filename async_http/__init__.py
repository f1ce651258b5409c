from .abstraction.cookies import Cookie
from .abstraction.headers import Header
from .abstraction.http import URL, HttpMethod, QueryParam, StatusClass
from .abstraction.request import Request
from .abstraction.response import DecodedResponse, Response
from .client import CallState, HTTPClient
from .config import ClientConfig
from .cookie_store import CookieStore
from .errors import (
    DecodeError,
    EncodingError,
    HTTPClientError,
    MalformedURLError,
    StorageError,
    TransportError,
)
from .tools.request_builder import QueryPlacement

__all__ = [
    "CallState",
    "ClientConfig",
    "Cookie",
    "CookieStore",
    "DecodeError",
    "DecodedResponse",
    "EncodingError",
    "HTTPClient",
    "HTTPClientError",
    "Header",
    "HttpMethod",
    "MalformedURLError",
    "QueryParam",
    "QueryPlacement",
    "Request",
    "Response",
    "StatusClass",
    "StorageError",
    "TransportError",
    "URL",
]

__version__ = "0.1.0"
