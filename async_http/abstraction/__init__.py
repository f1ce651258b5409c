from .cookies import Cookie
from .headers import Header
from .http import URL, HttpMethod, QueryParam, StatusClass
from .request import Request
from .response import DecodedResponse, Response

__all__ = [
    "Cookie",
    "DecodedResponse",
    "Header",
    "HttpMethod",
    "QueryParam",
    "Request",
    "Response",
    "StatusClass",
    "URL",
]
