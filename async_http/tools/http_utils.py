"""
HTTP helpers (Set-Cookie parsing, charset).

No dependency on curl_cffi: only stdlib + our Cookie model. Every function is
pure, so each one is easy to test on its own.
"""
from __future__ import annotations

import logging
import time
from email.utils import parsedate_to_datetime
from typing import Any, Iterable, Mapping, Optional

from ..abstraction.cookies import Cookie

logger = logging.getLogger(__name__)

# ───────────────────── charset helper ────────────────────────────────


def guess_encoding(headers: Mapping[str, str]) -> str:
    ctype = headers.get("content-type", "")
    if "charset=" in ctype:
        return (
            ctype.split("charset=", 1)[1].split(";", 1)[0].strip(" \"'") or "utf-8"
        )
    return "utf-8"


# ───────────────────── Set-Cookie collection ─────────────────────────


def collect_set_cookie_headers(headers: Any) -> list[str]:
    """
    Every raw *Set-Cookie* value of a response.

    curl_cffi ``Headers`` expose ``get_list``; plain mappings may hold either a
    single string or a list of strings. Values are never split on commas, since
    ``Expires`` dates contain one.
    """
    get_list = getattr(headers, "get_list", None)
    if callable(get_list):
        return [str(v) for v in get_list("set-cookie") if v]

    out: list[str] = []
    items: Iterable = headers.items() if isinstance(headers, Mapping) else headers
    for k, v in items:
        if str(k).lower() != "set-cookie":
            continue
        if isinstance(v, (list, tuple)):
            out.extend(str(x) for x in v if x)
        elif v:
            out.append(str(v))
    return out


# ───────────────────── Set-Cookie → Cookie objects ───────────────────


def _parse_expires(raw: str) -> Optional[float]:
    try:
        return parsedate_to_datetime(raw).timestamp()
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def _parse_max_age(raw: str, now: float) -> Optional[float]:
    try:
        seconds = int(raw)
    except ValueError:
        return None
    # RFC 6265 §5.2.2: a non-positive Max-Age expires the cookie right away
    return now + seconds if seconds > 0 else now - 1


def _split_cookie_string(raw: str) -> Optional[tuple[str, str, list[tuple[str, str]]]]:
    """
    RFC 6265 §5.2: the first ``;``-separated pair is the cookie, every later
    one is an attribute. Returns ``None`` for strings a user agent must ignore.
    """
    pair, *attrs = raw.split(";")
    if "=" not in pair:
        return None
    name, _, value = pair.partition("=")
    name = name.strip()
    if not name:
        return None
    attributes = []
    for av in attrs:
        key, _, val = av.partition("=")
        attributes.append((key.strip().lower(), val.strip()))
    return name, value.strip(), attributes


def parse_set_cookie(
    raw_headers: Iterable[str], default_domain: str, *, now: Optional[float] = None
) -> list[Cookie]:
    """
    Parse raw *Set-Cookie* values; ``Max-Age`` takes precedence over ``Expires``.

    Attributes this client has no use for (``SameSite``, ``Priority``,
    ``Partitioned``, ...) are skipped; they never become cookies of their own.
    """
    now = time.time() if now is None else now
    out: list[Cookie] = []
    for raw in raw_headers:
        parsed = _split_cookie_string(raw)
        if parsed is None:
            logger.debug("ignoring malformed Set-Cookie %r", raw)
            continue
        name, value, attributes = parsed

        domain = path = None
        max_age = expires = None
        secure = http_only = False
        for key, val in attributes:
            if key == "expires":
                expires = _parse_expires(val)
            elif key == "max-age":
                max_age = _parse_max_age(val, now)
            elif key == "domain" and val:
                domain = val
            elif key == "path":
                # §5.2.4: anything not starting with "/" falls back to the default
                path = val if val.startswith("/") else None
            elif key == "secure":
                secure = True
            elif key == "httponly":
                http_only = True

        out.append(
            Cookie(
                name=name,
                value=value,
                domain=(domain or default_domain).lstrip(".").lower(),
                path=path or "/",
                expires=max_age if max_age is not None else expires,
                secure=secure,
                http_only=http_only,
            )
        )
    return out


def compose_cookie_header(cookies: Iterable[Cookie]) -> str:
    """``name=value; name2=value2`` or an empty string."""
    return "; ".join(c.to_header_pair() for c in cookies)
