"""
Header set: immutable name/value pairs with case-insensitive identity.

All functions here are pure; they never mutate their inputs.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

FORM_URL_ENCODED = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

HeadersLike = Union[
    None,
    Mapping[str, str],
    Iterable["Header"],
    Iterable[Tuple[str, str]],
]


@dataclass(frozen=True)
class Header:
    """A single HTTP header."""

    name: str
    """Header name. Compared case-insensitively."""

    value: str
    """Opaque header value."""

    @property
    def key(self) -> str:
        """Identity used by :func:`merge`."""
        return self.name.lower()

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"

    # ────── factories ──────
    @classmethod
    def accept(cls, value: str) -> "Header":
        return cls("Accept", value)

    @classmethod
    def accept_encoding(cls, value: str) -> "Header":
        return cls("Accept-Encoding", value)

    @classmethod
    def authorization(cls, value: str) -> "Header":
        return cls("Authorization", value)

    @classmethod
    def bearer(cls, token: str) -> "Header":
        return cls.authorization(f"Bearer {token}")

    @classmethod
    def basic_auth(cls, username: str, password: str) -> "Header":
        credential = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        return cls.authorization(f"Basic {credential}")

    @classmethod
    def content_disposition(cls, value: str) -> "Header":
        return cls("Content-Disposition", value)

    @classmethod
    def content_type(cls, value: str) -> "Header":
        return cls("Content-Type", value)

    @classmethod
    def content_length(cls, value: Union[int, str]) -> "Header":
        return cls("Content-Length", str(value))

    @classmethod
    def user_agent(cls, value: str) -> "Header":
        return cls("User-Agent", value)

    @classmethod
    def custom(cls, name: str, value: str) -> "Header":
        return cls(name, value)


def normalize_headers(headers: HeadersLike) -> list[Header]:
    """Turn a mapping, ``(name, value)`` pairs or ``Header`` objects into a list."""
    if headers is None:
        return []
    if isinstance(headers, Mapping):
        return [Header(str(k), str(v)) for k, v in headers.items()]
    out: list[Header] = []
    for item in headers:
        if isinstance(item, Header):
            out.append(item)
        else:
            name, value = item
            out.append(Header(str(name), str(value)))
    return out


def merge(base: Iterable[Header], override: Iterable[Header]) -> list[Header]:
    """
    Merge two header sets; ``override`` wins on a (case-insensitive) name clash.

    Headers absent from ``override`` are carried over from ``base`` unchanged.
    Callers must not rely on the order of the result.
    """
    merged: dict[str, Header] = {}
    for h in base:
        merged[h.key] = h
    for h in override:
        merged[h.key] = h
    return list(merged.values())


def as_map(headers: Iterable[Header]) -> dict[str, str]:
    """Last-write-wins dictionary. The key keeps the casing of the last writer."""
    names: dict[str, str] = {}
    values: dict[str, str] = {}
    for h in headers:
        names[h.key] = h.name
        values[h.key] = h.value
    return {names[k]: values[k] for k in values}


def find(headers: Iterable[Header], name: str) -> Optional[Header]:
    """Last header called ``name`` (case-insensitive), or ``None``."""
    found = None
    wanted = name.lower()
    for h in headers:
        if h.key == wanted:
            found = h
    return found


def is_form_url_encoded(headers: Sequence[Header]) -> bool:
    """True iff ``Content-Type`` is ``application/x-www-form-urlencoded``."""
    ctype = find(headers, "content-type")
    if ctype is None:
        return False
    return ctype.value.split(";", 1)[0].strip().lower() == FORM_URL_ENCODED
