"""
Body codecs.

``decode`` turns a raw response body into whatever type the caller asked for:

* ``bytes``                      — the body as-is
* ``str``                        — text in the response charset
* ``None`` / ``type(None)``      — body discarded
* a type with ``from_bytes()``   — the :class:`Decodable` protocol
* anything else                  — validated by pydantic's ``TypeAdapter``
  (models, dataclasses, TypedDicts, ``dict``, ``list[int]``, ...)

``encode_json`` serializes request payloads with ``pydantic_core``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from ..errors import DecodeError, EncodingError

T = TypeVar("T")

__all__ = ["Decodable", "decode", "encode_json"]


@runtime_checkable
class Decodable(Protocol):
    """Anything that can be produced from a byte body."""

    @classmethod
    def from_bytes(cls, data: bytes) -> Any: ...


@lru_cache(maxsize=256)
def _adapter(into: Any) -> TypeAdapter:
    return TypeAdapter(into)


def _adapter_for(into: Any) -> TypeAdapter:
    try:
        return _adapter(into)
    except TypeError:
        # unhashable typing constructs
        return TypeAdapter(into)


def decode(body: bytes, into: Any, *, encoding: str = "utf-8") -> Any:
    """Decode ``body`` into ``into``. Raises :class:`DecodeError`."""
    if into is bytes:
        return body
    if into is str:
        try:
            return body.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise DecodeError(f"Body is not valid {encoding} text: {exc}") from exc
    if into is None or into is type(None):
        return None
    if isinstance(into, type) and callable(getattr(into, "from_bytes", None)) and not issubclass(into, int):
        try:
            return into.from_bytes(body)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"{into.__name__}.from_bytes failed: {exc}") from exc

    try:
        adapter = _adapter_for(into)
    except Exception as exc:  # pydantic cannot build a schema for this type
        raise DecodeError(f"Cannot decode into {into!r}: {exc}") from exc
    try:
        return adapter.validate_json(body)
    except ValidationError as exc:
        raise DecodeError(f"Response body does not match {into!r}: {exc}") from exc


def encode_json(payload: Any) -> bytes:
    """JSON-encode ``payload``. Raises :class:`EncodingError`."""
    try:
        return to_json(payload)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise EncodingError(f"Cannot serialize payload to JSON: {exc}") from exc
