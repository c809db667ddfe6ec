"""JSON wire codec."""

from __future__ import annotations

import json
from typing import Any, Protocol

from .errors import CodecError


class Codec(Protocol):
    def encode(self, value: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


class JsonCodec:
    """Encodes request payloads and decodes response bodies as UTF-8 JSON."""

    def encode(self, value: Any) -> bytes:
        return json.dumps(value, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        if not data or not data.strip():
            return {}
        try:
            return json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CodecError(f"Malformed response body: {e}") from e
