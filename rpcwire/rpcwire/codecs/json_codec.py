"""JSON-RPC 2.0 codec: a strict passthrough over ``json``."""

from __future__ import annotations

import json
from typing import Any

from rpcwire.codecs.base import Codec, DecodeError, EncodeError


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name!r}")


class JsonRpcCodec(Codec):
    """The internal message map already has the JSON-RPC wire shape."""

    name = "json"

    @property
    def content_type(self) -> str:
        return "application/json"

    def encode_request(self, data: Any) -> bytes:
        return self._dumps(data)

    def encode_response(self, data: Any) -> bytes:
        return self._dumps(data)

    def decode_request(self, data: bytes | str) -> Any:
        return self._loads(data)

    def decode_response(self, data: bytes | str) -> Any:
        return self._loads(data)

    # -- Internal ------------------------------------------------------
    @staticmethod
    def _dumps(data: Any) -> bytes:
        try:
            return json.dumps(data, allow_nan=False, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"cannot encode JSON: {exc}") from exc

    @staticmethod
    def _loads(data: bytes | str) -> Any:
        try:
            text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
            return json.loads(text, parse_constant=_reject_constant)
        except (UnicodeDecodeError, ValueError) as exc:
            raise DecodeError(f"invalid JSON: {exc}") from exc
