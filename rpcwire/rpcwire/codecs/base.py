"""Codec contract shared by every wire format."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class CodecError(Exception):
    """Base class for wire-format failures.  The parser error is ``__cause__``."""

    default_message = "codec failure"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class DecodeError(CodecError):
    default_message = "decoding failed"


class EncodeError(CodecError):
    default_message = "encoding failed"


class Codec(ABC):
    """Stateless transform between internal message maps and wire bytes."""

    #: Short name used by ``get_codec``.
    name: str = ""

    #: Whether a handler result may replace the whole response document.
    #: Formats that always wrap exactly one value keep the envelope.
    raw_output: bool = True

    @property
    @abstractmethod
    def content_type(self) -> str: ...

    @abstractmethod
    def encode_request(self, data: Any) -> bytes: ...

    @abstractmethod
    def encode_response(self, data: Any) -> bytes: ...

    @abstractmethod
    def decode_request(self, data: bytes | str) -> Any: ...

    @abstractmethod
    def decode_response(self, data: bytes | str) -> Any: ...
