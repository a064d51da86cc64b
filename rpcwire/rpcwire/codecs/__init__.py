"""Wire codecs: one per supported protocol."""

from rpcwire.codecs.base import Codec, CodecError, DecodeError, EncodeError
from rpcwire.codecs.json_codec import JsonRpcCodec
from rpcwire.codecs.xml_codec import (
    XmlRpcCodec,
    XmlRpcDecodingError,
    XmlRpcEncodingError,
    XmlRpcRequestDecodingError,
    XmlRpcRequestEncodingError,
    XmlRpcResponseDecodingError,
    XmlRpcResponseEncodingError,
)

_CODECS: dict[str, type[Codec]] = {
    JsonRpcCodec.name: JsonRpcCodec,
    XmlRpcCodec.name: XmlRpcCodec,
}


def get_codec(name: str) -> Codec:
    """Return a fresh codec for *name* (``json`` or ``xml``)."""
    try:
        return _CODECS[name.lower()]()
    except KeyError:
        raise ValueError(f"unknown codec {name!r}; expected one of {sorted(_CODECS)}") from None


__all__ = [
    "Codec",
    "CodecError",
    "DecodeError",
    "EncodeError",
    "JsonRpcCodec",
    "XmlRpcCodec",
    "XmlRpcDecodingError",
    "XmlRpcEncodingError",
    "XmlRpcRequestDecodingError",
    "XmlRpcRequestEncodingError",
    "XmlRpcResponseDecodingError",
    "XmlRpcResponseEncodingError",
    "get_codec",
]
