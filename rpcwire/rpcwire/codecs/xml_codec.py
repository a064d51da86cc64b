"""XML-RPC codec.

Maps the internal JSON-RPC shaped message maps onto XML-RPC documents::

    <methodCall><methodName>M</methodName><params><param><value>…</value></param>…</params></methodCall>
    <methodResponse><params><param><value>…</value></param></params></methodResponse>
    <methodResponse><fault><value><struct>faultCode / faultString</struct></value></fault></methodResponse>

Documents are parsed into plain dicts by ``xmltodict``.  Like most
XML-to-tree parsers it collapses a repeated element that occurs exactly once
into a bare node instead of a one-element list, so every repeated element
(``param``, array ``value``, ``member``) goes through ``_as_list`` before it
is iterated.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

import xmltodict

from rpcwire.codecs.base import Codec, DecodeError, EncodeError
from rpcwire.jsonrpc import INTERNAL_ERROR, JSONRPC_VERSION

_I4_MIN = -(2**31)
_I4_MAX = 2**31 - 1

_INTEGER_TAGS = ("int", "i4", "i8")

# Anything outside the XML 1.0 Char production.
_INVALID_XML_CHARS = re.compile(
    "[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


# ── Exceptions ───────────────────────────────────────────────────────


class XmlRpcDecodingError(DecodeError):
    default_message = "XML-RPC decoding failed"


class XmlRpcRequestDecodingError(XmlRpcDecodingError):
    default_message = "XML-RPC request decoding failed"


class XmlRpcResponseDecodingError(XmlRpcDecodingError):
    default_message = "XML-RPC response decoding failed"


class XmlRpcEncodingError(EncodeError):
    default_message = "XML-RPC encoding failed"


class XmlRpcRequestEncodingError(XmlRpcEncodingError):
    default_message = "XML-RPC request encoding failed"


class XmlRpcResponseEncodingError(XmlRpcEncodingError):
    default_message = "XML-RPC response encoding failed"


# ── Codec ────────────────────────────────────────────────────────────


class XmlRpcCodec(Codec):
    """XML-RPC wire format.  Requests carry no id, so decoded ids are ``None``."""

    name = "xml"
    raw_output = False

    def __init__(self, pretty: bool = True) -> None:
        self.pretty = pretty

    @property
    def content_type(self) -> str:
        return "text/xml"

    # -- Encoding ------------------------------------------------------
    def encode_request(self, data: Any) -> bytes:
        try:
            if not isinstance(data, Mapping):
                raise TypeError(f"request must be a mapping, got {type(data).__name__}")
            method = data.get("method") or ""
            if not isinstance(method, str):
                raise TypeError("'method' must be a string")
            _check_text(method)

            call: dict[str, Any] = {"methodName": method}
            params = data.get("params")
            if isinstance(params, Mapping):
                # XML-RPC parameters are positional; named params travel as one struct.
                params = [params]
            if isinstance(params, (list, tuple)):
                call["params"] = {"param": [{"value": encode_value(p)} for p in params]}
            return self._unparse({"methodCall": call})
        except Exception as exc:
            raise XmlRpcRequestEncodingError() from exc

    def encode_response(self, data: Any) -> bytes:
        try:
            if not isinstance(data, Mapping):
                raise TypeError(
                    f"XML-RPC responses are single mappings, got {type(data).__name__}"
                )
            if "error" in data:
                error = data["error"] or {}
                fault = {
                    "faultCode": error.get("code", INTERNAL_ERROR),
                    "faultString": error.get("message", "Internal error"),
                }
                body: dict[str, Any] = {"fault": {"value": encode_value(fault)}}
            elif "result" in data:
                body = {"params": {"param": {"value": encode_value(data["result"])}}}
            else:
                raise ValueError("response carries neither 'result' nor 'error'")
            return self._unparse({"methodResponse": body})
        except Exception as exc:
            raise XmlRpcResponseEncodingError() from exc

    # -- Decoding ------------------------------------------------------
    def decode_request(self, data: bytes | str) -> dict[str, Any]:
        try:
            call = _root(self._parse(data), "methodCall")
            method = call.get("methodName")
            request: dict[str, Any] = {
                "jsonrpc": JSONRPC_VERSION,
                "method": method.strip() if isinstance(method, str) else "",
                "params": _decode_params(call.get("params")),
                "id": None,
            }
            return request
        except Exception as exc:
            raise XmlRpcRequestDecodingError() from exc

    def decode_response(self, data: bytes | str) -> dict[str, Any]:
        try:
            response = _root(self._parse(data), "methodResponse")
            fault = response.get("fault")
            if isinstance(fault, dict):
                decoded = decode_value(fault.get("value"))
                if not isinstance(decoded, dict):
                    raise ValueError("fault value must be a struct")
                return {
                    "jsonrpc": JSONRPC_VERSION,
                    "error": {
                        "code": decoded.get("faultCode", INTERNAL_ERROR),
                        "message": decoded.get("faultString", "Internal error"),
                    },
                    "id": None,
                }

            params = _decode_params(response.get("params"))
            return {
                "jsonrpc": JSONRPC_VERSION,
                "result": params[0] if params else None,
                "id": None,
            }
        except Exception as exc:
            raise XmlRpcResponseDecodingError() from exc

    # -- Internal ------------------------------------------------------
    def _unparse(self, tree: dict[str, Any]) -> bytes:
        xml = xmltodict.unparse(tree, encoding="utf-8", pretty=self.pretty, indent="  ")
        # Parsers normalise raw CR to LF; a character reference survives.
        return xml.replace("\r", "&#13;").encode("utf-8")

    @staticmethod
    def _parse(data: bytes | str) -> Any:
        # Whitespace is kept so <string> content survives; layout whitespace
        # between elements lands in "#text" keys, which decoding ignores.
        return xmltodict.parse(data, strip_whitespace=False)


# ── Value grammar ────────────────────────────────────────────────────


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a Value as the content of a ``<value>`` element."""
    if isinstance(value, bool):
        return {"boolean": "1" if value else "0"}
    if isinstance(value, int):
        tag = "i4" if _I4_MIN <= value <= _I4_MAX else "i8"
        return {tag: str(value)}
    if isinstance(value, float):
        return {"double": repr(value)}
    if isinstance(value, str):
        return {"string": _check_text(value)}
    if isinstance(value, (list, tuple)):
        return {"array": {"data": {"value": [encode_value(item) for item in value]}}}
    if isinstance(value, Mapping):
        members = [
            {"name": _check_text(str(k)), "value": encode_value(v)} for k, v in value.items()
        ]
        return {"struct": {"member": members}}
    # null and anything unrecognised
    return {"string": ""}


def decode_value(node: Any) -> Any:
    """Decode the parsed content of a ``<value>`` element."""
    if node is None:
        return ""
    if isinstance(node, str):
        # A <value> without a type tag is a string.
        return node
    if not isinstance(node, dict):
        raise ValueError(f"unexpected value node: {node!r}")

    for tag in _INTEGER_TAGS:
        if tag in node:
            return int(_text(node[tag]).strip())
    if "boolean" in node:
        raw = node["boolean"]
        return raw == 1 or _text(raw).strip() == "1"
    if "double" in node:
        return float(_text(node["double"]).strip())
    if "string" in node:
        raw = node["string"]
        return "" if raw is None else _text(raw)
    if "array" in node:
        return _decode_array(node["array"])
    if "struct" in node:
        return _decode_struct(node["struct"])
    if "nil" in node:
        return None
    if set(node) == {"#text"}:
        return node["#text"]
    raise ValueError(f"unsupported value type: {sorted(node)}")


def _decode_array(array: Any) -> list[Any]:
    if not isinstance(array, dict):
        return []
    data = array.get("data")
    if not isinstance(data, dict) or "value" not in data:
        return []
    return [decode_value(item) for item in _as_list(data["value"])]


def _decode_struct(struct: Any) -> dict[str, Any]:
    if not isinstance(struct, dict) or "member" not in struct:
        return {}
    result: dict[str, Any] = {}
    for member in _as_list(struct.get("member")):
        if not isinstance(member, dict):
            raise ValueError("malformed struct member")
        name = member.get("name")
        result["" if name is None else _text(name)] = decode_value(member.get("value"))
    return result


def _decode_params(params: Any) -> list[Any]:
    if not isinstance(params, dict) or "param" not in params:
        return []
    decoded = []
    for param in _as_list(params.get("param")):
        if not isinstance(param, dict):
            raise ValueError("malformed param")
        decoded.append(decode_value(param.get("value")))
    return decoded


def _as_list(node: Any) -> list[Any]:
    """Re-wrap a collapsed singleton into a one-element list.

    xmltodict returns a list only for elements that repeat; one occurrence
    yields the bare node (a dict for typed content, a string for an untyped
    ``<value>``, ``None`` for an empty element).
    """
    if isinstance(node, list):
        return node
    return [node]


def _check_text(text: str) -> str:
    match = _INVALID_XML_CHARS.search(text)
    if match:
        raise ValueError(f"character {match.group()!r} cannot be represented in XML")
    return text


def _root(tree: Any, tag: str) -> dict[str, Any]:
    if not isinstance(tree, dict) or not isinstance(tree.get(tag), dict):
        raise ValueError(f"document root must be <{tag}>")
    return tree[tag]


def _text(node: Any) -> str:
    if isinstance(node, str):
        return node
    if isinstance(node, dict) and isinstance(node.get("#text"), str):
        return node["#text"]
    raise ValueError(f"expected text, got {node!r}")
