"""JSON-RPC 2.0 message models.

Pure data — no I/O, no business logic.  The dispatcher, the codecs and the
client all speak these shapes; XML-RPC is converted to and from them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Union

# ── Standard error codes (JSON-RPC 2.0 §5.1) ────────────────────────
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000

JSONRPC_VERSION = "2.0"

# Canonical internal value: what every codec converges to.
Value = Union[None, bool, int, float, str, list["Value"], dict[str, "Value"]]
RequestId = Union[str, int, float, None]


def is_valid_id(value: Any) -> bool:
    """Ids are strings, numbers or null.  Booleans are not numbers here."""
    if value is None or isinstance(value, str):
        return True
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ── Models ───────────────────────────────────────────────────────────
@dataclass(slots=True)
class JsonRpcError:
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "JsonRpcError":
        return cls(code=raw["code"], message=raw["message"], data=raw.get("data"))


@dataclass(slots=True)
class JsonRpcRequest:
    """JSON-RPC 2.0 request.

    ``id`` is auto-generated if not supplied.  A request whose ``id`` member
    was absent on the wire is a notification; an explicit ``null`` id is an
    ordinary call that is answered with ``id: null``.
    """

    method: str
    params: Value = None
    id: RequestId = field(default_factory=lambda: uuid.uuid4().hex)
    jsonrpc: str = JSONRPC_VERSION
    is_notification: bool = False

    # -- Factories -----------------------------------------------------
    @classmethod
    def notification(cls, method: str, params: Value = None) -> "JsonRpcRequest":
        return cls(method=method, params=params, id=None, is_notification=True)

    # -- Convenience ---------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            d["params"] = self.params
        if not self.is_notification:
            d["id"] = self.id
        return d

    @classmethod
    def from_dict(cls, raw: Any) -> "JsonRpcRequest":
        """Parse a raw value into a request; raises ``ValueError`` on bad input."""
        if not isinstance(raw, dict):
            raise ValueError("request must be an object")
        if raw.get("jsonrpc") != JSONRPC_VERSION:
            raise ValueError("missing or invalid 'jsonrpc' field")
        method = raw.get("method")
        if not isinstance(method, str) or not method:
            raise ValueError("missing or invalid 'method' field")
        params = raw.get("params")
        if params is not None and not isinstance(params, (dict, list)):
            raise ValueError("'params' must be an object or an array")
        if "id" not in raw:
            return cls.notification(method, params)
        req_id = raw["id"]
        if not is_valid_id(req_id):
            raise ValueError("'id' must be a string, number or null")
        return cls(method=method, params=params, id=req_id)


@dataclass(slots=True)
class JsonRpcResponse:
    """JSON-RPC 2.0 response: exactly one of ``result`` or ``error``."""

    id: RequestId
    result: Any = None
    error: JsonRpcError | None = None
    jsonrpc: str = JSONRPC_VERSION

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        else:
            d["result"] = self.result
        return d

    @classmethod
    def from_dict(cls, raw: Any) -> "JsonRpcResponse":
        if not isinstance(raw, dict):
            raise ValueError("response must be an object")
        error = raw.get("error")
        if error is not None:
            if not isinstance(error, dict) or "code" not in error or "message" not in error:
                raise ValueError("malformed 'error' member")
            return cls(id=raw.get("id"), error=JsonRpcError.from_dict(error))
        if "result" not in raw:
            raise ValueError("response carries neither 'result' nor 'error'")
        return cls(id=raw.get("id"), result=raw["result"])

    # -- Factories -----------------------------------------------------
    @classmethod
    def success(cls, req_id: RequestId, result: Any) -> "JsonRpcResponse":
        return cls(id=req_id, result=result)

    @classmethod
    def fail(
        cls, req_id: RequestId, code: int, message: str, data: Any = None
    ) -> "JsonRpcResponse":
        return cls(
            id=req_id,
            error=JsonRpcError(code=code, message=message, data=data),
        )
