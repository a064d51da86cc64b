"""RPC error taxonomy and exception mapper.

Every failure that crosses the wire is an ``RpcError`` carrying a code from
the closed JSON-RPC set.  ``message`` strings are part of the wire contract;
anything diagnostic goes into ``data`` as JSON:API-style error objects.
"""

from __future__ import annotations

import traceback
from typing import Any

from pydantic import ValidationError

from rpcwire.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    JsonRpcError,
)


class RpcError(Exception):
    """Base class for errors that are rendered as a JSON-RPC error object."""

    code: int = SERVER_ERROR
    message: str = "Server error"

    def __init__(self, data: Any = None) -> None:
        self.data = data
        super().__init__(self.message)

    def to_error(self) -> JsonRpcError:
        return JsonRpcError(code=self.code, message=self.message, data=self.data)

    def to_dict(self) -> dict[str, Any]:
        return self.to_error().to_dict()


# ── Protocol-level errors ────────────────────────────────────────────


class ParseError(RpcError):
    code = PARSE_ERROR
    message = "Parse error"


class InvalidRequestError(RpcError):
    code = INVALID_REQUEST
    message = "Invalid Request"


class MethodNotFoundError(RpcError):
    code = METHOD_NOT_FOUND
    message = "Method not found"

    def __init__(self, method: str, data: Any = None) -> None:
        self.method = method
        if data is None:
            data = [_detail("404", "Method not found", f"Method not found: {method}")]
        super().__init__(data)


class InvalidParamsError(RpcError):
    code = INVALID_PARAMS
    message = "Invalid params"

    @classmethod
    def from_validation_error(
        cls, exc: ValidationError, prefix: str = "/params/data"
    ) -> "InvalidParamsError":
        return cls(_validation_details(exc, prefix, title="Invalid params"))


class InternalError(RpcError):
    code = INTERNAL_ERROR
    message = "Internal error"


# ── Server errors (-32000): one code, told apart only by ``data`` ────


class ServerError(RpcError):
    code = SERVER_ERROR
    message = "Server error"


class UnauthorizedError(ServerError):
    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            [_detail("401", "Unauthorized", detail or "You are not authenticated.")]
        )


class ForbiddenError(ServerError):
    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            [
                _detail(
                    "403",
                    "Forbidden",
                    detail or "You are not authorized to perform this action.",
                )
            ]
        )


class ResourceNotFoundError(ServerError):
    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            [
                _detail(
                    "404",
                    "Resource Not Found",
                    detail or "The requested resource could not be found.",
                )
            ]
        )


class TooManyRequestsError(ServerError):
    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            [
                _detail(
                    "429",
                    "Too Many Requests",
                    detail or "The rate limit has been exceeded. Please wait and try again later.",
                )
            ]
        )


class UnprocessableEntityError(ServerError):
    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "UnprocessableEntityError":
        return cls(_validation_details(exc, "/params", title="Unprocessable Entity"))


# ── Failures raised by handler code ──────────────────────────────────
# Handlers raise these (or anything else); the mapper decides what the
# client gets to see.


class AuthenticationError(Exception):
    """The caller could not be identified."""


class AuthorizationError(Exception):
    """The caller is identified but not allowed to do this."""


class NotFoundError(Exception):
    """A resource the handler needed does not exist."""


class ThrottledError(Exception):
    """The caller exceeded a rate limit."""


# ── Registry errors ──────────────────────────────────────────────────


class MethodAlreadyRegisteredError(Exception):
    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method already registered: {method}")


# ── Mapper ───────────────────────────────────────────────────────────


def map_exception(exc: BaseException, debug: bool = False) -> RpcError:
    """Map an arbitrary failure onto the RPC error taxonomy.

    ``RpcError`` instances pass through unchanged.  Authentication and
    authorization failures are deliberately indistinguishable from other
    server errors except through ``data``.  With *debug* set, uncaught
    failures also carry their message and traceback in ``data``.
    """
    if isinstance(exc, RpcError):
        return exc
    if isinstance(exc, AuthenticationError):
        return UnauthorizedError(str(exc) or None)
    if isinstance(exc, AuthorizationError):
        return ForbiddenError(str(exc) or None)
    if isinstance(exc, NotFoundError):
        return ResourceNotFoundError(str(exc) or None)
    if isinstance(exc, ThrottledError):
        return TooManyRequestsError(str(exc) or None)
    if isinstance(exc, ValidationError):
        return UnprocessableEntityError.from_validation_error(exc)
    if isinstance(exc, TimeoutError):
        return ServerError([_detail("504", "Timeout", "The method did not complete in time.")])

    entry = _detail("500", "Internal error", type(exc).__name__)
    if debug:
        entry["meta"] = {
            "message": str(exc),
            "trace": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    return ServerError([entry])


# ── Helpers ──────────────────────────────────────────────────────────


def _detail(status: str, title: str, detail: str) -> dict[str, Any]:
    return {"status": status, "title": title, "detail": detail}


def _validation_details(exc: ValidationError, prefix: str, title: str) -> list[dict[str, Any]]:
    details = []
    for err in exc.errors():
        pointer = "/".join(str(part) for part in err.get("loc", ()))
        entry = _detail("422", title, err.get("msg", "invalid value"))
        entry["source"] = {"pointer": f"{prefix}/{pointer}" if pointer else prefix}
        details.append(entry)
    return details
