"""Request dispatcher.

Drives one top-level invocation from wire bytes to wire bytes:

1. decode with the codec (failure → Parse error, terminal)
2. classify: object → single, array → batch, empty array → Invalid Request
3. per item, independently: validate, look up, bind params, invoke
4. drop notifications, keep the rest in request order
5. encode with the same codec (failure → Internal error)

Batch items run concurrently in an ``anyio`` task group.  Every item
catches its own failures, so a raising handler never cancels its siblings,
and each result is written into the slot of its request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import anyio

from rpcserver.binder import bind_params
from rpcserver.config import Settings
from rpcserver.registry import Method, OutputMode, Registry
from rpcwire.codecs import Codec, DecodeError, EncodeError, JsonRpcCodec
from rpcwire.errors import (
    InternalError,
    InvalidRequestError,
    ParseError,
    RpcError,
    map_exception,
)
from rpcwire.jsonrpc import JsonRpcRequest, JsonRpcResponse, RequestId, is_valid_id

log = logging.getLogger(__name__)

# Marks an item that must not appear in the output (a notification).
NO_REPLY = object()


@dataclass(slots=True)
class DispatchResult:
    """Encoded outcome of one dispatch.

    ``data`` is the response value before encoding: a response object, a
    list of them for batches, or ``None`` when nothing is sent back (status
    204).
    """

    body: bytes
    content_type: str
    status_code: int = 200
    data: Any = None


class Dispatcher:
    """Stateless across calls; safe to share between concurrent requests."""

    def __init__(
        self,
        registry: Registry,
        settings: Settings | None = None,
        codec: Codec | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or Settings()
        self.codec = codec or JsonRpcCodec()

    # -- Public API ----------------------------------------------------

    async def handle(self, body: bytes | str, codec: Codec | None = None) -> DispatchResult:
        """Decode *body*, dispatch it and encode the reply with the same codec."""
        codec = codec or self.codec
        try:
            decoded = codec.decode_request(body)
        except DecodeError as exc:
            log.info("rpc ← unparseable %s payload: %s", codec.name, exc)
            return self._encode(codec, _error(None, ParseError()))

        return self._encode(codec, await self.dispatch(decoded, codec))

    async def dispatch(self, decoded: Any, codec: Codec | None = None) -> Any:
        """Run an already-decoded payload through classification and execution.

        Returns a response object for single requests, a (possibly empty)
        list for batches and ``NO_REPLY`` for a single notification.  *codec*
        is the wire format the reply will be encoded with.
        """
        codec = codec or self.codec
        if isinstance(decoded, list):
            if not decoded:
                return _error(None, InvalidRequestError())
            limit = self.settings.max_batch_size
            if limit and len(decoded) > limit:
                return _error(
                    None,
                    InvalidRequestError(
                        [
                            _invalid(
                                f"The request contains too many items. The maximum is {limit}."
                            )
                        ]
                    ),
                )
            return await self._dispatch_batch(decoded, codec)

        if not isinstance(decoded, dict):
            return _error(None, InvalidRequestError([_invalid("The request must be an object.")]))

        return await self._process(decoded, codec)

    # -- Per-item processing -------------------------------------------

    async def _dispatch_batch(self, items: list[Any], codec: Codec) -> list[Any]:
        slots: list[Any] = [NO_REPLY] * len(items)
        limiter = anyio.CapacityLimiter(self.settings.batch_concurrency)

        async def _run(index: int, item: Any) -> None:
            async with limiter:
                slots[index] = await self._process(item, codec)

        async with anyio.create_task_group() as tg:
            for index, item in enumerate(items):
                tg.start_soon(_run, index, item)

        log.debug("batch of %d → %d replies", len(items), sum(s is not NO_REPLY for s in slots))
        return [reply for reply in slots if reply is not NO_REPLY]

    async def _process(self, raw: Any, codec: Codec) -> Any:
        try:
            request = JsonRpcRequest.from_dict(raw)
        except ValueError as exc:
            # The id of a malformed request cannot mark it as a notification.
            req_id = raw.get("id") if isinstance(raw, dict) else None
            return _error(
                req_id if is_valid_id(req_id) else None,
                InvalidRequestError([_invalid(str(exc))]),
            )

        log.info("rpc ← %s(id=%s)", request.method, request.id)

        try:
            method = self.registry.lookup(request.method)
            bound = bind_params(method.params, request)
            result = await self._invoke(method, bound)
        except Exception as exc:
            error = map_exception(exc, debug=self.settings.debug)
            if isinstance(exc, RpcError):
                log.debug("rpc %s failed: %s", request.method, error.message)
            else:
                log.exception("handler error for %s", request.method)
            if request.is_notification:
                return NO_REPLY
            return _error(request.id, error)

        if request.is_notification:
            return NO_REPLY
        if method.output is OutputMode.RAW and codec.raw_output:
            return result
        return JsonRpcResponse.success(request.id, result).to_dict()

    async def _invoke(self, method: Method, bound: dict[str, Any]) -> Any:
        timeout = self.settings.handler_timeout
        if timeout is None:
            return await method.invoke(bound)
        with anyio.fail_after(timeout):
            return await method.invoke(bound)

    # -- Encoding ------------------------------------------------------

    def _encode(self, codec: Codec, data: Any) -> DispatchResult:
        if data is NO_REPLY:
            return DispatchResult(body=b"", content_type=codec.content_type, status_code=204)
        try:
            body = codec.encode_response(data)
        except EncodeError as exc:
            log.error("could not encode %s response: %s", codec.name, exc.__cause__ or exc)
            req_id = data.get("id") if isinstance(data, dict) else None
            data = _error(req_id if is_valid_id(req_id) else None, InternalError())
            body = codec.encode_response(data)
        return DispatchResult(body=body, content_type=codec.content_type, data=data)


# ── Helpers ──────────────────────────────────────────────────────────


def _error(req_id: RequestId, error: RpcError) -> dict[str, Any]:
    err = error.to_error()
    return JsonRpcResponse.fail(req_id, err.code, err.message, err.data).to_dict()


def _invalid(detail: str) -> dict[str, Any]:
    return {
        "status": "400",
        "title": "Invalid Request",
        "detail": detail,
        "source": {"pointer": "/"},
    }
