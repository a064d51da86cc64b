"""RPC client — thin JSON-RPC 2.0 / XML-RPC consumer.

* ``call(method, params)``   → result, or ``RpcCallError``
* ``notify(method, params)`` → fire-and-forget (JSON-RPC only)
* ``batch(requests)``        → list of ``JsonRpcResponse`` (JSON-RPC only)

Uses ``httpx.AsyncClient`` with connection pooling.
**Never** imports from ``rpcserver``.

Run directly for a quick demo::

    python -m rpcclient.client
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from rpcwire.codecs import Codec, JsonRpcCodec, XmlRpcCodec
from rpcwire.jsonrpc import JsonRpcError, JsonRpcRequest, JsonRpcResponse, Value

log = logging.getLogger(__name__)


class RpcCallError(Exception):
    """Raised when the server answers a call with an RPC error."""

    def __init__(self, error: JsonRpcError) -> None:
        self.error = error
        super().__init__(f"[{error.code}] {error.message}")


class RpcClient:
    """Async client that talks JSON-RPC 2.0 or XML-RPC over HTTP.

    Parameters
    ----------
    base_url : str
        Server origin, e.g. ``http://127.0.0.1:8100``.
    codec : Codec
        Wire format; JSON-RPC by default.
    path : str
        Endpoint path; defaults to ``/rpc`` for JSON and ``/xmlrpc`` for XML.
    timeout : float
        Default request timeout in seconds.
    max_retries : int
        Max connection-level retries.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8100",
        codec: Codec | None = None,
        path: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.codec = codec or JsonRpcCodec()
        self.path = path or ("/xmlrpc" if isinstance(self.codec, XmlRpcCodec) else "/rpc")
        self.max_retries = max_retries
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={
                "Content-Type": self.codec.content_type,
                "Accept": self.codec.content_type,
            },
        )

    @classmethod
    def json(cls, base_url: str, **kwargs: Any) -> "RpcClient":
        return cls(base_url, codec=JsonRpcCodec(), **kwargs)

    @classmethod
    def xml(cls, base_url: str, **kwargs: Any) -> "RpcClient":
        return cls(base_url, codec=XmlRpcCodec(), **kwargs)

    # -- Lifecycle -----------------------------------------------------

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- Internal helpers ----------------------------------------------

    def _get_retrier(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, max=10),
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            reraise=True,
        )

    async def _post(self, payload: bytes) -> httpx.Response:
        async for attempt in self._get_retrier():
            with attempt:
                resp = await self._client.post(self.path, content=payload)
                resp.raise_for_status()
        return resp

    # -- Unary RPC -----------------------------------------------------

    async def call(self, method: str, params: Value = None) -> Any:
        """Send one request and return its result.

        Raises ``RpcCallError`` if the server returns an RPC error.
        """
        req = JsonRpcRequest(method=method, params=params)
        log.debug("rpc → %s(id=%s)", method, req.id)

        resp = await self._post(self.codec.encode_request(req.to_dict()))
        response = JsonRpcResponse.from_dict(self.codec.decode_response(resp.content))
        if response.error is not None:
            raise RpcCallError(response.error)
        return response.result

    async def notify(self, method: str, params: Value = None) -> None:
        """Send a notification; the server executes it but never answers."""
        self._require_json("notifications")
        req = JsonRpcRequest.notification(method, params)
        log.debug("rpc → %s (notification)", method)
        await self._post(self.codec.encode_request(req.to_dict()))

    # -- Batch RPC -----------------------------------------------------

    async def batch(self, requests: list[JsonRpcRequest]) -> list[JsonRpcResponse]:
        """Send *requests* as one batch.

        Responses come back in request order; notifications have none.
        Errors are returned in the list, not raised.
        """
        self._require_json("batches")
        log.debug("rpc → batch of %d", len(requests))
        resp = await self._post(self.codec.encode_request([r.to_dict() for r in requests]))
        if not resp.content:
            return []
        decoded = self.codec.decode_response(resp.content)
        if isinstance(decoded, dict):
            # The whole batch was rejected with a single error.
            response = JsonRpcResponse.from_dict(decoded)
            if response.error is not None:
                raise RpcCallError(response.error)
            return [response]
        return [JsonRpcResponse.from_dict(item) for item in decoded]

    def _require_json(self, what: str) -> None:
        if not isinstance(self.codec, JsonRpcCodec):
            raise ValueError(f"XML-RPC has no {what}; use a JSON-RPC client")


# ── Demo entrypoint ──────────────────────────────────────────────────


async def _demo() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    async with RpcClient() as client:
        print("── subtract ──")
        result = await client.call("subtract", {"minuend": 42, "subtrahend": 23})
        print(f"  result: {result}")

        print("── batch ──")
        responses = await client.batch(
            [
                JsonRpcRequest("sum", [1, 2, 4]),
                JsonRpcRequest.notification("echo", {"ignored": True}),
                JsonRpcRequest("nope"),
            ]
        )
        for response in responses:
            print(f"  {response.to_dict()}")

    async with RpcClient.xml("http://127.0.0.1:8100") as client:
        print("── subtract (xml) ──")
        result = await client.call("subtract", [42, 23])
        print(f"  result: {result}")

    print("── done ──")


if __name__ == "__main__":
    import anyio

    anyio.run(_demo)
