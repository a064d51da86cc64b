"""Starlette ASGI adapter.

``POST /rpc`` speaks JSON-RPC 2.0, ``POST /xmlrpc`` speaks XML-RPC.  Both
hand the raw body to the same ``Dispatcher``; a successful dispatch is
always HTTP 200 whether the payload holds a result or an error.

Run directly::

    python -m rpcserver.server --port 8100
"""

from __future__ import annotations

import argparse
import logging

from starlette.applications import Starlette
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.routing import Route

from rpcserver.config import Settings
from rpcserver.dispatcher import Dispatcher
from rpcserver.handlers import registry
from rpcserver.registry import Registry
from rpcwire.codecs import Codec, JsonRpcCodec, XmlRpcCodec
from rpcwire.errors import ParseError
from rpcwire.jsonrpc import JsonRpcResponse

log = logging.getLogger(__name__)


# ── RPC endpoint ─────────────────────────────────────────────────────


def _make_endpoint(dispatcher: Dispatcher, codec: Codec):
    async def rpc_endpoint(request: Request) -> Response:
        """Handle one RPC POST in the codec's wire format."""
        try:
            body = await request.body()
        except ClientDisconnect:
            # Transport-level malformation: the body never fully arrived.
            log.warning("client disconnected before the request body was read")
            err = ParseError()
            payload = JsonRpcResponse.fail(None, err.code, err.message).to_dict()
            return Response(codec.encode_response(payload), status_code=400, media_type=codec.content_type)

        result = await dispatcher.handle(body, codec)
        return Response(
            content=result.body,
            status_code=result.status_code,
            media_type=result.content_type,
        )

    return rpc_endpoint


# ── App factory ──────────────────────────────────────────────────────


def create_app(
    settings: Settings | None = None, methods: Registry | None = None
) -> Starlette:
    settings = settings or Settings()
    dispatcher = Dispatcher(methods or registry, settings)
    return Starlette(
        debug=settings.debug,
        routes=[
            Route("/rpc", _make_endpoint(dispatcher, JsonRpcCodec()), methods=["POST"]),
            Route("/xmlrpc", _make_endpoint(dispatcher, XmlRpcCodec()), methods=["POST"]),
        ],
    )


app = create_app()


# ── Runnable entrypoint ──────────────────────────────────────────────


def main() -> None:
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="JSON-RPC / XML-RPC server")
    parser.add_argument("--host", type=str, default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    parser.add_argument(
        "--log-level", type=str, default=settings.log_level, help="Logging level (INFO, DEBUG, ...)"
    )
    args = parser.parse_args()
    settings.host, settings.port, settings.log_level = args.host, args.port, args.log_level.upper()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    import uvicorn

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
