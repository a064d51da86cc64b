"""Method registry.

Handlers register themselves via the ``@registry.method`` decorator.
The registry maps RPC method names to ``Method`` records and nothing more.
It is populated at startup and only read while requests are dispatched.
"""

from __future__ import annotations

import enum
import functools
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import anyio.to_thread

from rpcserver.binder import Param
from rpcwire.errors import MethodAlreadyRegisteredError, MethodNotFoundError

log = logging.getLogger(__name__)

# Type alias for an RPC handler: (**bound_params) -> result, sync or async
HandlerFn = Callable[..., Any]


class OutputMode(enum.Enum):
    """How a handler's return value reaches the client."""

    ENVELOPED = "enveloped"  # wrapped in {"jsonrpc", "id", "result"}
    RAW = "raw"  # sent as-is


@dataclass(frozen=True)
class Method:
    """A registered method: its name, handler and declared inputs."""

    name: str
    fn: HandlerFn
    params: tuple[Param, ...] = ()
    output: OutputMode = OutputMode.ENVELOPED
    summary: str = field(default="", compare=False)

    async def invoke(self, bound: dict[str, Any]) -> Any:
        """Call the handler with *bound* keyword arguments.

        Coroutine functions are awaited; plain functions run in a worker
        thread so they cannot stall the event loop.
        """
        if inspect.iscoroutinefunction(self.fn):
            return await self.fn(**bound)
        return await anyio.to_thread.run_sync(
            functools.partial(self.fn, **bound), abandon_on_cancel=True
        )


class Registry:
    """A simple method → handler mapping.

    Usage::

        registry = Registry()

        @registry.method("subtract", params=[Param("minuend", int), Param("subtrahend", int)])
        async def subtract(minuend, subtrahend):
            return minuend - subtrahend

        method = registry.lookup("subtract")
    """

    def __init__(self, methods: list[Method] | None = None) -> None:
        self._methods: dict[str, Method] = {}
        for method in methods or ():
            self.register(method)

    # -- Registration --------------------------------------------------
    def register(self, method: Method) -> Method:
        if method.name in self._methods:
            raise MethodAlreadyRegisteredError(method.name)
        self._methods[method.name] = method
        log.debug("registered method %r → %s", method.name, getattr(method.fn, "__qualname__", method.fn))
        return method

    def method(
        self,
        name: str,
        params: tuple[Param, ...] | list[Param] = (),
        output: OutputMode = OutputMode.ENVELOPED,
        summary: str = "",
    ) -> Callable[[HandlerFn], HandlerFn]:
        """Decorator that registers *fn* under *name*."""

        def decorator(fn: HandlerFn) -> HandlerFn:
            self.register(
                Method(
                    name=name,
                    fn=fn,
                    params=tuple(params),
                    output=output,
                    summary=summary or (inspect.getdoc(fn) or "").split("\n", 1)[0],
                )
            )
            return fn

        return decorator

    # -- Lookup --------------------------------------------------------
    def lookup(self, name: str) -> Method:
        """Return the method registered under *name*.

        Raises ``MethodNotFoundError`` if the method is not registered.
        """
        method = self._methods.get(name)
        if method is None:
            raise MethodNotFoundError(name)
        return method

    # -- Introspection -------------------------------------------------
    @property
    def methods(self) -> list[str]:
        return list(self._methods.keys())

    def is_registered(self, name: str) -> bool:
        return name in self._methods
