"""Example RPC handlers.

All handlers are registered on the module-level ``registry`` instance
which the server imports.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from rpcserver.binder import Param, ParamKind
from rpcserver.registry import OutputMode, Registry

log = logging.getLogger(__name__)

registry = Registry()


class Person(BaseModel):
    name: str
    title: str | None = None


# ── Arithmetic ───────────────────────────────────────────────────────


@registry.method(
    "subtract",
    params=[
        Param("minuend", int, required=True),
        Param("subtrahend", int, required=True),
    ],
)
async def subtract(minuend: int, subtrahend: int) -> int:
    """Subtract two integers."""
    return minuend - subtrahend


@registry.method(
    "sum",
    params=[Param("numbers", list[int | float], required=True, kind=ParamKind.PAYLOAD)],
)
async def sum_(numbers: list[int | float]) -> int | float:
    """Add up a list of numbers."""
    return sum(numbers)


# ── Misc ─────────────────────────────────────────────────────────────


@registry.method("echo", params=[Param("payload", kind=ParamKind.PAYLOAD)])
async def echo(payload=None):
    """Return params unchanged."""
    return payload


@registry.method("greet", params=[Param("person", Person, required=True)])
def greet(person: Person) -> str:
    """Greet a person; runs in a worker thread."""
    return " ".join(part for part in ("Hello,", person.title, person.name) if part)


@registry.method("system.listMethods")
async def list_methods() -> list[str]:
    """Names of every registered method."""
    return sorted(registry.methods)


@registry.method("system.health", output=OutputMode.RAW)
async def health() -> dict:
    """Liveness check; JSON-RPC callers get the bare result."""
    return {"status": "ok"}
