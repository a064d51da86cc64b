"""Shared fixtures: a registry of test handlers and a dispatcher around it."""

import anyio
import pytest
from pydantic import BaseModel
from rpcserver.binder import Param, ParamKind
from rpcserver.config import Settings
from rpcserver.dispatcher import Dispatcher
from rpcserver.registry import OutputMode, Registry
from rpcwire.errors import AuthenticationError, AuthorizationError, NotFoundError


class User(BaseModel):
    name: str
    age: int


@pytest.fixture
def calls():
    """Names of handlers that actually ran, in completion order."""
    return []


@pytest.fixture
def registry(calls):
    reg = Registry()

    @reg.method(
        "subtract",
        params=[Param("minuend", int, required=True), Param("subtrahend", int, required=True)],
    )
    async def subtract(minuend, subtrahend):
        calls.append("subtract")
        return minuend - subtrahend

    @reg.method("sum", params=[Param("numbers", list[int], kind=ParamKind.PAYLOAD)])
    async def sum_(numbers=()):
        calls.append("sum")
        return sum(numbers)

    @reg.method("record", params=[Param("value")])
    async def record(value=None):
        calls.append(f"record:{value}")
        return value

    @reg.method("boom")
    async def boom():
        calls.append("boom")
        raise RuntimeError("secret connection string")

    @reg.method("private")
    async def private():
        raise AuthenticationError()

    @reg.method("forbidden")
    async def forbidden():
        raise AuthorizationError("admins only")

    @reg.method("missing")
    async def missing():
        raise NotFoundError()

    @reg.method("slow", params=[Param("delay", float)])
    async def slow(delay=0.05):
        await anyio.sleep(delay)
        calls.append("slow")
        return "done"

    @reg.method("create_user", params=[Param("user", User, required=True)])
    def create_user(user):
        return user.model_dump()

    @reg.method("whoami", params=[Param("request", kind=ParamKind.CONTEXT)])
    async def whoami(request):
        return {"method": request.method, "id": request.id}

    @reg.method("raw", output=OutputMode.RAW)
    async def raw():
        return {"custom": "envelope"}

    return reg


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def dispatcher(registry, settings):
    return Dispatcher(registry, settings)
