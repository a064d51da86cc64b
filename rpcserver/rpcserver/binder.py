"""Parameter binding.

Each method declares its inputs as a tuple of ``Param`` descriptors.  The
binder turns a request's ``params`` into the keyword arguments the handler
is called with:

* ``PAYLOAD`` inputs receive the whole payload untouched.
* ``CONTEXT`` inputs receive the ``JsonRpcRequest`` being processed.
* ``VALUE`` inputs are looked up by name (exact, then ``camelCase``, then a
  dotted nested path) or, for positional payloads, by declaration order.
  A positional payload holding one struct is read by name when the struct
  is clearly a set of named params (the XML-RPC rendering of named params).

The payload is ``params["data"]`` when params is an object with a ``data``
member, otherwise ``params`` itself.
"""

from __future__ import annotations

import dataclasses
import enum
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from rpcwire.errors import InvalidParamsError
from rpcwire.jsonrpc import JsonRpcRequest

PAYLOAD_KEY = "data"

_MISSING = object()


class ParamKind(enum.Enum):
    VALUE = "value"
    PAYLOAD = "payload"
    CONTEXT = "context"


@dataclass(frozen=True)
class Param:
    """Declared handler input.

    ``type`` is anything ``pydantic.TypeAdapter`` understands: builtins,
    ``BaseModel`` subclasses, dataclasses, ``list[int]`` and so on.  ``None``
    disables validation.
    """

    name: str
    type: Any = None
    required: bool = False
    kind: ParamKind = ParamKind.VALUE
    description: str = field(default="", compare=False)

    @cached_property
    def adapter(self) -> TypeAdapter | None:
        return None if self.type is None else TypeAdapter(self.type)

    @property
    def lookup_keys(self) -> tuple[str, ...]:
        """Names tried in order when resolving against a named payload."""
        keys = [self.name]
        camel = to_camel(self.name)
        if camel != self.name:
            keys.append(camel)
        dotted = self.name.replace("_", ".")
        if dotted != self.name:
            keys.append(dotted)
        return tuple(keys)


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def extract_payload(params: Any) -> Any:
    if isinstance(params, dict) and PAYLOAD_KEY in params:
        return params[PAYLOAD_KEY]
    return params


def bind_params(
    declared: tuple[Param, ...] | list[Param], request: JsonRpcRequest
) -> dict[str, Any]:
    """Resolve *declared* against *request*; raise ``InvalidParamsError`` on failure."""
    payload = extract_payload(request.params)
    value_params = [p for p in declared if p.kind is ParamKind.VALUE]
    takes_payload = any(p.kind is ParamKind.PAYLOAD for p in declared)
    if not takes_payload and _is_named_struct(payload, value_params):
        # XML-RPC carries named params as a single struct parameter.
        payload = extract_payload(payload[0])

    if payload is not None and not isinstance(payload, (dict, list)):
        raise InvalidParamsError(
            [_problem("", "The params payload must be an object or an array.")]
        )

    if isinstance(payload, list) and not takes_payload and len(payload) > len(value_params):
        raise InvalidParamsError(
            [
                _problem(
                    "",
                    f"Expected at most {len(value_params)} positional params, got {len(payload)}.",
                )
            ]
        )

    bound: dict[str, Any] = {}
    problems: list[dict[str, Any]] = []
    position = 0
    for param in declared:
        if param.kind is ParamKind.CONTEXT:
            bound[param.name] = request
            continue

        if param.kind is ParamKind.PAYLOAD:
            raw = payload if payload is not None else _MISSING
        elif isinstance(payload, list):
            raw = payload[position] if position < len(payload) else _MISSING
            position += 1
        else:
            raw = _resolve(payload or {}, param)

        if raw is _MISSING:
            if param.required:
                problems.append(_problem(param.name, f"The {param.name} field is required."))
            continue

        try:
            bound[param.name] = _validate(param, raw)
        except ValidationError as exc:
            problems.extend(InvalidParamsError.from_validation_error(
                exc, prefix=f"/params/data/{param.name}"
            ).data)

    if problems:
        raise InvalidParamsError(problems)
    return bound


# ── Helpers ──────────────────────────────────────────────────────────


def _resolve(payload: dict[str, Any], param: Param) -> Any:
    for key in param.lookup_keys:
        if key in payload:
            return payload[key]
        if "." in key:
            node: Any = payload
            for part in key.split("."):
                if not isinstance(node, dict) or part not in node:
                    break
                node = node[part]
            else:
                return node
    return _MISSING


def _is_named_struct(payload: Any, value_params: list[Param]) -> bool:
    """Whether a lone struct in a positional payload holds the params by name.

    It does when several inputs are declared, or when the only input cannot
    take a mapping or is itself named inside the struct.
    """
    if not (isinstance(payload, list) and len(payload) == 1 and isinstance(payload[0], dict)):
        return False
    if len(value_params) != 1:
        return len(value_params) > 1
    param = value_params[0]
    return not _accepts_mapping(param.type) or _resolve(payload[0], param) is not _MISSING


def _accepts_mapping(tp: Any) -> bool:
    if tp is None or tp is Any:
        return True
    if typing.get_origin(tp) in (typing.Union, types.UnionType):
        return any(_accepts_mapping(arg) for arg in typing.get_args(tp))
    if typing.is_typeddict(tp) or dataclasses.is_dataclass(tp):
        return True
    origin = typing.get_origin(tp) or tp
    return isinstance(origin, type) and issubclass(origin, (Mapping, BaseModel))


def _validate(param: Param, raw: Any) -> Any:
    if param.adapter is None:
        return raw
    return param.adapter.validate_python(raw)


def _problem(name: str, detail: str) -> dict[str, Any]:
    pointer = f"/params/data/{name}" if name else "/params"
    return {
        "status": "422",
        "title": "Invalid params",
        "detail": detail,
        "source": {"pointer": pointer},
    }
