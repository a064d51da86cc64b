"""Server settings, read from ``RPC_*`` environment variables.

A ``.env`` file in the working directory is loaded first (existing
environment variables win).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8100
DEFAULT_MAX_BATCH_SIZE = 10  # 0 disables the limit
DEFAULT_BATCH_CONCURRENCY = 8  # batch items in flight at once

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(slots=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    batch_concurrency: int = DEFAULT_BATCH_CONCURRENCY
    handler_timeout: float | None = None  # seconds, per handler call
    debug: bool = False  # expose exception detail in error ``data``
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_batch_size < 0:
            raise ValueError("max_batch_size must be >= 0")
        if self.batch_concurrency < 1:
            raise ValueError("batch_concurrency must be >= 1")
        if self.handler_timeout is not None and self.handler_timeout <= 0:
            raise ValueError("handler_timeout must be positive")

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Settings":
        load_dotenv(env_file or Path.cwd() / ".env")
        timeout = os.getenv("RPC_HANDLER_TIMEOUT")
        return cls(
            host=os.getenv("RPC_HOST", DEFAULT_HOST),
            port=_int("RPC_PORT", DEFAULT_PORT),
            max_batch_size=_int("RPC_MAX_BATCH_SIZE", DEFAULT_MAX_BATCH_SIZE),
            batch_concurrency=_int("RPC_BATCH_CONCURRENCY", DEFAULT_BATCH_CONCURRENCY),
            handler_timeout=_float("RPC_HANDLER_TIMEOUT") if timeout else None,
            debug=_bool("RPC_DEBUG", False),
            log_level=os.getenv("RPC_LOG_LEVEL", "INFO").upper(),
        )


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float(name: str) -> float:
    raw = os.environ[name]
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")
