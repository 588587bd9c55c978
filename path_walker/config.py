"""Service configuration.

Defaults < ``PATH_WALKER_*`` environment variables < command-line flags.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping

from sssp_runtime.session import BACKEND_NAMES

MAX_CONTENT_LENGTH = 16 * 1024 * 1024

ENV_PREFIX = "PATH_WALKER_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    backend: str = "opencl"
    platform_index: int = 0
    device_index: int = 0
    early_exit: bool = False
    max_content_length: int = MAX_CONTENT_LENGTH
    log_level: str = "INFO"
    log_file: str | None = None

    def __post_init__(self):
        if self.backend not in BACKEND_NAMES:
            raise ValueError(f"backend must be one of {', '.join(BACKEND_NAMES)}, got {self.backend!r}")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.platform_index < 0 or self.device_index < 0:
            raise ValueError("platform_index and device_index must be non-negative")
        if self.max_content_length <= 0:
            raise ValueError("max_content_length must be positive")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"unknown log level: {self.log_level!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerConfig:
        """Build a config from ``PATH_WALKER_*`` variables; unset ones keep defaults."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        for key in ("host", "backend", "log_level", "log_file"):
            value = env.get(ENV_PREFIX + key.upper())
            if value is not None:
                overrides[key] = value
        for key in ("port", "platform_index", "device_index", "max_content_length"):
            value = env.get(ENV_PREFIX + key.upper())
            if value is not None:
                overrides[key] = _parse_int(key, value)
        value = env.get(ENV_PREFIX + "EARLY_EXIT")
        if value is not None:
            overrides["early_exit"] = _parse_bool("early_exit", value)

        return cls(**overrides)

    def with_overrides(self, **overrides) -> ServerConfig:
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{key.upper()} must be an integer, got {value!r}") from None


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{ENV_PREFIX}{key.upper()} must be a boolean, got {value!r}")
