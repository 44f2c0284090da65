"""YAML + environment variable configuration loading.

Config file: config/promptgate.yaml
Env var override prefix: PROMPTGATE_
Nesting convention: double underscore (e.g. PROMPTGATE_SERVER__PORT)
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

SERVICE_NAME = "promptgate"
SERVICE_VERSION = "1.1.0"

_DEFAULT_CONFIG_PATH = Path("config/promptgate.yaml")

_DEFAULTS: dict[str, Any] = {
    "server": {
        "port": 3000,
        "client_max_size": 16 * 1024 * 1024,
    },
    "auth": {
        # null / empty disables authentication
        "master_key": None,
    },
    "upstream": {
        "origin": "https://teleprompt-v2-backend-production.up.railway.app",
        "extension_origin": "chrome-extension://alfpjlcndmeoainjfgbbnphcidpnmoae",
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/142.0.0.0 Safari/537.36"
        ),
        "timeout_seconds": None,
    },
    "models": {
        "default": "teleprompt-reason",
        "endpoints": {
            "teleprompt-reason": "/api/v1/prompt/optimize_reason_auth",
            "teleprompt-standard": "/api/v1/prompt/optimize_auth",
            "teleprompt-apps": "/api/v1/prompt/optimize_apps_auth",
        },
    },
    "stream": {
        "chunk_size": 2,
        "delay_ms": 10,
    },
    "logging": {
        "level": "INFO",
    },
}

ENV_PREFIX = "PROMPTGATE_"

# Env values stored verbatim ("007" must stay "007", not become 7).
_RAW_STRING_KEYS = {("auth", "master_key")}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base, recursively for nested dicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_value(value: str) -> int | float | bool | str:
    """Attempt to coerce a string env var value to a typed value."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _apply_env_overrides(config: dict) -> dict:
    """Apply PROMPTGATE_ prefixed environment variables as overrides.

    Double underscore separates nesting levels:
        PROMPTGATE_SERVER__PORT=9090 -> config["server"]["port"] = 9090

    The whole name is lowercased, so keys set this way (including model ids
    under models.endpoints) are always lowercase. Use the YAML file for
    mixed-case model ids.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = key[len(ENV_PREFIX) :].lower().split("__")
        target = config
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        if tuple(parts) in _RAW_STRING_KEYS:
            target[parts[-1]] = value
        else:
            target[parts[-1]] = _coerce_value(value)
    return config


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with env var overrides.

    Precedence (highest wins): env vars > YAML file > defaults.
    """
    config = copy.deepcopy(_DEFAULTS)

    path = config_path or _DEFAULT_CONFIG_PATH
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config = _deep_merge(config, file_config)

    config = _apply_env_overrides(config)
    return config


@dataclass(frozen=True)
class Settings:
    """Validated, read-only view of the loaded configuration."""

    port: int
    client_max_size: int
    master_key: str | None
    upstream_origin: str
    extension_origin: str
    user_agent: str
    upstream_timeout: float | None
    model_endpoints: Mapping[str, str] = field(repr=False)
    default_model: str
    chunk_size: int
    stream_delay: float
    log_level: str = "INFO"

    @property
    def auth_enabled(self) -> bool:
        return self.master_key is not None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> Settings:
        """Build Settings from a load_config() dict. Raises ValueError on bad values."""
        auth = config.get("auth") or {}
        upstream = config["upstream"]
        models = config["models"]
        stream = config["stream"]

        master_key = auth.get("master_key")
        # YAML parses an unquoted numeric key as int.
        if master_key is not None:
            master_key = str(master_key)
        if master_key == "":
            master_key = None

        endpoints = {str(k): str(v) for k, v in (models.get("endpoints") or {}).items()}
        default_model = str(models["default"])
        if default_model not in endpoints:
            raise ValueError(
                f"Default model {default_model!r} has no endpoint in models.endpoints"
            )

        chunk_size = int(stream["chunk_size"])
        if chunk_size < 1:
            raise ValueError(f"stream.chunk_size must be >= 1, got {chunk_size}")
        delay_ms = float(stream["delay_ms"])
        if delay_ms < 0:
            raise ValueError(f"stream.delay_ms must be >= 0, got {delay_ms}")

        timeout = upstream.get("timeout_seconds")

        return cls(
            port=int(config["server"]["port"]),
            client_max_size=int(config["server"]["client_max_size"]),
            master_key=master_key,
            upstream_origin=str(upstream["origin"]).rstrip("/"),
            extension_origin=str(upstream["extension_origin"]),
            user_agent=str(upstream["user_agent"]),
            upstream_timeout=float(timeout) if timeout is not None else None,
            model_endpoints=MappingProxyType(endpoints),
            default_model=default_model,
            chunk_size=chunk_size,
            stream_delay=delay_ms / 1000.0,
            log_level=str(config.get("logging", {}).get("level", "INFO")),
        )
