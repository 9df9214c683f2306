"""Configuration for the enqueue command."""

import json
import logging
import os
import re
from typing import Any, Dict, Optional, Tuple

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Environment variable naming the optional JSON configuration file.
CONFIG_ENV_VAR = "OVERSEER"

DEFAULT_REDIS_PORT = 6379

# Keys accepted in the JSON file besides the field names themselves.
FILE_KEYS = {
    "RedisHost": "redis_host",
    "RedisSocket": "redis_socket",
    "RedisPassword": "redis_password",
    "RedisDB": "redis_db",
    "RedisDialTimeout": "redis_timeout",
}

# Durations written as integer nanoseconds under these keys.
NANOSECOND_KEYS = {"RedisDialTimeout"}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Numbers are taken as seconds; strings may carry an ``ms``, ``s``, ``m``
    or ``h`` suffix, e.g. ``"5s"`` or ``"500ms"``.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit or "s"]


class EnqueueConfig(BaseSettings):
    """Queue connection settings for the enqueue command."""

    redis_host: str = Field(default="localhost:6379")
    redis_socket: str = Field(default="")
    redis_password: str = Field(default="")
    redis_db: int = Field(default=0, ge=0)
    redis_timeout: float = Field(default=5.0, gt=0)

    model_config = {"env_prefix": "OVERSEER_", "extra": "ignore"}

    @field_validator("redis_timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        return parse_duration(value)

    @property
    def redis_address(self) -> Tuple[str, int]:
        """Split ``redis_host`` into (host, port)."""
        host, sep, port = self.redis_host.rpartition(":")
        if not sep:
            return self.redis_host, DEFAULT_REDIS_PORT
        return host.strip("[]"), int(port)


def read_config_file(path: str) -> Dict[str, Any]:
    """
    Read configuration values from a JSON file.

    Unreadable files and malformed or invalid content are logged as warnings
    and yield an empty mapping. An integer ``RedisDialTimeout`` is taken as
    nanoseconds; suffixed strings such as ``"5s"`` work under every key.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        logger.warning(f"Failed to read configuration-file {path}: {e}")
        return {}
    except json.JSONDecodeError as e:
        logger.warning(f"Error loading configuration-file {path}: {e}")
        return {}

    if not isinstance(raw, dict):
        logger.warning(f"Error loading configuration-file {path}: expected a JSON object")
        return {}

    values = {}
    for key, value in raw.items():
        name = FILE_KEYS.get(key, key)
        if name not in EnqueueConfig.model_fields:
            continue
        if key in NANOSECOND_KEYS and isinstance(value, int) and not isinstance(value, bool):
            value = value / 1e9
        values[name] = value

    try:
        EnqueueConfig(**values)
    except ValidationError as e:
        logger.warning(f"Ignoring invalid configuration-file {path}: {e}")
        return {}
    return values


def load_enqueue_config(overrides: Optional[Dict[str, Any]] = None,
                        config_file: Optional[str] = None) -> EnqueueConfig:
    """
    Build the layered configuration.

    Built-in defaults and ``OVERSEER_*`` environment variables are
    overridden by the JSON file (``config_file``, or the path in
    ``$OVERSEER``), which is overridden by ``overrides``. ``None`` values in
    ``overrides`` are treated as unset.
    """
    path = config_file if config_file is not None else os.environ.get(CONFIG_ENV_VAR, "")
    values = read_config_file(path) if path else {}
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return EnqueueConfig(**values)
