"""Configuration loaded from the process environment."""

from __future__ import annotations

import os
import tempfile
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping

# ============================================================================
# Environment Variables
# ============================================================================

ENV_PORT = "SD_CPP_SERVER_PORT"
ENV_TOKEN = "SD_CPP_SERVER_TOKEN"
ENV_BINARY = "SD_CPP_SERVER_BINARY"
ENV_ARGS = "SD_CPP_SERVER_ARGS"
ENV_MODELS = "SD_CPP_SERVER_MODELS"
ENV_CACHE = "SD_CPP_SERVER_CACHE"
ENV_MAX_CONCURRENT = "SD_CPP_SERVER_MAX_CONCURRENT"

REQUIRED_VARS = (ENV_PORT, ENV_TOKEN, ENV_BINARY, ENV_MODELS)

# Key masking threshold
MIN_TOKEN_LENGTH_FOR_MASKING = 8


class ConfigError(Exception):
    """Missing or malformed configuration."""


class Settings(BaseModel):
    """Process-wide settings, read once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    port: int = Field(ge=1, le=65535)
    token: str = Field(min_length=1)
    binary_path: str = Field(min_length=1)
    args: tuple[str, ...] | None = None
    models_dir: str = Field(min_length=1)
    cache_dir: str = Field(default_factory=tempfile.gettempdir)
    max_concurrent: int | None = Field(default=None, ge=1)

    def masked_token(self) -> str:
        """Token reduced to its first and last four characters."""
        if len(self.token) > MIN_TOKEN_LENGTH_FOR_MASKING:
            return self.token[:4] + "..." + self.token[-4:]
        return "***"


def _parse_int(environ: Mapping[str, str], name: str) -> int | None:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    digits = value[1:] if value[:1] in "+-" else value
    if not (digits.isascii() and digits.isdigit()):
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    return int(value)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment, failing on the first bad variable.

    Args:
        environ: Mapping to read from, defaults to ``os.environ``

    Raises:
        ConfigError: A required variable is missing or a value is invalid
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_VARS if not env.get(name)]
    if missing:
        raise ConfigError(f"{', '.join(missing)} environment variable not set")

    port = _parse_int(env, ENV_PORT)
    if port is None or not 1 <= port <= 65535:  # noqa: PLR2004
        raise ConfigError(f"{ENV_PORT} must be a valid port number, got {env[ENV_PORT]!r}")

    max_concurrent = _parse_int(env, ENV_MAX_CONCURRENT)
    if max_concurrent is not None and max_concurrent < 1:
        raise ConfigError(f"{ENV_MAX_CONCURRENT} must be at least 1, got {max_concurrent}")

    extra = env.get(ENV_ARGS)
    values: dict[str, object] = {
        "port": port,
        "token": env[ENV_TOKEN],
        "binary_path": env[ENV_BINARY],
        "args": tuple(extra.split()) if extra is not None else None,
        "models_dir": env[ENV_MODELS],
        "max_concurrent": max_concurrent,
    }
    if env.get(ENV_CACHE):
        values["cache_dir"] = env[ENV_CACHE]

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
