"""
Configuration loading: TOML file plus environment overrides.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from relay_errors import ConfigError
from schemas import RelayConfig

DEFAULT_HOST = "0.0.0.0"

ENV_CONFIG_PATH = "MULTITIME_CONFIG"
ENV_HOST = "MULTITIME_HOST"
ENV_PORT = "MULTITIME_PORT"
ENV_DEBUG = "MULTITIME_DEBUG"

TRUTHY = {"1", "true", "yes", "on"}


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def load_config(path) -> RelayConfig:
    """
    Read and validate a TOML config file.

    Raises ConfigError when the file cannot be read, is not valid TOML, does
    not match the schema, or does not mark exactly one backend as primary.
    """
    config_path = Path(path)
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except OSError as e:
        raise ConfigError(f"cannot read config file {config_path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {config_path}: {e}") from e

    try:
        return RelayConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e)) from e


@dataclass(frozen=True)
class ServerSettings:
    """Process-wide settings resolved from the config file and environment."""
    host: str
    port: int
    debug: bool


def resolve_config_path(cli_path: Optional[str]) -> str:
    path = cli_path or os.getenv(ENV_CONFIG_PATH)
    if not path:
        raise ConfigError(f"no config file given (pass a path or set {ENV_CONFIG_PATH})")
    return path


def resolve_server_settings(config: RelayConfig) -> ServerSettings:
    """Apply MULTITIME_HOST / MULTITIME_PORT / MULTITIME_DEBUG on top of the file values."""
    port = config.port
    raw_port = os.getenv(ENV_PORT)
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError as e:
            raise ConfigError(f"{ENV_PORT} must be an integer, got {raw_port!r}") from e

    debug = config.debug
    raw_debug = os.getenv(ENV_DEBUG)
    if raw_debug:
        debug = raw_debug.strip().lower() in TRUTHY

    return ServerSettings(
        host=os.getenv(ENV_HOST, DEFAULT_HOST),
        port=port,
        debug=debug,
    )
