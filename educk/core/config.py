"""
Process configuration: built once at startup, immutable afterwards.

Priority (low → high):
1. built-in defaults (domain/constants.py)
2. YAML file (default.yaml, `server:` section)
3. environment variables (EDUCK_*, ENTSOE_API_KEY)
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from educk.domain.constants import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_GRACE_PERIOD,
    DEFAULT_HOST,
    DEFAULT_KEEP_ALIVE_TIMEOUT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TEMPLATES_DIR,
    ENV_CONFIG,
    ENV_ENTSOE_API_KEY,
    ENV_GRACE_PERIOD,
    ENV_HOST,
    ENV_LOG,
    ENV_PORT,
    ENV_REQUEST_TIMEOUT,
    ENV_TEMPLATES,
    MAX_PORT,
    MIN_PORT,
)
from educk.domain.errors import ConfigError, ErrorCodes

# =============================================================================
# Log Levels
# =============================================================================

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# "off" sits above CRITICAL so nothing passes the root filter
LOG_LEVELS: dict[str, int] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration."""

    log_level: str = DEFAULT_LOG_LEVEL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    templates_dir: Path = Path(DEFAULT_TEMPLATES_DIR)
    grace_period: float = DEFAULT_GRACE_PERIOD
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    keep_alive_timeout: float = DEFAULT_KEEP_ALIVE_TIMEOUT
    entsoe_api_key: str | None = None

    @property
    def log_level_value(self) -> int:
        """Numeric level for the logging module."""
        return LOG_LEVELS[self.log_level]

    def to_dict(self) -> dict[str, Any]:
        """Loggable view (API key masked)."""
        return {
            "log_level": self.log_level,
            "host": self.host,
            "port": self.port,
            "templates_dir": str(self.templates_dir),
            "grace_period": self.grace_period,
            "request_timeout": self.request_timeout,
            "keep_alive_timeout": self.keep_alive_timeout,
            "entsoe_api_key": "***" if self.entsoe_api_key else None,
        }


# =============================================================================
# Loading
# =============================================================================


def load_config(config_path: Path | None = None) -> dict:
    """Load the YAML config file; missing file → {}."""
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            ErrorCodes.CONFIG_INVALID,
            "config file could not be read",
            path=str(config_path),
            error=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            ErrorCodes.CONFIG_INVALID,
            "config file must contain a mapping",
            path=str(config_path),
        )
    return data


def parse_port(value: Any) -> int:
    """
    Validate a TCP port number.

    Raises:
        ConfigError: not an integer in 1..65535
    """
    if isinstance(value, bool):
        raise ConfigError(ErrorCodes.CONFIG_INVALID, "port must be an integer", key="port", value=value)
    try:
        port = int(str(value).strip())
    except ValueError:
        raise ConfigError(
            ErrorCodes.CONFIG_INVALID,
            "port must be an integer",
            key="port",
            value=value,
        ) from None

    if not (MIN_PORT <= port <= MAX_PORT):
        raise ConfigError(
            ErrorCodes.CONFIG_INVALID,
            f"port must be between {MIN_PORT} and {MAX_PORT}",
            key="port",
            value=port,
        )
    return port


def parse_log_level(value: Any) -> str:
    """
    Normalize a log level name.

    Raises:
        ConfigError: unknown level
    """
    level = str(value).strip().lower()
    if level not in LOG_LEVELS:
        raise ConfigError(
            ErrorCodes.CONFIG_INVALID,
            f"unknown log level (allowed: {', '.join(LOG_LEVELS)})",
            key="log_level",
            value=value,
        )
    return level


def _parse_seconds(key: str, value: Any, allow_zero: bool = True) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(
            ErrorCodes.CONFIG_INVALID,
            "must be a number of seconds",
            key=key,
            value=value,
        ) from None
    if seconds < 0:
        raise ConfigError(ErrorCodes.CONFIG_INVALID, "must not be negative", key=key, value=seconds)
    if seconds == 0 and not allow_zero:
        raise ConfigError(ErrorCodes.CONFIG_INVALID, "must be greater than zero", key=key, value=seconds)
    return seconds


def load_settings(
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> Settings:
    """
    Build Settings from defaults, YAML, and the environment.

    Args:
        environ: environment mapping (default: os.environ)
        config_path: YAML file (default: $EDUCK_CONFIG or ./default.yaml)

    Returns:
        Settings

    Raises:
        ConfigError: invalid value
    """
    env = os.environ if environ is None else environ

    if config_path is None and env.get(ENV_CONFIG):
        config_path = Path(env[ENV_CONFIG])
        if not config_path.exists():
            raise ConfigError(
                ErrorCodes.CONFIG_INVALID,
                "config file not found",
                key=ENV_CONFIG,
                path=str(config_path),
            )

    server_cfg = load_config(config_path).get("server") or {}
    if not isinstance(server_cfg, dict):
        raise ConfigError(ErrorCodes.CONFIG_INVALID, "`server` section must be a mapping")

    def pick(env_key: str, cfg_key: str, default: Any) -> Any:
        if env.get(env_key, "") != "":
            return env[env_key]
        return server_cfg.get(cfg_key, default)

    return Settings(
        log_level=parse_log_level(pick(ENV_LOG, "log_level", DEFAULT_LOG_LEVEL)),
        host=str(pick(ENV_HOST, "host", DEFAULT_HOST)),
        port=parse_port(pick(ENV_PORT, "port", DEFAULT_PORT)),
        templates_dir=Path(pick(ENV_TEMPLATES, "templates_dir", DEFAULT_TEMPLATES_DIR)),
        grace_period=_parse_seconds(
            "grace_period", pick(ENV_GRACE_PERIOD, "grace_period", DEFAULT_GRACE_PERIOD)
        ),
        request_timeout=_parse_seconds(
            "request_timeout",
            pick(ENV_REQUEST_TIMEOUT, "request_timeout", DEFAULT_REQUEST_TIMEOUT),
        ),
        keep_alive_timeout=_parse_seconds(
            "keep_alive_timeout",
            server_cfg.get("keep_alive_timeout", DEFAULT_KEEP_ALIVE_TIMEOUT),
            allow_zero=False,
        ),
        entsoe_api_key=env.get(ENV_ENTSOE_API_KEY) or None,
    )
