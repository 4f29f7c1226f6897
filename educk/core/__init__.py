"""
Core layer: process configuration and logging.

Built once at startup, passed explicitly (no mutable globals).
"""

from .config import LOG_LEVELS, Settings, load_config, load_settings
from .logging import configure_logging, log_access

__all__ = [
    # config
    "Settings",
    "LOG_LEVELS",
    "load_config",
    "load_settings",
    # logging
    "configure_logging",
    "log_access",
]
