"""
Process logging: root logger setup + per-request access lines.

- One basicConfig for the whole process (uvicorn runs with log_config=None)
- Level from Settings.log_level (EDUCK_LOG)
- Access line: method, path, status, duration
"""

import logging
import sys

from educk.core.config import LOG_LEVELS, TRACE

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# uvicorn loggers propagate to root once their own handlers are removed
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

access_logger = logging.getLogger("educk.access")


def configure_logging(level: str) -> int:
    """
    Configure the root logger.

    Args:
        level: level name (see config.LOG_LEVELS)

    Returns:
        numeric level applied
    """
    numeric = LOG_LEVELS[level]
    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
        force=True,
    )

    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.setLevel(logging.NOTSET)
        uv_logger.propagate = True

    # access lines are emitted by our middleware
    logging.getLogger("uvicorn.access").disabled = True

    # third-party chatter only at trace
    noisy_level = logging.DEBUG if numeric <= TRACE else max(numeric, logging.WARNING)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(noisy_level)

    return numeric


def log_access(method: str, path: str, status: int, duration_ms: float) -> None:
    """Access log line."""
    if status >= 500:
        level = logging.ERROR
    elif status >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    access_logger.log(level, f"{method} {path} status={status} duration_ms={duration_ms:.1f}")
