"""
Server process: startup sequence, accept loop, graceful shutdown.

Startup order (each step fatal on failure, exit status 1):
1. settings (ConfigError)
2. logging
3. templates/ (TemplateLoadError) → nothing is bound before this succeeds
4. listener socket (BindError) → not retried
5. uvicorn serve loop until SIGINT/SIGTERM → exit status 0
"""

import contextlib
import logging
import signal
import socket
import sys
import threading
from collections.abc import Generator
from types import FrameType

import uvicorn
from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI

from educk import __version__
from educk.app.main import create_app
from educk.app.protocol import EduckH11Protocol
from educk.core.config import Settings, load_settings
from educk.core.logging import configure_logging
from educk.domain.constants import DEFAULT_LOG_LEVEL
from educk.domain.errors import BindError, EduckError, ErrorCodes
from educk.entsoe.client import EntsoeClient
from educk.templates.store import TemplateStore

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)
LISTEN_BACKLOG = 2048


# =============================================================================
# Listener
# =============================================================================


def bind_listener(host: str, port: int) -> socket.socket:
    """
    Bind + listen on host:port.

    Raises:
        BindError: BIND_FAILED (address in use, permission denied, bad host)
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(LISTEN_BACKLOG)
    except OSError as e:
        sock.close()
        raise BindError(
            ErrorCodes.BIND_FAILED,
            "could not bind listener",
            host=host,
            port=port,
            error=e.strerror or str(e),
        ) from e

    sock.set_inheritable(True)
    return sock


# =============================================================================
# uvicorn Server
# =============================================================================


class EduckServer(uvicorn.Server):
    """
    uvicorn server that stops cleanly on SIGINT/SIGTERM.

    uvicorn re-raises captured signals after shutdown so the default handler
    kills the process; here the shutdown ends in a normal return (exit 0).
    """

    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        # Signals can only be listened to from the main thread.
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        original_handlers = {sig: signal.signal(sig, self.handle_exit) for sig in HANDLED_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in original_handlers.items():
                signal.signal(sig, handler)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        grace = self.config.timeout_graceful_shutdown
        logger.info(f"Received {signal.Signals(sig).name}, stopping (grace period {grace}s)")
        super().handle_exit(sig, frame)


def build_server(settings: Settings, app: FastAPI) -> EduckServer:
    """
    uvicorn config from Settings (logging handled by core.logging).

    keep_alive_timeout bounds both idle keep-alive connections and the wait
    for a request head; grace_period 0 cancels in-flight requests at once.
    """
    config = uvicorn.Config(
        app,
        http=EduckH11Protocol,
        log_config=None,
        access_log=False,
        timeout_keep_alive=settings.keep_alive_timeout,  # type: ignore[arg-type]
        timeout_graceful_shutdown=settings.grace_period,  # type: ignore[arg-type]
        server_header=False,
    )
    return EduckServer(config)


# =============================================================================
# Entry Points
# =============================================================================


def run(settings: Settings) -> bool:
    """
    Load templates, bind, serve until a termination signal.

    Returns:
        True when the server started (and later shut down cleanly)

    Raises:
        TemplateLoadError: templates/ missing or unreadable (before binding)
        BindError: listener could not be bound
    """
    store = TemplateStore.load(settings.templates_dir)
    sock = bind_listener(settings.host, settings.port)

    entsoe_client = None
    if settings.entsoe_api_key:
        entsoe_client = EntsoeClient(settings.entsoe_api_key)
    else:
        logger.warning("ENTSOE_API_KEY not set; renewable surplus API disabled")

    server = build_server(settings, create_app(settings, store, entsoe_client))

    logger.info(f"Listening on http://{settings.host}:{settings.port}")
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()

    return server.started


def main() -> int:
    """
    Process entry point.

    Returns:
        exit status (0 clean shutdown, 1 fatal startup error)
    """
    load_dotenv(find_dotenv(usecwd=True))

    try:
        settings = load_settings()
    except EduckError as e:
        configure_logging(DEFAULT_LOG_LEVEL)
        logger.error(f"Startup aborted: {e}")
        return 1

    configure_logging(settings.log_level)
    logger.info(f"Starting educk {__version__} with {settings.to_dict()}")

    try:
        started = run(settings)
    except EduckError as e:
        logger.error(f"Startup aborted: {e}")
        return 1

    if not started:
        logger.error("Server failed to start")
        return 1

    logger.info("Server stopped")
    return 0


def cli() -> None:
    """Console script: educk."""
    sys.exit(main())
