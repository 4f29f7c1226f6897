"""
test_server.py - process startup / shutdown tests

Checks:
1. templates/ failure → exit 1 before anything is bound
2. port in use → BindError, exit 1
3. invalid configuration → exit 1
4. clean shutdown → exit 0
5. SIGINT/SIGTERM handlers installed and restored
6. timeouts reach uvicorn unchanged (grace 0, fractional keep-alive)
"""

import logging
import signal
import socket
from dataclasses import replace
from pathlib import Path

import pytest

from educk.app import server as server_module
from educk.app.main import create_app
from educk.app.protocol import EduckH11Protocol
from educk.app.server import EduckServer, bind_listener, build_server, main
from educk.domain.errors import BindError, ErrorCodes

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def occupied_port():
    """A port with a live listener on 127.0.0.1."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def process_env(monkeypatch, tmp_path: Path, templates_root: Path):
    """Clean environment for main(): no .env, no default.yaml, no logging reconfiguration."""
    for name in (
        "EDUCK_LOG",
        "EDUCK_HOST",
        "EDUCK_PORT",
        "EDUCK_TEMPLATES",
        "EDUCK_GRACE_PERIOD",
        "EDUCK_REQUEST_TIMEOUT",
        "EDUCK_CONFIG",
        "ENTSOE_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(server_module, "load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setattr(server_module, "configure_logging", lambda level: logging.INFO)
    monkeypatch.setenv("EDUCK_HOST", "127.0.0.1")
    monkeypatch.setenv("EDUCK_TEMPLATES", str(templates_root))
    return monkeypatch


@pytest.fixture
def ephemeral_bind(monkeypatch):
    """bind_listener on a free port instead of the configured one."""
    monkeypatch.setattr(server_module, "bind_listener", lambda host, port: bind_listener(host, 0))


class FakeServer:
    """Stands in for EduckServer: returns immediately as if signalled."""

    def __init__(self, started: bool = True):
        self.started = started
        self.sockets: list[socket.socket] = []

    def run(self, sockets=None) -> None:
        self.sockets = list(sockets or [])


# =============================================================================
# bind_listener
# =============================================================================


class TestBindListener:
    """Listener socket."""

    def test_ephemeral_port(self):
        sock = bind_listener("127.0.0.1", 0)
        try:
            assert sock.getsockname()[1] > 0
        finally:
            sock.close()

    def test_port_in_use(self, occupied_port):
        with pytest.raises(BindError) as exc_info:
            bind_listener("127.0.0.1", occupied_port)

        assert exc_info.value.code == ErrorCodes.BIND_FAILED
        assert exc_info.value.context["port"] == occupied_port
        assert exc_info.value.status_code is None

    def test_unknown_host(self):
        with pytest.raises(BindError):
            bind_listener("203.0.113.255.1", 3044)


# =============================================================================
# EduckServer
# =============================================================================


class TestEduckServer:
    """uvicorn server configuration and signal handling."""

    def test_config(self, settings, store):
        server = build_server(settings, create_app(settings, store))

        assert isinstance(server, EduckServer)
        assert server.config.timeout_graceful_shutdown == 1.0
        assert server.config.access_log is False
        assert server.config.timeout_keep_alive == 1.0
        assert server.config.http is EduckH11Protocol
        assert server.config.log_config is None

    def test_zero_grace_period_passed_through(self, settings, store):
        server = build_server(replace(settings, grace_period=0.0), create_app(settings, store))

        assert server.config.timeout_graceful_shutdown == 0
        assert server.config.timeout_graceful_shutdown is not None

    def test_fractional_keep_alive_not_truncated(self, settings, store):
        server = build_server(replace(settings, keep_alive_timeout=1.9), create_app(settings, store))

        assert server.config.timeout_keep_alive == 1.9

    def test_handle_exit_requests_shutdown(self, settings, store):
        server = build_server(settings, create_app(settings, store))

        server.handle_exit(signal.SIGTERM, None)

        assert server.should_exit is True

    def test_signal_handlers_restored(self, settings, store):
        server = build_server(settings, create_app(settings, store))
        before = signal.getsignal(signal.SIGTERM)

        with server.capture_signals():
            assert signal.getsignal(signal.SIGTERM) == server.handle_exit
            assert signal.getsignal(signal.SIGINT) == server.handle_exit

        assert signal.getsignal(signal.SIGTERM) == before


# =============================================================================
# main()
# =============================================================================


class TestMain:
    """Exit status of the process entry point."""

    def test_clean_shutdown_exit_zero(self, process_env, ephemeral_bind, monkeypatch):
        fake = FakeServer()
        monkeypatch.setattr(server_module, "build_server", lambda settings, app: fake)

        assert main() == 0
        assert len(fake.sockets) == 1
        assert fake.sockets[0].fileno() == -1  # closed after shutdown

    def test_server_never_started(self, process_env, ephemeral_bind, monkeypatch):
        monkeypatch.setattr(server_module, "build_server", lambda settings, app: FakeServer(False))

        assert main() == 1

    def test_missing_api_key_warns(self, process_env, ephemeral_bind, monkeypatch, caplog):
        caplog.set_level(logging.WARNING, logger="educk.app.server")
        monkeypatch.setattr(server_module, "build_server", lambda settings, app: FakeServer())

        assert main() == 0
        assert any("ENTSOE_API_KEY" in r.getMessage() for r in caplog.records)

    def test_missing_templates_nothing_bound(self, process_env, monkeypatch, tmp_path, caplog):
        caplog.set_level(logging.ERROR, logger="educk.app.server")
        bound: list[tuple[str, int]] = []
        monkeypatch.setattr(server_module, "bind_listener", lambda host, port: bound.append((host, port)))
        process_env.setenv("EDUCK_TEMPLATES", str(tmp_path / "no_templates"))

        assert main() == 1
        assert bound == []
        assert any("TEMPLATE_LOAD_FAILED" in r.getMessage() for r in caplog.records)

    def test_port_in_use(self, process_env, occupied_port, caplog):
        caplog.set_level(logging.ERROR, logger="educk.app.server")
        process_env.setenv("EDUCK_PORT", str(occupied_port))

        assert main() == 1
        assert any("BIND_FAILED" in r.getMessage() for r in caplog.records)

    @pytest.mark.parametrize("port", ["0x10", "70000", "http"])
    def test_invalid_port(self, process_env, caplog, port):
        caplog.set_level(logging.ERROR, logger="educk.app.server")
        process_env.setenv("EDUCK_PORT", port)

        assert main() == 1
        assert any("CONFIG_INVALID" in r.getMessage() for r in caplog.records)

    def test_invalid_log_level(self, process_env):
        process_env.setenv("EDUCK_LOG", "chatty")

        assert main() == 1
