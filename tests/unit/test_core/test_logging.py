"""
test_logging.py - process logging tests
"""

import logging
from collections.abc import Generator

import pytest

from educk.core.config import TRACE
from educk.core.logging import configure_logging, log_access


@pytest.fixture
def restore_root_logger() -> Generator[None, None, None]:
    """configure_logging replaces root handlers; put them back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("uvicorn.access").disabled = False


class TestConfigureLogging:
    """Root logger level from EDUCK_LOG."""

    @pytest.mark.parametrize(
        "level,expected",
        [
            ("info", logging.INFO),
            ("debug", logging.DEBUG),
            ("warn", logging.WARNING),
            ("error", logging.ERROR),
            ("trace", TRACE),
        ],
    )
    def test_root_level(self, restore_root_logger, level, expected):
        assert configure_logging(level) == expected
        assert logging.getLogger().level == expected

    def test_off_suppresses_critical(self, restore_root_logger):
        configure_logging("off")

        assert not logging.getLogger("educk").isEnabledFor(logging.CRITICAL)

    def test_uvicorn_loggers_propagate(self, restore_root_logger):
        uv_logger = logging.getLogger("uvicorn.error")
        uv_logger.addHandler(logging.NullHandler())

        configure_logging("info")

        assert uv_logger.handlers == []
        assert uv_logger.propagate is True

    def test_uvicorn_access_disabled(self, restore_root_logger):
        configure_logging("info")

        assert logging.getLogger("uvicorn.access").disabled is True


class TestLogAccess:
    """Access line level follows the status class."""

    def test_success_is_info(self, caplog):
        caplog.set_level(logging.INFO, logger="educk.access")

        log_access("GET", "/about", 200, 1.25)

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert "GET /about status=200" in record.getMessage()
        assert "duration_ms=" in record.getMessage()

    def test_client_error_is_warning(self, caplog):
        caplog.set_level(logging.INFO, logger="educk.access")

        log_access("GET", "/missing", 404, 0.5)

        assert caplog.records[-1].levelno == logging.WARNING

    def test_server_error_is_error(self, caplog):
        caplog.set_level(logging.INFO, logger="educk.access")

        log_access("GET", "/broken", 500, 0.5)

        assert caplog.records[-1].levelno == logging.ERROR
