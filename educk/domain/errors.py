"""
Error definitions for the server.

Rules:
- Startup errors (config, templates, bind) are fatal → process exits non-zero
- Per-request errors are contained → mapped to an HTTP status, never re-raised
- No silent failures: every error carries a stable code + context
"""

from typing import Any


class EduckError(Exception):
    """
    Base error with a stable code and structured context.

    Usage:
        raise ConfigError(ErrorCodes.CONFIG_INVALID, "port out of range", key="port", value=0)
    """

    #: HTTP status for per-request errors; None for fatal startup errors
    status_code: int | None = None

    def __init__(self, code: str, message: str, **context: Any) -> None:
        self.code = code
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        if ctx_str:
            return f"[{self.code}] {self.message} ({ctx_str})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """For logs / JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            **{k: str(v) for k, v in self.context.items()},
        }


# =============================================================================
# Fatal (startup)
# =============================================================================


class ConfigError(EduckError):
    """Invalid startup configuration."""


class TemplateLoadError(EduckError):
    """Templates directory missing or unreadable."""


class BindError(EduckError):
    """Listener could not be bound (port in use, permission, bad address)."""


# =============================================================================
# Recovered (per request)
# =============================================================================


class RequestParseError(EduckError):
    """Malformed inbound request."""

    status_code = 400


class RenderError(EduckError):
    """Template rendering failed."""

    status_code = 500


class EntsoeError(EduckError):
    """ENTSO-E Transparency Platform call failed."""

    status_code = 500


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCodes:
    """Error code constants."""

    # === Startup ===
    CONFIG_INVALID = "CONFIG_INVALID"
    TEMPLATE_LOAD_FAILED = "TEMPLATE_LOAD_FAILED"
    BIND_FAILED = "BIND_FAILED"

    # === Request ===
    REQUEST_INVALID = "REQUEST_INVALID"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    RENDER_FAILED = "RENDER_FAILED"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"

    # === Upstream (ENTSO-E) ===
    UPSTREAM_NOT_CONFIGURED = "UPSTREAM_NOT_CONFIGURED"
    UPSTREAM_REQUEST_FAILED = "UPSTREAM_REQUEST_FAILED"
    UPSTREAM_INVALID_RESPONSE = "UPSTREAM_INVALID_RESPONSE"
    UPSTREAM_PARSE_FAILED = "UPSTREAM_PARSE_FAILED"
    UPSTREAM_NO_DATA = "UPSTREAM_NO_DATA"
