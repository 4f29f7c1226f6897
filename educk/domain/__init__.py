"""Domain layer: errors and constants."""

from .errors import (
    BindError,
    ConfigError,
    EduckError,
    EntsoeError,
    ErrorCodes,
    RenderError,
    RequestParseError,
    TemplateLoadError,
)

__all__ = [
    "EduckError",
    "ConfigError",
    "TemplateLoadError",
    "BindError",
    "RequestParseError",
    "RenderError",
    "EntsoeError",
    "ErrorCodes",
]
