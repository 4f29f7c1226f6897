"""
Template store: load once, route, render.

Rules:
- key = relative POSIX path under templates/ (e.g. "docs/index.html")
- loaded at startup, immutable afterwards (no hot reload)
- missing/unreadable directory or file → TemplateLoadError (fatal)
- keys with a segment starting with "_" are internal (never routed)
- render failure → RenderError (per request)
"""

import logging
import mimetypes
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError, select_autoescape

from educk.domain.constants import (
    DEFAULT_SUFFIX,
    INDEX_TEMPLATE,
    INTERNAL_PREFIX,
    NOT_FOUND_TEMPLATE,
)
from educk.domain.errors import ErrorCodes, RenderError, RequestParseError, TemplateLoadError

logger = logging.getLogger(__name__)

FORBIDDEN_PATH_CHARS = set("\x00\\")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class Template:
    """A file-backed template."""

    key: str
    source: str
    path: Path

    @property
    def is_internal(self) -> bool:
        return is_internal_key(self.key)

    @property
    def content_type(self) -> str:
        return guess_content_type(self.key)


def is_internal_key(key: str) -> bool:
    """True when any path segment starts with "_"."""
    return any(part.startswith(INTERNAL_PREFIX) for part in PurePosixPath(key).parts)


def guess_content_type(key: str) -> str:
    """Content-Type from the key's extension, text/plain fallback."""
    mime, _ = mimetypes.guess_type(key)
    return f"{mime or 'text/plain'}; charset=utf-8"


# =============================================================================
# Loading
# =============================================================================


def load_templates(root: Path) -> dict[str, Template]:
    """
    Read every file under root.

    Args:
        root: templates/ directory

    Returns:
        key → Template

    Raises:
        TemplateLoadError: TEMPLATE_LOAD_FAILED
    """
    if not root.exists():
        raise TemplateLoadError(
            ErrorCodes.TEMPLATE_LOAD_FAILED,
            "templates directory not found",
            path=str(root),
        )
    if not root.is_dir():
        raise TemplateLoadError(
            ErrorCodes.TEMPLATE_LOAD_FAILED,
            "templates path is not a directory",
            path=str(root),
        )

    templates: dict[str, Template] = {}
    try:
        files = sorted(p for p in root.rglob("*") if p.is_file())
    except OSError as e:
        raise TemplateLoadError(
            ErrorCodes.TEMPLATE_LOAD_FAILED,
            "templates directory is unreadable",
            path=str(root),
            error=str(e),
        ) from e

    for file_path in files:
        key = file_path.relative_to(root).as_posix()
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateLoadError(
                ErrorCodes.TEMPLATE_LOAD_FAILED,
                "template file is unreadable",
                path=str(file_path),
                error=str(e),
            ) from e

        templates[key] = Template(key=key, source=source, path=file_path)
        logger.debug(f"Loaded template key={key} bytes={len(source)}")

    return templates


# =============================================================================
# Routing
# =============================================================================


def normalize_request_path(url_path: str) -> str:
    """
    Validate a decoded URL path and strip the leading slash.

    Raises:
        RequestParseError: REQUEST_INVALID (traversal, NUL, backslash)
    """
    if not url_path.startswith("/"):
        raise RequestParseError(
            ErrorCodes.REQUEST_INVALID,
            "request path must be absolute",
            path=url_path,
        )

    if set(url_path) & FORBIDDEN_PATH_CHARS:
        raise RequestParseError(
            ErrorCodes.REQUEST_INVALID,
            "request path contains forbidden characters",
            path=url_path,
        )

    segments = url_path.split("/")[1:]
    if any(seg in (".", "..") for seg in segments):
        raise RequestParseError(
            ErrorCodes.REQUEST_INVALID,
            "request path contains relative segments",
            path=url_path,
        )

    return url_path[1:]


def candidate_keys(url_path: str) -> list[str]:
    """
    Template keys tried for a request path, in order.

    /          → index.html
    /docs/     → docs/index.html
    /about     → about, about.html
    """
    rel = normalize_request_path(url_path)
    if rel == "" or rel.endswith("/"):
        return [rel + INDEX_TEMPLATE]
    return [rel, rel + DEFAULT_SUFFIX]


# =============================================================================
# Template Store
# =============================================================================


class TemplateStore(Mapping[str, Template]):
    """
    Read-only template mapping + Jinja2 renderer.

    Shared across concurrent handlers without locking: nothing writes to it
    after construction.

    Usage:
        store = TemplateStore.load(Path("templates"))
        key = store.resolve("/about")
        body = store.render(key, {"request": {...}})
    """

    def __init__(self, root: Path, templates: Mapping[str, Template]):
        self.root = root
        self._templates = MappingProxyType(dict(templates))
        self._env = Environment(
            loader=DictLoader({k: t.source for k, t in self._templates.items()}),
            autoescape=select_autoescape(["html", "htm", "xml"]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            auto_reload=False,
        )

    @classmethod
    def load(cls, root: Path) -> "TemplateStore":
        """Load templates/ (TemplateLoadError on failure)."""
        templates = load_templates(root)
        store = cls(root, templates)
        logger.info(f"Loaded {len(store)} templates from {root}")
        return store

    # ---------- Mapping ----------
    def __getitem__(self, key: str) -> Template:
        return self._templates[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    # ---------- routing ----------
    def routable_keys(self) -> list[str]:
        """Keys reachable by URL."""
        return sorted(k for k in self._templates if not is_internal_key(k))

    def resolve(self, url_path: str) -> str | None:
        """
        Map a request path to a template key.

        Returns:
            key, or None when nothing matches (→ 404)

        Raises:
            RequestParseError: malformed path (→ 400)
        """
        for key in candidate_keys(url_path):
            if key in self._templates and not is_internal_key(key):
                return key
        return None

    @property
    def not_found_key(self) -> str | None:
        return NOT_FOUND_TEMPLATE if NOT_FOUND_TEMPLATE in self._templates else None

    # ---------- rendering ----------
    def render(self, key: str, context: dict[str, Any] | None = None) -> str:
        """
        Render a template.

        Raises:
            RenderError: RENDER_FAILED (unknown key, syntax error, undefined variable, ...)
        """
        if key not in self._templates:
            raise RenderError(ErrorCodes.TEMPLATE_NOT_FOUND, "template not loaded", key=key)

        try:
            template = self._env.get_template(key)
            return template.render(context or {})
        except TemplateError as e:
            raise RenderError(
                ErrorCodes.RENDER_FAILED,
                "template rendering failed",
                key=key,
                error=f"{type(e).__name__}: {e}",
            ) from e
        except Exception as e:
            # errors raised by expressions inside the template ({{ 1 / 0 }})
            raise RenderError(
                ErrorCodes.RENDER_FAILED,
                "template rendering failed",
                key=key,
                error=f"{type(e).__name__}: {e}",
            ) from e
