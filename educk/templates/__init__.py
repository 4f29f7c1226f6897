"""
Templates layer: template store module.

Roles:
- load templates/ once at startup (store.py)
- map request paths to template keys
- render with Jinja2

Note: folder split
- educk/templates/ → code (this module)
- templates/ (root) → template files (data)
"""

from .store import (
    Template,
    TemplateStore,
    candidate_keys,
    guess_content_type,
    is_internal_key,
    load_templates,
    normalize_request_path,
)

__all__ = [
    "Template",
    "TemplateStore",
    "load_templates",
    "candidate_keys",
    "normalize_request_path",
    "is_internal_key",
    "guess_content_type",
]
