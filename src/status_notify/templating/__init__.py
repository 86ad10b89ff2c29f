"""Placeholder template engine."""

from __future__ import annotations

from status_notify.templating.engine import (
    BUILTIN_DEFAULTS,
    RenderedMessage,
    TemplateEngine,
    build_context,
    countdown_element,
    find_malformed,
    normalize_color,
    render,
    render_message,
)

__all__ = [
    "BUILTIN_DEFAULTS",
    "RenderedMessage",
    "TemplateEngine",
    "build_context",
    "countdown_element",
    "find_malformed",
    "normalize_color",
    "render",
    "render_message",
]
