"""Placeholder template engine — ``{{TOKEN}}`` substitution.

Grammar: ``{{`` + optional spaces + ``[A-Z][A-Z0-9_]*`` + optional spaces + ``}}``.
Tokens do not nest. A template is scanned in one regex pass and substituted
values are never re-scanned, so in ``{{A{{B}}}}`` only ``{{B}}`` is a token
and the surrounding ``{{A`` / ``}}`` stay verbatim.

Values are inserted exactly as given; currency, dates and other formatting
belong to the caller.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from status_notify.config.settings import UnresolvedPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

    from status_notify.metrics.collector import NotifyMetrics

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{\{\s*([A-Z][A-Z0-9_]*)\s*\}\}")
_MALFORMED_RE = re.compile(r"\{\{[^\x00{}]*(?:\}\})?|\}\}")
_TOKEN_MARK = "\x00"

COUNTDOWN = "COUNTDOWN"
PRIMARY_COLOR = "PRIMARY_COLOR"
DEFAULT_BUTTON_TEXT = "Access Your Dashboard"

# Fallbacks for built-in tokens missing from the context.
BUILTIN_DEFAULTS: dict[str, str] = {
    "PROJECT_ADDRESS": "N/A",
    "PROJECT_TITLE": "Project",
    "CLIENT_NAME": "Client",
    "CLIENT_EMAIL": "Client",
    "STATUS_NAME": "Status Update",
    "EST_TIME": "2-3 business days",
    "BUTTON_TEXT": DEFAULT_BUTTON_TEXT,
    COUNTDOWN: "",
}


def normalize_color(value: str) -> str:
    """Prefix a hex colour with ``#`` when it lacks one."""
    value = value.strip()
    if not value or value.startswith("#"):
        return value
    return f"#{value}"


@dataclass(frozen=True)
class RenderedMessage:
    """Output of a render: subject, body and diagnostic unresolved tokens."""

    subject: str | None
    body: str
    unresolved_placeholders: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "subject": self.subject,
            "body": self.body,
            "unresolved_placeholders": list(self.unresolved_placeholders),
        }


def countdown_element(seconds: int) -> str:
    """Markup ticked client-side by the countdown timer."""
    return f'<span class="countdown-timer" data-duration="{seconds}">{seconds}</span>'


def _countdown_value(raw: str) -> str:
    try:
        seconds = int(str(raw).strip())
    except ValueError:
        return ""
    return countdown_element(seconds) if seconds > 0 else ""


def _substitute(
    template: str,
    context: Mapping[str, str],
    policy: UnresolvedPolicy,
    unresolved: list[str],
) -> str:
    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in context:
            value = context[name]
            if name == COUNTDOWN:
                return _countdown_value(value)
            return "" if value is None else str(value)
        if name in BUILTIN_DEFAULTS:
            return BUILTIN_DEFAULTS[name]
        if name not in unresolved:
            unresolved.append(name)
        return match.group(0) if policy is UnresolvedPolicy.KEEP else ""

    return TOKEN_RE.sub(_replace, template)


def render(
    template: str | None,
    context: Mapping[str, str],
    *,
    policy: UnresolvedPolicy = UnresolvedPolicy.BLANK,
) -> RenderedMessage:
    """Render a single template into a subject-less :class:`RenderedMessage`.

    Every occurrence of a token receives the same value. ``None`` and the
    empty string render to an empty body.
    """
    return render_message(None, template, context, policy=policy)


def render_message(
    subject: str | None,
    body: str | None,
    context: Mapping[str, str],
    *,
    policy: UnresolvedPolicy = UnresolvedPolicy.BLANK,
) -> RenderedMessage:
    """Render a subject/body template pair against the same context.

    Unresolved tokens of both templates are merged in order of first
    appearance (subject first).
    """
    unresolved: list[str] = []
    rendered_subject = None
    if subject is not None:
        rendered_subject = _substitute(subject, context, policy, unresolved)
    rendered_body = _substitute(body, context, policy, unresolved) if body else ""
    return RenderedMessage(
        subject=rendered_subject,
        body=rendered_body,
        unresolved_placeholders=tuple(unresolved),
    )


def find_malformed(template: str) -> list[str]:
    """Return ``{{``/``}}`` fragments that are not part of a well-formed token."""
    if not template:
        return []
    stripped = TOKEN_RE.sub(_TOKEN_MARK, template)
    return _MALFORMED_RE.findall(stripped)


def build_context(
    *,
    project_address: str | None = None,
    project_title: str | None = None,
    client_name: str | None = None,
    client_email: str | None = None,
    status_name: str | None = None,
    est_time: str | None = None,
    countdown: int | None = None,
    extra: Mapping[str, object] | None = None,
) -> dict[str, str]:
    """Assemble an uppercase render context from project fields.

    ``None`` values are skipped so built-in fallbacks apply. Keys of *extra*
    are uppercased; they override the named fields.
    """
    fields = {
        "PROJECT_ADDRESS": project_address,
        "PROJECT_TITLE": project_title,
        "CLIENT_NAME": client_name,
        "CLIENT_EMAIL": client_email,
        "STATUS_NAME": status_name,
        "EST_TIME": est_time,
        COUNTDOWN: None if countdown is None else str(countdown),
    }
    context = {k: v for k, v in fields.items() if v is not None}
    for key, value in (extra or {}).items():
        if value is None:
            continue
        context[key.upper()] = str(value)
    return context


class TemplateEngine:
    """Renderer bound to a configured unresolved-token policy.

    Reports unresolved custom tokens to metrics and the debug log.
    """

    def __init__(
        self,
        policy: UnresolvedPolicy = UnresolvedPolicy.BLANK,
        *,
        metrics: NotifyMetrics | None = None,
    ) -> None:
        self._policy = policy
        self._metrics = metrics

    @property
    def policy(self) -> UnresolvedPolicy:
        return self._policy

    def render(self, template: str | None, context: Mapping[str, str]) -> RenderedMessage:
        return self.render_message(None, template, context)

    def render_message(
        self,
        subject: str | None,
        body: str | None,
        context: Mapping[str, str],
    ) -> RenderedMessage:
        message = render_message(subject, body, context, policy=self._policy)
        if message.unresolved_placeholders:
            logger.debug(
                "Unresolved placeholders: %s",
                ", ".join(message.unresolved_placeholders),
            )
            if self._metrics is not None:
                self._metrics.record_unresolved(len(message.unresolved_placeholders))
        return message
