"""Notification router — decide what the actor sees and who is emailed.

Rules:
- Admin and Staff actors see the admin toast variant, clients the client one.
- The client (project author) is always emailed, whoever acted and whatever
  ``notify_roles`` says; the client is the counterparty of every change.
- Admin/Staff are emailed only when their role is in ``notify_roles`` and the
  event context resolves their address.
- Unknown statuses and unresolvable recipients never raise: they are logged
  and the actor still gets a local message.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from status_notify.catalog.models import CatalogMiss, Role
from status_notify.errors.pipeline_errors import CatalogLookupFailed, RecipientUnresolved
from status_notify.routing.models import ExternalRecipient, RoutingDecision
from status_notify.templating.engine import (
    COUNTDOWN,
    PRIMARY_COLOR,
    RenderedMessage,
    TemplateEngine,
    normalize_color,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from status_notify.catalog.catalog import StatusCatalog
    from status_notify.catalog.models import StatusEntry
    from status_notify.metrics.collector import NotifyMetrics
    from status_notify.routing.models import NotificationEvent

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_SUBJECT = "Project Update: {{PROJECT_ADDRESS}}"
DEFAULT_EMAIL_BODY = "The status of {{PROJECT_ADDRESS}} is now {{STATUS_NAME}}."
DEFAULT_BUTTON_PATH = "/dashboard"

# Context keys holding recipient addresses, comma or semicolon separated.
ADDRESS_KEYS: dict[Role, str] = {
    Role.CLIENT: "CLIENT_EMAIL",
    Role.ADMIN: "ADMIN_EMAIL",
    Role.STAFF: "STAFF_EMAIL",
}

_ADDRESS_RE = re.compile(r"^[^@\s,;]+@[^@\s,;]+$")
_SPLIT_RE = re.compile(r"[,;]")


def resolve_addresses(context: Mapping[str, str], role: Role) -> list[str]:
    """Return the distinct well-formed addresses the context holds for *role*."""
    raw = context.get(ADDRESS_KEYS[role]) or ""
    addresses: list[str] = []
    for part in _SPLIT_RE.split(str(raw)):
        candidate = part.strip()
        if _ADDRESS_RE.match(candidate) and candidate not in addresses:
            addresses.append(candidate)
    return addresses


def resolve_button_link(link: str | None, base_url: str) -> str:
    """Absolute call-to-action link for an email.

    Links with a scheme are kept; relative links are joined to *base_url*;
    a missing link points at the dashboard.
    """
    base = base_url.rstrip("/")
    link = (link or "").strip()
    if not link:
        return f"{base}{DEFAULT_BUTTON_PATH}"
    if urlsplit(link).scheme:
        return link
    if not link.startswith("/"):
        link = f"/{link}"
    return f"{base}{link}"


class NotificationRouter:
    """Turn a :class:`NotificationEvent` into a :class:`RoutingDecision`.

    Args:
        templates: Renderer; a default-policy engine when omitted.
        base_url: Origin for ``{{BASE_URL}}`` and relative button links.
        primary_color: Default ``{{PRIMARY_COLOR}}`` branding value.
        svg_logo: Default ``{{SVG_LOGO}}`` markup, inserted verbatim.
        metrics: Optional metrics sink.
    """

    def __init__(
        self,
        templates: TemplateEngine | None = None,
        *,
        base_url: str = "",
        primary_color: str = "",
        svg_logo: str = "",
        metrics: NotifyMetrics | None = None,
    ) -> None:
        self._templates = templates or TemplateEngine()
        self._base_url = base_url.rstrip("/")
        self._primary_color = primary_color
        self._svg_logo = svg_logo
        self._metrics = metrics

    def route(self, event: NotificationEvent, catalog: StatusCatalog) -> RoutingDecision:
        """Route *event* against *catalog*. Never raises for unknown statuses."""
        entry = catalog.lookup(event.new_status)
        if isinstance(entry, CatalogMiss):
            err = CatalogLookupFailed(entry.status_code)
            logger.warning(
                "Skipping dispatch for project %d: %s",
                event.project_id,
                err.message,
                extra={"project_id": event.project_id, "error_code": err.code},
            )
            if self._metrics is not None:
                self._metrics.record_catalog_miss()
            return RoutingDecision.fallback(event.new_status)

        local = self._render_local(entry, event.acting_role, event.context)
        recipients, dropped = self._resolve_recipients(entry, event)
        return RoutingDecision(
            status_code=entry.status_code,
            local_message=local,
            external_recipients=tuple(recipients),
            should_dispatch_externally=bool(recipients),
            catalog_hit=True,
            countdown_seconds=self._countdown_for(entry, event.context),
            dropped_recipients=tuple(dropped),
            redirect_url=self._redirect_for(entry, event),
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_local(
        self,
        entry: StatusEntry,
        role: Role,
        context: Mapping[str, str],
    ) -> RenderedMessage:
        name = entry.name_for(role)
        template = entry.toast_for(role)
        if not template:
            return RenderedMessage(subject=name, body=name)
        rendered = self._templates.render(template, self._context_for(entry, role, context))
        return RenderedMessage(
            subject=name,
            body=rendered.body,
            unresolved_placeholders=rendered.unresolved_placeholders,
        )

    def _render_email(
        self,
        entry: StatusEntry,
        role: Role,
        context: Mapping[str, str],
    ) -> RenderedMessage:
        subject, content = entry.email_for(role)
        if not content:
            content = DEFAULT_EMAIL_BODY
        if not subject:
            subject = DEFAULT_EMAIL_SUBJECT
        return self._templates.render_message(subject, content, self._context_for(entry, role, context))

    def _redirect_for(self, entry: StatusEntry, event: NotificationEvent) -> str | None:
        """Render the acting role's auto-redirect target, if the status has one."""
        template = entry.redirect_for(event.acting_role)
        if not template:
            return None
        context = {"PROJECT_ID": str(event.project_id), **event.context}
        url = self._templates.render(template, context).body.strip()
        return url or None

    def _context_for(
        self,
        entry: StatusEntry,
        role: Role,
        context: Mapping[str, str],
    ) -> dict[str, str]:
        merged = {"STATUS_NAME": entry.name_for(role)}
        if entry.est_time:
            merged["EST_TIME"] = entry.est_time
        if entry.countdown_seconds:
            merged[COUNTDOWN] = str(entry.countdown_seconds)
        if self._base_url:
            merged["BASE_URL"] = self._base_url
        if self._primary_color:
            merged[PRIMARY_COLOR] = self._primary_color
        if self._svg_logo:
            merged["SVG_LOGO"] = self._svg_logo
        text, link = entry.button_for(role)
        if text:
            merged["BUTTON_TEXT"] = text
        merged["BUTTON_LINK"] = resolve_button_link(link, self._base_url)
        merged.update(context)
        if merged.get(PRIMARY_COLOR):
            merged[PRIMARY_COLOR] = normalize_color(merged[PRIMARY_COLOR])
        return merged

    # ------------------------------------------------------------------
    # Recipients
    # ------------------------------------------------------------------

    def _resolve_recipients(
        self,
        entry: StatusEntry,
        event: NotificationEvent,
    ) -> tuple[list[ExternalRecipient], list[Role]]:
        roles = [Role.CLIENT]
        roles.extend(r for r in (Role.ADMIN, Role.STAFF) if r in entry.notify_roles)

        recipients: list[ExternalRecipient] = []
        dropped: list[Role] = []
        for role in roles:
            addresses = resolve_addresses(event.context, role)
            if not addresses:
                err = RecipientUnresolved(role.value)
                logger.info(
                    "Dropping %s recipient for project %d: %s",
                    role.value,
                    event.project_id,
                    err.message,
                    extra={"project_id": event.project_id, "error_code": err.code},
                )
                if self._metrics is not None:
                    self._metrics.record_dropped_recipient(role.value)
                dropped.append(role)
                continue
            message = self._render_email(entry, role, event.context)
            recipients.extend(ExternalRecipient(role, address, message) for address in addresses)
        return recipients, dropped

    @staticmethod
    def _countdown_for(entry: StatusEntry, context: Mapping[str, str]) -> int:
        raw = context.get(COUNTDOWN)
        if raw is None:
            return entry.countdown_seconds
        try:
            return max(int(str(raw).strip()), 0)
        except ValueError:
            return 0

