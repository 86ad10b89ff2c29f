"""Tests for the notification router."""

from __future__ import annotations

import logging
from datetime import datetime

import pytest

from status_notify.catalog.catalog import StatusCatalog
from status_notify.catalog.models import Role, StatusEntry
from status_notify.config.settings import UnresolvedPolicy
from status_notify.metrics.collector import NotifyMetrics
from status_notify.routing.models import GENERIC_STATUS_MESSAGE, NotificationEvent
from status_notify.routing.router import (
    DEFAULT_EMAIL_BODY,
    NotificationRouter,
    resolve_addresses,
    resolve_button_link,
)
from status_notify.templating.engine import TemplateEngine, render

CONTEXT = {
    "PROJECT_ADDRESS": "123 Main St",
    "CLIENT_NAME": "Dana",
    "CLIENT_EMAIL": "dana@example.com",
    "ADMIN_EMAIL": "ops@example.com; lead@example.com",
    "STAFF_EMAIL": "crew@example.com",
}


def _event(status: int, role: str = "Client", **context: str) -> NotificationEvent:
    return NotificationEvent(
        project_id=7,
        new_status=status,
        acting_role=role,
        context={**CONTEXT, **context},
    )


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestNotificationEvent:
    def test_role_parsed(self) -> None:
        assert _event(10, "staff").acting_role is Role.STAFF

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown role"):
            _event(10, "Guest")

    def test_naive_timestamp_made_utc(self) -> None:
        event = NotificationEvent(1, 10, Role.ADMIN, timestamp=datetime(2024, 1, 1, 9, 0))  # noqa: DTZ001
        assert event.timestamp.tzinfo is not None


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


class TestResolveAddresses:
    def test_splits_and_dedupes(self) -> None:
        context = {"ADMIN_EMAIL": "a@x.io, b@x.io;a@x.io"}
        assert resolve_addresses(context, Role.ADMIN) == ["a@x.io", "b@x.io"]

    def test_drops_malformed(self) -> None:
        assert resolve_addresses({"STAFF_EMAIL": "not-an-address, @x"}, Role.STAFF) == []

    def test_missing_key(self) -> None:
        assert resolve_addresses({}, Role.CLIENT) == []


# ---------------------------------------------------------------------------
# Local message
# ---------------------------------------------------------------------------


class TestLocalMessage:
    def test_client_sees_client_variant(self, catalog) -> None:
        decision = NotificationRouter().route(_event(10, "Client"), catalog)
        assert decision.local_message.subject == "Proposal Ready"
        assert decision.local_message.body == "Your proposal for 123 Main St is ready"

    @pytest.mark.parametrize("role", ["Admin", "Staff"])
    def test_admin_side_sees_admin_variant(self, catalog, role: str) -> None:
        decision = NotificationRouter().route(_event(10, role), catalog)
        assert decision.local_message.subject == "Proposal Sent"
        assert decision.local_message.body == "Proposal sent to Dana"

    def test_missing_toast_uses_status_name(self, catalog) -> None:
        decision = NotificationRouter().route(_event(40, "Client"), catalog)
        assert decision.local_message.body == "Internal Review"

    def test_countdown_rendered_from_entry(self, catalog) -> None:
        decision = NotificationRouter().route(_event(30, "Client"), catalog)
        assert decision.countdown_seconds == 3
        assert 'data-duration="3"' in decision.local_message.body

    def test_countdown_from_context_wins(self, catalog) -> None:
        decision = NotificationRouter().route(_event(30, "Client", COUNTDOWN="8"), catalog)
        assert decision.countdown_seconds == 8
        assert 'data-duration="8"' in decision.local_message.body

    def test_status_name_default_per_role(self) -> None:
        entry = StatusEntry(
            status_code=5,
            admin_name="Plan Check",
            client_name="Under Review",
            toast_admin="{{STATUS_NAME}}",
            toast_client="{{STATUS_NAME}}",
        )
        catalog = StatusCatalog([entry])
        router = NotificationRouter()
        assert router.route(_event(5, "Admin"), catalog).local_message.body == "Plan Check"
        assert router.route(_event(5, "Client"), catalog).local_message.body == "Under Review"

    def test_unresolved_reported(self) -> None:
        entry = StatusEntry(status_code=5, admin_name="A", toast_admin="Due {{DUE_DATE}}")
        decision = NotificationRouter(TemplateEngine(UnresolvedPolicy.KEEP)).route(
            _event(5, "Admin"),
            StatusCatalog([entry]),
        )
        assert decision.local_message.body == "Due {{DUE_DATE}}"
        assert decision.local_message.unresolved_placeholders == ("DUE_DATE",)


# ---------------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------------


class TestRecipients:
    def test_role_asymmetry(self, catalog) -> None:
        decision = NotificationRouter().route(_event(30, "Client"), catalog)
        assert decision.local_message.subject == "Deposit Paid"
        roles = [r.role for r in decision.external_recipients]
        assert roles == [Role.CLIENT, Role.ADMIN, Role.ADMIN]
        assert decision.should_dispatch_externally

    def test_client_always_notified(self, catalog) -> None:
        decision = NotificationRouter().route(_event(40, "Admin"), catalog)
        assert {r.role for r in decision.external_recipients} == {Role.CLIENT, Role.STAFF}

    def test_email_rendered_per_role(self, catalog) -> None:
        decision = NotificationRouter().route(_event(30, "Staff"), catalog)
        by_address = {r.address: r.message for r in decision.external_recipients}
        assert by_address["dana@example.com"].subject == "Thanks for your payment"
        assert by_address["dana@example.com"].body == "Work on 123 Main St starts within 2 business days."
        assert by_address["ops@example.com"].subject == "Deposit received: 123 Main St"
        assert by_address["lead@example.com"].body == "Dana paid the deposit for 123 Main St."

    def test_default_email_when_content_missing(self, catalog) -> None:
        decision = NotificationRouter().route(_event(40, "Admin"), catalog)
        client = next(r for r in decision.external_recipients if r.role is Role.CLIENT)
        expected = render(DEFAULT_EMAIL_BODY, {**CONTEXT, "STATUS_NAME": "Internal Review"}).body
        assert client.message.body == expected
        assert client.message.subject == "Project Update: 123 Main St"

    def test_unresolved_recipient_dropped(self, catalog) -> None:
        metrics = NotifyMetrics()
        event = _event(30, "Admin", ADMIN_EMAIL="")
        decision = NotificationRouter(metrics=metrics).route(event, catalog)
        assert [r.role for r in decision.external_recipients] == [Role.CLIENT]
        assert decision.dropped_recipients == (Role.ADMIN,)
        value = metrics.registry.get_sample_value(
            "statusnotify_recipients_dropped_total", {"role": "Admin"}
        )
        assert value == 1.0

    def test_no_addresses_no_dispatch(self, catalog) -> None:
        event = NotificationEvent(project_id=7, new_status=10, acting_role=Role.ADMIN, context={})
        decision = NotificationRouter().route(event, catalog)
        assert decision.external_recipients == ()
        assert not decision.should_dispatch_externally
        assert decision.local_message.body == "Proposal sent to Client"


# ---------------------------------------------------------------------------
# Buttons, branding and redirects
# ---------------------------------------------------------------------------

APP = "https://app.example.com"


def _branded_catalog() -> StatusCatalog:
    entry = StatusEntry(
        status_code=50,
        admin_name="Invoice Sent",
        client_name="Invoice Ready",
        admin_email_content="{{BUTTON_TEXT}} -> {{BUTTON_LINK}}",
        client_email_content="{{BUTTON_TEXT}} -> {{BUTTON_LINK}}",
        client_button_text="Pay Invoice",
        client_button_link="projects/invoice",
        notify_roles=["Admin"],
        toast_client='<b style="color: {{PRIMARY_COLOR}}">{{SVG_LOGO}}</b> {{BASE_URL}}',
        client_redirect_url="/project/{{PROJECT_ID}}",
    )
    return StatusCatalog([entry])


class TestResolveButtonLink:
    def test_relative_link_joined(self) -> None:
        assert resolve_button_link("projects/7", f"{APP}/") == f"{APP}/projects/7"

    def test_rooted_link_joined(self) -> None:
        assert resolve_button_link("/projects/7", APP) == f"{APP}/projects/7"

    def test_absolute_link_kept(self) -> None:
        assert resolve_button_link("https://pay.example.com/x", APP) == "https://pay.example.com/x"

    @pytest.mark.parametrize("link", [None, "", "  "])
    def test_missing_link_points_at_dashboard(self, link: str | None) -> None:
        assert resolve_button_link(link, APP) == f"{APP}/dashboard"


class TestButtonsAndBranding:
    def test_button_per_role(self) -> None:
        router = NotificationRouter(base_url=f"{APP}/")
        decision = router.route(_event(50, "Admin"), _branded_catalog())
        by_role = {r.role: r.message.body for r in decision.external_recipients}
        assert by_role[Role.CLIENT] == f"Pay Invoice -> {APP}/projects/invoice"
        assert by_role[Role.ADMIN] == f"Access Your Dashboard -> {APP}/dashboard"

    def test_branding_tokens(self) -> None:
        router = NotificationRouter(base_url=APP, primary_color="825BDD", svg_logo="<svg/>")
        decision = router.route(_event(50, "Client"), _branded_catalog())
        assert decision.local_message.body == f'<b style="color: #825BDD"><svg/></b> {APP}'

    def test_context_color_normalized(self) -> None:
        router = NotificationRouter(primary_color="#000000")
        decision = router.route(_event(50, "Client", PRIMARY_COLOR="ff6600"), _branded_catalog())
        assert decision.local_message.body.startswith('<b style="color: #ff6600">')

    def test_redirect_for_acting_role(self) -> None:
        router = NotificationRouter()
        assert router.route(_event(50, "Client"), _branded_catalog()).redirect_url == "/project/7"
        assert router.route(_event(50, "Admin"), _branded_catalog()).redirect_url is None

    def test_no_redirect_on_miss(self, catalog) -> None:
        decision = NotificationRouter().route(_event(999), catalog)
        assert decision.redirect_url is None
        assert decision.to_dict()["redirect_url"] is None


# ---------------------------------------------------------------------------
# Unknown status
# ---------------------------------------------------------------------------


class TestUnknownStatus:
    def test_generic_message_no_dispatch(self, catalog) -> None:
        decision = NotificationRouter().route(_event(999, "Admin"), catalog)
        assert not decision.catalog_hit
        assert not decision.should_dispatch_externally
        assert decision.external_recipients == ()
        assert decision.local_message.body == GENERIC_STATUS_MESSAGE

    def test_miss_counted_and_logged(self, catalog, caplog) -> None:
        metrics = NotifyMetrics()
        with caplog.at_level(logging.WARNING, logger="status_notify.routing.router"):
            NotificationRouter(metrics=metrics).route(_event(999), catalog)
        assert metrics.registry.get_sample_value("statusnotify_catalog_misses_total") == 1.0
        assert any(getattr(r, "error_code", None) == "catalog-lookup-failed" for r in caplog.records)
