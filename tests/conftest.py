"""Shared test fixtures for the status-notify test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from status_notify.catalog.models import Role, StatusEntry
from status_notify.config.settings import DatabaseEngine, MailEngine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now += timedelta(seconds=seconds)
        return self._now


def make_entries() -> list[StatusEntry]:
    """A small catalog covering the role and template variations."""
    return [
        StatusEntry(status_code=0, admin_name="Draft", client_name="Draft"),
        StatusEntry(
            status_code=10,
            admin_name="Proposal Sent",
            client_name="Proposal Ready",
            admin_tab="Proposals",
            client_tab="Proposals",
            admin_action="Send proposal",
            client_email_subject="Proposal for {{PROJECT_ADDRESS}}",
            client_email_content="Hi {{CLIENT_NAME}}, your proposal for {{PROJECT_ADDRESS}} is ready.",
            toast_admin="Proposal sent to {{CLIENT_NAME}}",
            toast_client="Your proposal for {{PROJECT_ADDRESS}} is ready",
            notify_roles=frozenset({Role.CLIENT}),
            est_time="1 business day",
        ),
        StatusEntry(
            status_code=30,
            admin_name="Deposit Received",
            client_name="Deposit Paid",
            admin_tab="Active",
            client_tab="In Progress",
            admin_action="Start review",
            admin_email_subject="Deposit received: {{PROJECT_ADDRESS}}",
            admin_email_content="{{CLIENT_NAME}} paid the deposit for {{PROJECT_ADDRESS}}.",
            client_email_subject="Thanks for your payment",
            client_email_content="Work on {{PROJECT_ADDRESS}} starts within {{EST_TIME}}.",
            toast_admin="Deposit recorded for {{PROJECT_ADDRESS}}",
            toast_client="Payment received. Redirecting in {{COUNTDOWN}}",
            notify_roles=frozenset({Role.ADMIN, Role.CLIENT}),
            est_time="2 business days",
            countdown_seconds=3,
            client_button_text="View Payment",
            client_button_link="payments",
            client_redirect_url="/project/{{PROJECT_ID}}",
        ),
        StatusEntry(
            status_code=40,
            admin_name="Internal Review",
            admin_tab="Active",
            toast_admin="Review started for {{PROJECT_ADDRESS}}",
            notify_roles=frozenset({Role.STAFF}),
        ),
    ]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sample_entries() -> list[StatusEntry]:
    return make_entries()


@pytest.fixture
def catalog(sample_entries):
    from status_notify.catalog.catalog import StatusCatalog

    return StatusCatalog(sample_entries)


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults."""
    from status_notify.config.settings import AppConfig, DatabaseConfig, MailConfig, TemplateConfig

    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
        mail=MailConfig(engine=MailEngine.LOG),
        template=TemplateConfig(base_url="https://app.example.com"),
    )


@pytest.fixture
def metrics():
    from status_notify.metrics.collector import NotifyMetrics

    return NotifyMetrics()


@pytest.fixture
async def engine(app_config, sample_entries, clock, metrics) -> AsyncIterator:
    """Initialized engine over a static catalog and a recording sink."""
    from status_notify.catalog.store import StaticStatusStore
    from status_notify.dispatch.sinks import LogMailSink
    from status_notify.engine.client import NotificationEngine

    eng = NotificationEngine(
        app_config,
        store=StaticStatusStore(sample_entries),
        sink=LogMailSink(),
        clock=clock,
        metrics=metrics,
    )
    await eng.initialize()
    yield eng
    await eng.close()


@pytest.fixture
def test_client(app_config, sample_entries) -> Iterator:
    """Provide a FastAPI TestClient with the app wired to a static catalog."""
    from fastapi.testclient import TestClient

    from status_notify.api.app import create_app
    from status_notify.catalog.store import StaticStatusStore
    from status_notify.dispatch.sinks import LogMailSink
    from status_notify.engine.client import NotificationEngine
    from status_notify.metrics.collector import NotifyMetrics

    eng = NotificationEngine(
        app_config,
        store=StaticStatusStore(sample_entries),
        sink=LogMailSink(),
        metrics=NotifyMetrics(),
    )
    app = create_app(engine=eng)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
