"""Tests for the outbound dispatcher — gating, timeouts and no-retry."""

from __future__ import annotations

import asyncio

from status_notify.catalog.models import Role
from status_notify.dispatch.cache import Allow, Deny, DenyReason, DispatchCache
from status_notify.dispatch.dispatcher import OutboundDispatcher
from status_notify.dispatch.sinks import LogMailSink
from status_notify.errors.pipeline_errors import DispatchTransportError
from status_notify.metrics.collector import NotifyMetrics
from status_notify.routing.models import ExternalRecipient, NotificationEvent, RoutingDecision
from status_notify.templating.engine import RenderedMessage


class _FlakySink:
    """Fails, resets or hangs depending on the address prefix; records every call."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.headers: dict[str, str] | None = None

    async def send(self, recipient: str, subject: str, body: str, *, headers=None) -> None:
        self.calls.append(recipient)
        self.headers = headers
        if recipient.startswith("fail"):
            raise DispatchTransportError(recipient, "HTTP 500: boom")
        if recipient.startswith("reset"):
            raise ConnectionResetError("peer reset")
        if recipient.startswith("slow"):
            await asyncio.sleep(10)

    async def close(self) -> None:  # noqa: ASYNC910
        pass


def _decision(*addresses: str) -> RoutingDecision:
    message = RenderedMessage(subject="Update", body="Hello")
    recipients = tuple(ExternalRecipient(Role.CLIENT, a, message) for a in addresses)
    return RoutingDecision(
        status_code=30,
        local_message=message,
        external_recipients=recipients,
        should_dispatch_externally=bool(recipients),
    )


def _event(clock, project_id: int = 7, status: int = 30) -> NotificationEvent:
    return NotificationEvent(project_id, status, Role.ADMIN, timestamp=clock.now())


class TestOutboundDispatcher:
    async def test_sends_to_every_recipient(self, clock) -> None:
        sink = LogMailSink()
        dispatcher = OutboundDispatcher(DispatchCache(), sink, clock)
        report = await dispatcher.dispatch(_event(clock), _decision("a@x.io", "b@x.io"))

        assert report is not None
        assert report.verdict == Allow()
        assert [d.result for d in report.deliveries] == ["sent", "sent"]
        assert [s[0] for s in sink.sent] == ["a@x.io", "b@x.io"]

    async def test_project_headers_passed_to_sink(self, clock) -> None:
        sink = _FlakySink()
        dispatcher = OutboundDispatcher(DispatchCache(), sink, clock)
        await dispatcher.dispatch(_event(clock, project_id=303), _decision("a@x.io"))
        assert sink.headers == {"X-Project-ID": "303", "X-Project-Status": "30"}

    async def test_nothing_to_send_skips_cache(self, clock) -> None:
        cache = DispatchCache()
        dispatcher = OutboundDispatcher(cache, LogMailSink(), clock)
        assert await dispatcher.dispatch(_event(clock), _decision()) is None
        assert len(cache) == 0

    async def test_one_cache_slot_per_event(self, clock) -> None:
        cache = DispatchCache()
        dispatcher = OutboundDispatcher(cache, LogMailSink(), clock)
        await dispatcher.dispatch(_event(clock), _decision("a@x.io", "b@x.io", "c@x.io"))
        assert cache.get_entry(7).count_in_window == 1

    async def test_duplicate_event_not_sent(self, clock) -> None:
        sink = LogMailSink()
        dispatcher = OutboundDispatcher(DispatchCache(), sink, clock)
        await dispatcher.dispatch(_event(clock), _decision("a@x.io"))
        report = await dispatcher.dispatch(_event(clock), _decision("a@x.io"))

        assert report.verdict == Deny(DenyReason.DUPLICATE)
        assert report.outcome == "duplicate"
        assert report.deliveries == ()
        assert len(sink.sent) == 1

    async def test_rate_limited_event_not_sent(self, clock) -> None:
        sink = LogMailSink()
        dispatcher = OutboundDispatcher(DispatchCache(rate_limit=2), sink, clock)
        for status in (10, 20):
            await dispatcher.dispatch(_event(clock, status=status), _decision("a@x.io"))
        report = await dispatcher.dispatch(_event(clock, status=30), _decision("a@x.io"))

        assert report.outcome == "rate_limited"
        assert not report.dispatched
        assert len(sink.sent) == 2

    async def test_transport_failure_isolated(self, clock) -> None:
        metrics = NotifyMetrics()
        sink = _FlakySink()
        dispatcher = OutboundDispatcher(DispatchCache(), sink, clock, metrics=metrics)
        report = await dispatcher.dispatch(_event(clock), _decision("fail@x.io", "ok@x.io"))

        results = {d.address: d for d in report.deliveries}
        assert results["fail@x.io"].result == "failed"
        assert results["fail@x.io"].error_code == "dispatch-transport-error"
        assert results["ok@x.io"].ok
        assert metrics.registry.get_sample_value("statusnotify_deliveries_total", {"result": "failed"}) == 1.0
        assert metrics.registry.get_sample_value("statusnotify_deliveries_total", {"result": "sent"}) == 1.0

    async def test_unexpected_sink_error_marked_failed(self, clock) -> None:
        metrics = NotifyMetrics()
        dispatcher = OutboundDispatcher(DispatchCache(), _FlakySink(), clock, metrics=metrics)
        report = await dispatcher.dispatch(_event(clock), _decision("reset@x.io", "ok@x.io"))

        assert report is not None
        results = {d.address: d for d in report.deliveries}
        assert results["reset@x.io"].result == "failed"
        assert results["reset@x.io"].error_code == "dispatch-transport-error"
        assert "ConnectionResetError: peer reset" in results["reset@x.io"].detail
        assert results["ok@x.io"].ok
        assert metrics.registry.get_sample_value("statusnotify_deliveries_total", {"result": "failed"}) == 1.0

    async def test_timeout_not_retried(self, clock) -> None:
        metrics = NotifyMetrics()
        sink = _FlakySink()
        dispatcher = OutboundDispatcher(DispatchCache(), sink, clock, timeout=0.05, metrics=metrics)
        report = await dispatcher.dispatch(_event(clock), _decision("slow@x.io", "ok@x.io"))

        results = {d.address: d for d in report.deliveries}
        assert results["slow@x.io"].result == "timeout"
        assert results["slow@x.io"].error_code == "dispatch-timeout"
        assert "0.05 seconds" in results["slow@x.io"].detail
        assert results["ok@x.io"].ok
        assert sink.calls.count("slow@x.io") == 1
        assert metrics.registry.get_sample_value("statusnotify_deliveries_total", {"result": "timeout"}) == 1.0

    async def test_failure_logged_with_context(self, clock, caplog) -> None:
        dispatcher = OutboundDispatcher(DispatchCache(), _FlakySink(), clock)
        await dispatcher.dispatch(_event(clock), _decision("fail@x.io"))
        records = [r for r in caplog.records if getattr(r, "error_code", None) == "dispatch-transport-error"]
        assert records
        assert records[0].project_id == 7
        assert records[0].recipient == "fail@x.io"

    async def test_report_to_dict(self, clock) -> None:
        dispatcher = OutboundDispatcher(DispatchCache(), LogMailSink(), clock)
        report = await dispatcher.dispatch(_event(clock), _decision("a@x.io"))
        assert report.to_dict() == {
            "outcome": "allowed",
            "deliveries": [
                {"address": "a@x.io", "role": "Client", "result": "sent", "error_code": None, "detail": None},
            ],
        }
