"""Outbound dispatcher — gate a routed event through the cache and send it.

One event asks the :class:`DispatchCache` exactly once. When allowed, every
recipient is sent concurrently, each bounded by a hard timeout. Failures are
logged and counted per recipient; nothing is retried and nothing is raised
to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from status_notify.dispatch.cache import Allow, Deny, DenyReason, event_fingerprint
from status_notify.errors.pipeline_errors import (
    DispatchTimeout,
    DispatchTransportError,
    DuplicateEvent,
    RateLimited,
)

if TYPE_CHECKING:
    from status_notify.dispatch.cache import DispatchCache, DispatchVerdict
    from status_notify.dispatch.clock import Clock
    from status_notify.dispatch.sinks import MailSink
    from status_notify.metrics.collector import NotifyMetrics
    from status_notify.routing.models import ExternalRecipient, NotificationEvent, RoutingDecision

logger = logging.getLogger(__name__)

RESULT_SENT = "sent"
RESULT_FAILED = "failed"
RESULT_TIMEOUT = "timeout"


def project_headers(event: NotificationEvent) -> dict[str, str]:
    """Mail headers tagging a message with the project and its new status."""
    return {"X-Project-ID": str(event.project_id), "X-Project-Status": str(event.new_status)}


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one recipient's send."""

    address: str
    role: str
    result: str
    error_code: str | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.result == RESULT_SENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "role": self.role,
            "result": self.result,
            "error_code": self.error_code,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class DispatchReport:
    """The cache verdict for an event and the per-recipient results."""

    verdict: DispatchVerdict
    deliveries: tuple[DeliveryResult, ...] = ()

    @property
    def dispatched(self) -> bool:
        return self.verdict.allowed

    @property
    def outcome(self) -> str:
        if isinstance(self.verdict, Deny):
            return self.verdict.reason.value
        return "allowed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "deliveries": [d.to_dict() for d in self.deliveries],
        }


class OutboundDispatcher:
    """Send a routing decision's external recipients through a sink."""

    def __init__(
        self,
        cache: DispatchCache,
        sink: MailSink,
        clock: Clock,
        *,
        timeout: float = 10.0,
        fingerprint_bucket_seconds: int = 60,
        metrics: NotifyMetrics | None = None,
    ) -> None:
        self._cache = cache
        self._sink = sink
        self._clock = clock
        self._timeout = timeout
        self._bucket = fingerprint_bucket_seconds
        self._metrics = metrics

    @property
    def sink(self) -> MailSink:
        return self._sink

    async def dispatch(self, event: NotificationEvent, decision: RoutingDecision) -> DispatchReport | None:
        """Dispatch *decision* for *event*.

        Returns:
            ``None`` when the decision has no external recipients (the cache
            is not consulted), otherwise the report.
        """
        if not decision.should_dispatch_externally:
            return None

        fingerprint = event_fingerprint(event.project_id, event.new_status, event.timestamp, self._bucket)
        verdict = await self._cache.try_dispatch(event.project_id, fingerprint, self._clock.now())
        if isinstance(verdict, Deny):
            self._log_denied(event, verdict.reason, fingerprint)
            return DispatchReport(verdict=verdict)

        results = await asyncio.gather(
            *(self._deliver(event, recipient) for recipient in decision.external_recipients),
        )
        return DispatchReport(verdict=Allow(), deliveries=tuple(results))

    async def _deliver(self, event: NotificationEvent, recipient: ExternalRecipient) -> DeliveryResult:
        message = recipient.message
        headers = project_headers(event)
        try:
            if self._metrics is not None:
                with self._metrics.track_delivery():
                    await self._send(recipient.address, message.subject, message.body, headers)
            else:
                await self._send(recipient.address, message.subject, message.body, headers)
        except TimeoutError:
            err = DispatchTimeout(recipient.address, self._timeout)
            return self._failed(event, recipient, RESULT_TIMEOUT, err)
        except DispatchTransportError as err:
            return self._failed(event, recipient, RESULT_FAILED, err)
        except Exception as exc:  # noqa: BLE001
            err = DispatchTransportError(recipient.address, f"{type(exc).__name__}: {exc}")
            return self._failed(event, recipient, RESULT_FAILED, err)

        if self._metrics is not None:
            self._metrics.record_delivery(RESULT_SENT)
        logger.info(
            "Dispatched status %d notice for project %d to %s",
            event.new_status,
            event.project_id,
            recipient.address,
            extra={"project_id": event.project_id, "recipient": recipient.address},
        )
        return DeliveryResult(recipient.address, recipient.role.value, RESULT_SENT)

    async def _send(self, address: str, subject: str, body: str, headers: dict[str, str]) -> None:
        async with asyncio.timeout(self._timeout):
            await self._sink.send(address, subject, body, headers=headers)

    def _failed(
        self,
        event: NotificationEvent,
        recipient: ExternalRecipient,
        result: str,
        err: DispatchTimeout | DispatchTransportError,
    ) -> DeliveryResult:
        if self._metrics is not None:
            self._metrics.record_delivery(result)
        logger.warning(
            "Dispatch for project %d failed: %s",
            event.project_id,
            err.message,
            extra={
                "project_id": event.project_id,
                "recipient": recipient.address,
                "error_code": err.code,
            },
        )
        return DeliveryResult(
            recipient.address,
            recipient.role.value,
            result,
            error_code=err.code,
            detail=err.message,
        )

    @staticmethod
    def _log_denied(event: NotificationEvent, reason: DenyReason, fingerprint: str) -> None:
        err: RateLimited | DuplicateEvent
        if reason is DenyReason.RATE_LIMITED:
            err = RateLimited(event.project_id)
            level = logging.INFO
        else:
            err = DuplicateEvent(event.project_id, fingerprint)
            level = logging.DEBUG
        logger.log(
            level,
            "Suppressed dispatch for project %d: %s",
            event.project_id,
            err.message,
            extra={"project_id": event.project_id, "error_code": err.code},
        )
