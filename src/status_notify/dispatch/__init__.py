"""Outbound dispatch — rate limiting, de-duplication and delivery."""

from __future__ import annotations

from status_notify.dispatch.cache import (
    Allow,
    Deny,
    DenyReason,
    DispatchCache,
    DispatchCacheEntry,
    DispatchVerdict,
    event_fingerprint,
)
from status_notify.dispatch.clock import Clock, SystemClock
from status_notify.dispatch.dispatcher import DeliveryResult, DispatchReport, OutboundDispatcher
from status_notify.dispatch.sinks import (
    LogMailSink,
    MailSink,
    ResendMailSink,
    WebhookSink,
    create_sink,
)

__all__ = [
    "Allow",
    "Clock",
    "DeliveryResult",
    "Deny",
    "DenyReason",
    "DispatchCache",
    "DispatchCacheEntry",
    "DispatchReport",
    "DispatchVerdict",
    "LogMailSink",
    "MailSink",
    "OutboundDispatcher",
    "ResendMailSink",
    "SystemClock",
    "WebhookSink",
    "create_sink",
    "event_fingerprint",
]
