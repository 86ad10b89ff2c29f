"""Notification router — local message choice and external recipients."""

from __future__ import annotations

from status_notify.routing.models import ExternalRecipient, NotificationEvent, RoutingDecision
from status_notify.routing.router import NotificationRouter, resolve_addresses

__all__ = [
    "ExternalRecipient",
    "NotificationEvent",
    "NotificationRouter",
    "RoutingDecision",
    "resolve_addresses",
]
