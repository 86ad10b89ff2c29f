"""Notification engine — lifecycle owner of the pipeline services."""

from __future__ import annotations

from status_notify.engine.client import NotificationEngine, StatusChangeOutcome

__all__ = ["NotificationEngine", "StatusChangeOutcome"]
