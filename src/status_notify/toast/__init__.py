"""Local toast messages and their countdown timer."""

from __future__ import annotations

from status_notify.toast.countdown import CountdownHandle, CountdownRegistry, start_countdown
from status_notify.toast.sinks import LoggingToastSink, Toast, ToastBuffer, ToastSink, ToastType

__all__ = [
    "CountdownHandle",
    "CountdownRegistry",
    "LoggingToastSink",
    "Toast",
    "ToastBuffer",
    "ToastSink",
    "ToastType",
    "start_countdown",
]
