"""Toast sinks — where the acting user's local message ends up."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class ToastType(enum.StrEnum):
    """Visual category of a toast."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Toast:
    """One toast handed to a sink."""

    type: ToastType
    title: str
    message: str
    duration_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "duration_seconds": self.duration_seconds,
        }


class ToastSink(Protocol):
    """UI boundary receiving rendered local messages verbatim."""

    def show(self, type: ToastType, title: str, message: str, duration_seconds: int) -> None: ...  # noqa: A002


class ToastBuffer:
    """Collect toasts in memory, e.g. for one HTTP request."""

    def __init__(self) -> None:
        self._toasts: list[Toast] = []

    def __len__(self) -> int:
        return len(self._toasts)

    @property
    def toasts(self) -> list[Toast]:
        return list(self._toasts)

    def show(self, type: ToastType, title: str, message: str, duration_seconds: int) -> None:  # noqa: A002
        self._toasts.append(Toast(ToastType(type), title, message, duration_seconds))

    def clear(self) -> None:
        self._toasts.clear()


class LoggingToastSink:
    """Write toasts to the log."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def show(self, type: ToastType, title: str, message: str, duration_seconds: int) -> None:  # noqa: A002
        logger.log(
            self._level,
            "[%s] %s: %s (%ds)",
            ToastType(type).value,
            title,
            message,
            duration_seconds,
        )
