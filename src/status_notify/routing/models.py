"""Routing types — status change events and routing decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from status_notify.catalog.models import Role
from status_notify.templating.engine import RenderedMessage

if TYPE_CHECKING:
    from collections.abc import Mapping

GENERIC_STATUS_MESSAGE = "Status Update"


@dataclass(frozen=True)
class NotificationEvent:
    """One status transition attempt; never persisted by the pipeline."""

    project_id: int
    new_status: int
    acting_role: Role
    old_status: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    context: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "acting_role", Role.parse(self.acting_role))
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))


@dataclass(frozen=True)
class ExternalRecipient:
    """A resolved address and the message rendered for its role."""

    role: Role
    address: str
    message: RenderedMessage

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role.value, "address": self.address, "message": self.message.to_dict()}


@dataclass(frozen=True)
class RoutingDecision:
    """What the actor sees locally and who gets an external message."""

    status_code: int
    local_message: RenderedMessage
    external_recipients: tuple[ExternalRecipient, ...] = ()
    should_dispatch_externally: bool = False
    catalog_hit: bool = True
    countdown_seconds: int = 0
    dropped_recipients: tuple[Role, ...] = ()
    redirect_url: str | None = None

    @classmethod
    def fallback(cls, status_code: int) -> RoutingDecision:
        """Generic local message, no external dispatch."""
        return cls(
            status_code=status_code,
            local_message=RenderedMessage(
                subject=GENERIC_STATUS_MESSAGE,
                body=GENERIC_STATUS_MESSAGE,
            ),
            catalog_hit=False,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "local_message": self.local_message.to_dict(),
            "external_recipients": [r.to_dict() for r in self.external_recipients],
            "should_dispatch_externally": self.should_dispatch_externally,
            "catalog_hit": self.catalog_hit,
            "countdown_seconds": self.countdown_seconds,
            "dropped_recipients": [r.value for r in self.dropped_recipients],
            "redirect_url": self.redirect_url,
        }
