"""Error types for the notification pipeline."""

from __future__ import annotations

from status_notify.errors.notify_errors import NotifyError
from status_notify.errors.pipeline_errors import (
    CatalogError,
    CatalogLoadError,
    CatalogLookupFailed,
    DispatchTimeout,
    DispatchTransportError,
    DuplicateEvent,
    RateLimited,
    RecipientUnresolved,
)

__all__ = [
    "CatalogError",
    "CatalogLoadError",
    "CatalogLookupFailed",
    "DispatchTimeout",
    "DispatchTransportError",
    "DuplicateEvent",
    "NotifyError",
    "RateLimited",
    "RecipientUnresolved",
]
