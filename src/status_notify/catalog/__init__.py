"""Status catalog — per-status names, tabs and message templates."""

from __future__ import annotations

from status_notify.catalog.catalog import StatusCatalog
from status_notify.catalog.models import CatalogMiss, Role, StatusEntry
from status_notify.catalog.store import (
    SqlStatusStore,
    StaticStatusStore,
    StatusStore,
    load_entries_from_yaml,
)

__all__ = [
    "CatalogMiss",
    "Role",
    "SqlStatusStore",
    "StaticStatusStore",
    "StatusCatalog",
    "StatusEntry",
    "StatusStore",
    "load_entries_from_yaml",
]
