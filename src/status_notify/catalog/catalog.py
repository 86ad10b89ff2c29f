"""Status catalog — read-only lookup of status entries for one request.

The catalog is loaded in bulk once per request (or session) and held in
memory for that scope only. There is no in-process invalidation: a new
request loads a fresh catalog through the store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from status_notify.catalog.models import CatalogMiss, Role, StatusEntry
from status_notify.errors.pipeline_errors import CatalogError, CatalogLoadError, CatalogLookupFailed
from status_notify.templating.engine import find_malformed

if TYPE_CHECKING:
    from collections.abc import Iterable

    from status_notify.catalog.store import StatusStore

logger = logging.getLogger(__name__)

# Status code 0 is reserved and never listed.
RESERVED_STATUS_CODE = 0

_TEMPLATE_FIELDS = (
    "admin_email_subject",
    "admin_email_content",
    "client_email_subject",
    "client_email_content",
    "toast_admin",
    "toast_client",
)


class StatusCatalog:
    """Lookup table from status code to :class:`StatusEntry`.

    Usage::

        catalog = await StatusCatalog.load_all(store)
        entry = catalog.lookup(30)
        if isinstance(entry, CatalogMiss):
            ...
    """

    def __init__(self, entries: Iterable[StatusEntry]) -> None:
        """Build the catalog.

        Raises:
            CatalogError: If a non-zero status code appears more than once.
        """
        self._entries: dict[int, StatusEntry] = {}
        for entry in entries:
            if entry.status_code in self._entries and entry.status_code != RESERVED_STATUS_CODE:
                msg = f"duplicate status code {entry.status_code}"
                raise CatalogError(msg)
            self._entries[entry.status_code] = entry
            _warn_malformed(entry)
        self._ordered = sorted(
            (e for e in self._entries.values() if e.status_code != RESERVED_STATUS_CODE),
            key=lambda e: e.status_code,
        )

    @classmethod
    async def load_all(cls, store: StatusStore) -> StatusCatalog:
        """Load every status entry through *store*.

        Raises:
            CatalogLoadError: If the store fails or returns an invalid catalog
                (duplicate codes); fatal for the current request.
        """
        try:
            return cls(await store.load_status_catalog())
        except CatalogLoadError:
            raise
        except Exception as exc:
            logger.exception("Failed to load status catalog")
            raise CatalogLoadError(f"status catalog unavailable: {exc}") from exc

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, status_code: object) -> bool:
        return status_code in self._entries

    def lookup(self, status_code: int) -> StatusEntry | CatalogMiss:
        """Return the entry for *status_code* or a :class:`CatalogMiss`."""
        entry = self._entries.get(status_code)
        if entry is None:
            return CatalogMiss(status_code)
        return entry

    def get(self, status_code: int) -> StatusEntry:
        """Return the entry for *status_code*.

        Raises:
            CatalogLookupFailed: If no entry exists.
        """
        entry = self._entries.get(status_code)
        if entry is None:
            raise CatalogLookupFailed(status_code)
        return entry

    def all_entries(self) -> list[StatusEntry]:
        """All non-reserved entries ordered by status code."""
        return list(self._ordered)

    def by_role(self, role: Role) -> list[StatusEntry]:
        """Entries with a display name for *role*, ordered by status code."""
        return [e for e in self._ordered if e.name_for(role)]

    def tabs_for(self, role: Role) -> dict[str, list[StatusEntry]]:
        """Group :meth:`by_role` by the role's tab; entries without a tab are skipped."""
        tabs: dict[str, list[StatusEntry]] = {}
        for entry in self.by_role(role):
            tab = entry.tab_for(role)
            if not tab:
                continue
            tabs.setdefault(tab, []).append(entry)
        return tabs


def _warn_malformed(entry: StatusEntry) -> None:
    for name in _TEMPLATE_FIELDS:
        template = getattr(entry, name)
        if not template:
            continue
        fragments = find_malformed(template)
        if fragments:
            logger.warning(
                "Status %d field %s has malformed placeholders: %s",
                entry.status_code,
                name,
                ", ".join(fragments),
            )
