"""Status configuration stores — the catalog's persistence collaborator.

- ``StatusStore`` — protocol the catalog loads through
- ``SqlStatusStore`` — ``project_statuses`` table via async SQLAlchemy
- ``StaticStatusStore`` — fixed in-memory entries
- ``load_entries_from_yaml`` — seed file reader
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import yaml
from sqlalchemy import select

from status_notify.catalog.models import StatusEntry
from status_notify.datastore.models import ProjectStatusRow

if TYPE_CHECKING:
    from collections.abc import Iterable

    from status_notify.datastore.client import Datastore

logger = logging.getLogger(__name__)


class StatusStore(Protocol):
    """Read side of the status configuration."""

    async def load_status_catalog(self) -> list[StatusEntry]: ...


class StaticStatusStore:
    """Store serving a fixed list of entries."""

    def __init__(self, entries: Iterable[StatusEntry] = ()) -> None:
        self._entries = list(entries)

    async def load_status_catalog(self) -> list[StatusEntry]:  # noqa: ASYNC910
        """Return a copy of the configured entries."""
        return list(self._entries)


class SqlStatusStore:
    """Store backed by the ``project_statuses`` table."""

    def __init__(self, datastore: Datastore) -> None:
        self._datastore = datastore

    async def load_status_catalog(self) -> list[StatusEntry]:
        """Load every row ordered by status code."""
        async with self._datastore.session() as session:
            result = await session.execute(
                select(ProjectStatusRow).order_by(ProjectStatusRow.status_code)
            )
            rows = result.scalars().all()
        return [_row_to_entry(row) for row in rows]

    async def upsert(self, entries: Iterable[StatusEntry]) -> int:
        """Insert or replace rows for *entries*.

        Returns:
            Number of rows written.
        """
        count = 0
        async with self._datastore.transaction() as session:
            for entry in entries:
                row = await session.get(ProjectStatusRow, entry.status_code)
                if row is None:
                    row = ProjectStatusRow(status_code=entry.status_code)
                    session.add(row)
                _apply_entry(row, entry)
                count += 1
        logger.info("Upserted %d status entries", count)
        return count


def load_entries_from_yaml(path: str | Path) -> list[StatusEntry]:
    """Read status entries from a YAML seed file.

    The file holds either a list of entries or a mapping with a
    ``statuses`` list. Missing files yield an empty list.

    Raises:
        ValueError: If an entry is invalid.
    """
    p = Path(path)
    if not p.exists():
        logger.warning("Status seed file %s not found", p)
        return []
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("statuses", [])
    if not isinstance(data, list):
        msg = f"Status seed file {p} must contain a list of statuses"
        raise ValueError(msg)
    return [StatusEntry.from_dict(item) for item in data]


def _row_to_entry(row: ProjectStatusRow) -> StatusEntry:
    return StatusEntry(
        status_code=row.status_code,
        admin_name=row.admin_status_name or "",
        client_name=row.client_status_name or "",
        admin_tab=row.admin_status_tab,
        client_tab=row.client_status_tab,
        admin_action=row.project_action or "",
        admin_email_subject=row.admin_email_subject,
        admin_email_content=row.admin_email_content,
        client_email_subject=row.client_email_subject,
        client_email_content=row.client_email_content,
        toast_admin=row.toast_admin,
        toast_client=row.toast_client,
        notify_roles=frozenset(row.notify or ()),
        est_time=row.est_time,
        countdown_seconds=row.countdown_seconds or 0,
        admin_button_text=row.admin_button_text,
        admin_button_link=row.admin_button_link,
        client_button_text=row.client_button_text,
        client_button_link=row.client_button_link,
        admin_redirect_url=row.modal_auto_redirect_admin,
        client_redirect_url=row.modal_auto_redirect_client,
    )


def _apply_entry(row: ProjectStatusRow, entry: StatusEntry) -> None:
    row.admin_status_name = entry.admin_name
    row.client_status_name = entry.client_name
    row.admin_status_tab = entry.admin_tab
    row.client_status_tab = entry.client_tab
    row.project_action = entry.admin_action
    row.admin_email_subject = entry.admin_email_subject
    row.admin_email_content = entry.admin_email_content
    row.client_email_subject = entry.client_email_subject
    row.client_email_content = entry.client_email_content
    row.toast_admin = entry.toast_admin
    row.toast_client = entry.toast_client
    row.notify = sorted(r.value for r in entry.notify_roles)
    row.est_time = entry.est_time
    row.countdown_seconds = entry.countdown_seconds
    row.admin_button_text = entry.admin_button_text
    row.admin_button_link = entry.admin_button_link
    row.client_button_text = entry.client_button_text
    row.client_button_link = entry.client_button_link
    row.modal_auto_redirect_admin = entry.admin_redirect_url
    row.modal_auto_redirect_client = entry.client_redirect_url
