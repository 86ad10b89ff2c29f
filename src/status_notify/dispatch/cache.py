"""Dispatch cache — per-project sliding window and duplicate suppression.

Each project has one entry that moves through three states:

- **Idle** (no entry): the first event creates it and is allowed.
- **Active** (``now - window_start < window``): allowed while the window
  budget lasts, unless the fingerprint was already seen (duplicate);
  once the budget is spent every event is rate limited.
- **Expired** (``now - window_start >= window``): the window, its count and
  its fingerprints reset and the event is allowed.

The check-and-increment for one project runs under that project's own lock;
unrelated projects never wait on each other. Idle entries are evicted by
:meth:`DispatchCache.collect_garbage`, which skips any entry whose lock is
held.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from status_notify.config.settings import DispatchConfig
    from status_notify.dispatch.clock import Clock
    from status_notify.metrics.collector import NotifyMetrics

logger = logging.getLogger(__name__)


class DenyReason(enum.StrEnum):
    """Why an event may not fire an external call."""

    DUPLICATE = "duplicate"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class Allow:
    """The event may dispatch."""

    @property
    def allowed(self) -> bool:
        return True


@dataclass(frozen=True)
class Deny:
    """The event must not dispatch."""

    reason: DenyReason

    @property
    def allowed(self) -> bool:
        return False


DispatchVerdict = Allow | Deny


@dataclass
class DispatchCacheEntry:
    """Window state of one project."""

    project_id: int
    window_start: datetime
    count_in_window: int = 0
    fingerprints: dict[str, datetime] = field(default_factory=dict)
    last_seen: datetime | None = None

    def reset(self, now: datetime) -> None:
        self.window_start = now
        self.count_in_window = 0
        self.fingerprints.clear()

    def record(self, fingerprint: str, now: datetime) -> None:
        self.count_in_window += 1
        self.fingerprints[fingerprint] = now
        self.last_seen = now


def event_fingerprint(
    project_id: int,
    new_status: int,
    timestamp: datetime,
    bucket_seconds: int = 60,
) -> str:
    """Deterministic identifier of one status change event.

    Events for the same project and status inside the same time bucket
    share a fingerprint.
    """
    bucket = int(timestamp.timestamp() // bucket_seconds)
    raw = f"{project_id}:{new_status}:{bucket}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class DispatchCache:
    """Rate limiter and de-duplicator guarding outbound messages.

    Usage::

        cache = DispatchCache.from_config(config.dispatch)
        await cache.start(clock)
        verdict = await cache.try_dispatch(7, fingerprint, clock.now())
        await cache.close()
    """

    def __init__(
        self,
        *,
        rate_limit: int = 10,
        window: timedelta = timedelta(seconds=60),
        dedup_retention: timedelta = timedelta(seconds=60),
        idle_retention: timedelta = timedelta(seconds=300),
        sweep_interval: float = 60.0,
        metrics: NotifyMetrics | None = None,
    ) -> None:
        if rate_limit < 1:
            msg = "rate_limit must be at least 1"
            raise ValueError(msg)
        self._rate_limit = rate_limit
        self._window = window
        self._dedup_retention = dedup_retention
        self._idle_retention = idle_retention
        self._sweep_interval = sweep_interval
        self._metrics = metrics
        self._entries: dict[int, DispatchCacheEntry] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._sweeper: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls,
        config: DispatchConfig,
        *,
        metrics: NotifyMetrics | None = None,
    ) -> DispatchCache:
        return cls(
            rate_limit=config.rate_limit,
            window=timedelta(seconds=config.window_seconds),
            dedup_retention=timedelta(seconds=config.dedup_retention_seconds),
            idle_retention=timedelta(seconds=config.idle_retention_seconds),
            sweep_interval=config.sweep_interval_seconds,
            metrics=metrics,
        )

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def rate_limit(self) -> int:
        return self._rate_limit

    @property
    def is_running(self) -> bool:
        """Whether the background sweeper is running."""
        return self._sweeper is not None

    def get_entry(self, project_id: int) -> DispatchCacheEntry | None:
        """Return the live entry for *project_id*, if any."""
        return self._entries.get(project_id)

    async def try_dispatch(self, project_id: int, fingerprint: str, now: datetime) -> DispatchVerdict:
        """Decide whether one event of *project_id* may fire an external call."""
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        async with lock:
            verdict = self._decide(project_id, fingerprint, now)
        if self._metrics is not None:
            self._metrics.record_decision("allowed" if verdict.allowed else verdict.reason.value)
            self._metrics.set_cache_entries(len(self._entries))
        return verdict

    def _decide(self, project_id: int, fingerprint: str, now: datetime) -> DispatchVerdict:
        entry = self._entries.get(project_id)
        if entry is None:
            entry = DispatchCacheEntry(project_id=project_id, window_start=now)
            entry.record(fingerprint, now)
            self._entries[project_id] = entry
            return Allow()

        if now - entry.window_start >= self._window:
            entry.reset(now)
            entry.record(fingerprint, now)
            return Allow()

        self._purge_fingerprints(entry, now)
        entry.last_seen = now
        if entry.count_in_window < self._rate_limit:
            if fingerprint in entry.fingerprints:
                return Deny(DenyReason.DUPLICATE)
            entry.record(fingerprint, now)
            return Allow()
        return Deny(DenyReason.RATE_LIMITED)

    def _purge_fingerprints(self, entry: DispatchCacheEntry, now: datetime) -> None:
        expired = [fp for fp, seen in entry.fingerprints.items() if now - seen >= self._dedup_retention]
        for fp in expired:
            del entry.fingerprints[fp]

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def collect_garbage(self, now: datetime) -> int:
        """Evict entries idle for longer than the idle retention.

        Entries whose lock is currently held are left alone.

        Returns:
            Number of evicted entries.
        """
        evicted = 0
        for project_id, entry in list(self._entries.items()):
            last = entry.last_seen or entry.window_start
            if now - last <= self._idle_retention:
                continue
            lock = self._locks.get(project_id)
            if lock is not None and lock.locked():
                continue
            del self._entries[project_id]
            self._locks.pop(project_id, None)
            evicted += 1
        if evicted:
            logger.debug("Evicted %d idle dispatch cache entries", evicted)
        if self._metrics is not None:
            self._metrics.set_cache_entries(len(self._entries))
        return evicted

    async def start(self, clock: Clock) -> None:
        """Start the periodic eviction sweep."""
        if self._sweeper is not None:
            return
        self._sweeper = asyncio.create_task(self._sweep(clock))

    async def close(self) -> None:
        """Stop the sweep and drop all state."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        self._entries.clear()
        self._locks.clear()

    async def _sweep(self, clock: Clock) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.collect_garbage(clock.now())
