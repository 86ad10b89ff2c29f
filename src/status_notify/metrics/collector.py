"""Metrics collector — Prometheus counters, gauges, histograms.

- ``statusnotify_dispatch_decisions_total`` counter (allowed, duplicate, rate_limited)
- ``statusnotify_deliveries_total`` counter (sent, failed, timeout)
- ``statusnotify_delivery_duration_seconds`` histogram
- ``statusnotify_catalog_misses_total`` counter
- ``statusnotify_recipients_dropped_total`` counter by role
- ``statusnotify_unresolved_placeholders_total`` counter
- ``statusnotify_dispatch_cache_entries`` gauge
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "statusnotify"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`NotifyMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class NotifyMetrics:
    """High-level metrics for the notification pipeline."""

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._decisions = self._collector.counter(
            f"{_PREFIX}_dispatch_decisions_total",
            "Dispatch cache verdicts by outcome",
            ("outcome",),
        )
        self._deliveries = self._collector.counter(
            f"{_PREFIX}_deliveries_total",
            "Outbound deliveries by result",
            ("result",),
        )
        self._delivery_duration = self._collector.histogram(
            f"{_PREFIX}_delivery_duration_seconds",
            "Duration of outbound sink calls",
        )
        self._catalog_misses = self._collector.counter(
            f"{_PREFIX}_catalog_misses_total",
            "Status change events whose status has no catalog entry",
        )
        self._dropped = self._collector.counter(
            f"{_PREFIX}_recipients_dropped_total",
            "Recipients dropped for lack of a resolvable address",
            ("role",),
        )
        self._unresolved = self._collector.counter(
            f"{_PREFIX}_unresolved_placeholders_total",
            "Custom placeholders missing from the render context",
        )
        self._cache_entries = self._collector.gauge(
            f"{_PREFIX}_dispatch_cache_entries",
            "Projects currently tracked by the dispatch cache",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def record_decision(self, outcome: str) -> None:
        self._decisions.labels(outcome=outcome).inc()

    def record_delivery(self, result: str) -> None:
        self._deliveries.labels(result=result).inc()

    def record_catalog_miss(self) -> None:
        self._catalog_misses.inc()

    def record_dropped_recipient(self, role: str) -> None:
        self._dropped.labels(role=role).inc()

    def record_unresolved(self, count: int) -> None:
        self._unresolved.inc(count)

    def set_cache_entries(self, count: int) -> None:
        self._cache_entries.set(count)

    @contextmanager
    def track_delivery(self) -> Iterator[None]:
        """Track the duration of one outbound sink call."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._delivery_duration.observe(time.monotonic() - start)
