"""NotificationEngine — owns the pipeline services and runs status changes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from status_notify.catalog.catalog import StatusCatalog
from status_notify.errors.pipeline_errors import CatalogLoadError
from status_notify.routing.models import RoutingDecision
from status_notify.toast.sinks import LoggingToastSink, ToastType

if TYPE_CHECKING:
    from status_notify.catalog.store import StatusStore
    from status_notify.config.settings import AppConfig
    from status_notify.datastore.client import Datastore
    from status_notify.dispatch.cache import DispatchCache
    from status_notify.dispatch.clock import Clock
    from status_notify.dispatch.dispatcher import DispatchReport, OutboundDispatcher
    from status_notify.dispatch.sinks import MailSink
    from status_notify.metrics.collector import NotifyMetrics
    from status_notify.routing.models import NotificationEvent
    from status_notify.routing.router import NotificationRouter
    from status_notify.toast.countdown import (
        CompleteCallback,
        CountdownHandle,
        CountdownRegistry,
        TickCallback,
    )
    from status_notify.toast.sinks import ToastSink

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


@dataclass(frozen=True)
class StatusChangeOutcome:
    """Everything one status change produced.

    ``report`` is ``None`` when nothing was dispatched externally or when the
    dispatch was handed to a background task.
    """

    event: NotificationEvent
    decision: RoutingDecision
    toast_type: ToastType
    report: DispatchReport | None = None
    catalog_error: str | None = None
    countdown: CountdownHandle | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.event.project_id,
            "decision": self.decision.to_dict(),
            "toast_type": self.toast_type.value,
            "dispatch": self.report.to_dict() if self.report is not None else None,
            "catalog_error": self.catalog_error,
        }


class NotificationEngine:
    """Central engine wiring catalog, router, dispatch and toasts.

    Collaborators may be injected; anything left ``None`` is built from the
    configuration in :meth:`initialize`.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        store: StatusStore | None = None,
        sink: MailSink | None = None,
        clock: Clock | None = None,
        metrics: NotifyMetrics | None = None,
    ) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            store: Status store; defaults to the SQL store on the configured database.
            sink: Outbound sink; defaults to the one selected by ``config.mail.engine``.
            clock: Time source for the dispatch cache; defaults to the system clock.
            metrics: Prometheus metrics; defaults to a fresh registry when enabled.
        """
        self._config = config
        self._initialized = False

        self._store = store
        self._sink = sink
        self._clock = clock
        self._metrics = metrics

        self._datastore: Datastore | None = None
        self._cache: DispatchCache | None = None
        self._router: NotificationRouter | None = None
        self._dispatcher: OutboundDispatcher | None = None
        self._countdowns: CountdownRegistry | None = None
        self._pending: set[asyncio.Task[DispatchReport | None]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open storage, seed the catalog and start the dispatch cache.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        from status_notify.dispatch.cache import DispatchCache
        from status_notify.dispatch.clock import SystemClock
        from status_notify.dispatch.dispatcher import OutboundDispatcher
        from status_notify.dispatch.sinks import create_sink
        from status_notify.metrics.collector import NotifyMetrics
        from status_notify.routing.router import NotificationRouter
        from status_notify.templating.engine import TemplateEngine
        from status_notify.toast.countdown import CountdownRegistry

        if self._metrics is None and self._config.metrics.enabled:
            self._metrics = NotifyMetrics()

        if self._store is None:
            self._store = await self._open_sql_store()

        if self._clock is None:
            self._clock = SystemClock()

        if self._sink is None:
            self._sink = create_sink(self._config.mail, timeout=self._config.dispatch.timeout_seconds)

        templates = TemplateEngine(self._config.template.unresolved_policy, metrics=self._metrics)
        self._router = NotificationRouter(
            templates,
            base_url=self._config.template.base_url,
            primary_color=self._config.template.primary_color,
            svg_logo=self._config.template.svg_logo,
            metrics=self._metrics,
        )

        self._cache = DispatchCache.from_config(self._config.dispatch, metrics=self._metrics)
        await self._cache.start(self._clock)

        self._dispatcher = OutboundDispatcher(
            self._cache,
            self._sink,
            self._clock,
            timeout=self._config.dispatch.timeout_seconds,
            fingerprint_bucket_seconds=self._config.dispatch.fingerprint_bucket_seconds,
            metrics=self._metrics,
        )
        self._countdowns = CountdownRegistry()

        self._initialized = True
        logger.info("Notification engine initialized (mail engine: %s)", self._config.mail.engine)

    async def _open_sql_store(self) -> StatusStore:
        from status_notify.catalog.store import SqlStatusStore, load_entries_from_yaml
        from status_notify.datastore.client import Datastore

        self._datastore = Datastore(self._config.db)
        await self._datastore.open()

        store = SqlStatusStore(self._datastore)
        if self._config.catalog.seed_path:
            entries = load_entries_from_yaml(self._config.catalog.seed_path)
            count = await store.upsert(entries)
            logger.info("Seeded %d statuses from %s", count, self._config.catalog.seed_path)
        return store

    async def close(self) -> None:
        """Wait for background dispatches, then shut everything down.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
            self._pending.clear()

        if self._countdowns is not None:
            await self._countdowns.cancel_all()
            self._countdowns = None

        if self._cache is not None:
            await self._cache.close()
            self._cache = None

        if self._sink is not None:
            await self._sink.close()

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None
            self._store = None

        self._dispatcher = None
        self._router = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def metrics(self) -> NotifyMetrics | None:
        return self._metrics

    @property
    def store(self) -> StatusStore:
        if not self._initialized or self._store is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._store

    @property
    def sink(self) -> MailSink:
        if not self._initialized or self._sink is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._sink

    @property
    def cache(self) -> DispatchCache:
        if not self._initialized or self._cache is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._cache

    @property
    def router(self) -> NotificationRouter:
        if not self._initialized or self._router is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._router

    @property
    def countdowns(self) -> CountdownRegistry:
        if not self._initialized or self._countdowns is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._countdowns

    @property
    def dispatcher(self) -> OutboundDispatcher:
        if not self._initialized or self._dispatcher is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._dispatcher

    @property
    def pending_dispatches(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def load_catalog(self) -> StatusCatalog:
        """Load a fresh catalog snapshot from the store.

        Raises:
            CatalogLoadError: If the store cannot be read.
        """
        return await StatusCatalog.load_all(self.store)

    async def handle_status_change(
        self,
        event: NotificationEvent,
        toast_sink: ToastSink | None = None,
        *,
        wait: bool = True,
        on_tick: TickCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> StatusChangeOutcome:
        """Run one status change through the pipeline.

        The acting user always gets a toast. External dispatch happens only
        for catalog hits with resolvable recipients, once the dispatch cache
        allows it.

        Args:
            event: The status transition.
            toast_sink: Where the local message goes; defaults to the log.
            wait: Await the dispatch (bounded by the dispatch timeout) or run
                it as a tracked background task.
            on_tick: Countdown tick callback. A countdown is started only when
                a callback is given and the decision carries a countdown.
            on_complete: Countdown completion callback.

        Returns:
            The :class:`StatusChangeOutcome`.
        """
        dispatcher = self.dispatcher
        sink = toast_sink or LoggingToastSink()

        try:
            catalog = await self.load_catalog()
        except CatalogLoadError as err:
            decision = RoutingDecision.fallback(event.new_status)
            self._show(sink, ToastType.INFO, decision)
            return StatusChangeOutcome(
                event=event,
                decision=decision,
                toast_type=ToastType.INFO,
                catalog_error=err.code,
            )

        decision = self.router.route(event, catalog)
        toast_type = ToastType.SUCCESS if decision.catalog_hit else ToastType.INFO
        self._show(sink, toast_type, decision)

        countdown = None
        if decision.countdown_seconds > 0 and (on_tick is not None or on_complete is not None):
            countdown = self.countdowns.start(
                event.project_id,
                decision.countdown_seconds,
                on_tick or _noop_tick,
                on_complete or _noop_complete,
            )

        report = None
        if decision.should_dispatch_externally:
            if wait:
                report = await dispatcher.dispatch(event, decision)
            else:
                task = asyncio.create_task(dispatcher.dispatch(event, decision))
                self._pending.add(task)
                task.add_done_callback(self._on_dispatch_done)

        return StatusChangeOutcome(
            event=event,
            decision=decision,
            toast_type=toast_type,
            report=report,
            countdown=countdown,
        )

    def _on_dispatch_done(self, task: asyncio.Task[DispatchReport | None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background dispatch failed", exc_info=exc)

    def _show(self, sink: ToastSink, toast_type: ToastType, decision: RoutingDecision) -> None:
        sink.show(
            toast_type,
            self._config.toast.title,
            decision.local_message.body,
            self._config.toast.duration_seconds,
        )


def _noop_tick(remaining: int) -> None:
    logger.debug("Countdown tick: %d", remaining)


def _noop_complete() -> None:
    logger.debug("Countdown complete")
