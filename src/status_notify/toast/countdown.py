"""Countdown timer attached to a local status message.

A countdown ticks ``on_tick(duration)`` immediately, then once per second
down to ``0``, then calls ``on_complete()`` exactly once. Cancelling the
handle stops the ticks and suppresses ``on_complete``.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable

    TickCallback = Callable[[int], Any]
    CompleteCallback = Callable[[], Any]
    Sleep = Callable[[float], Awaitable[Any]]

logger = logging.getLogger(__name__)


async def _call(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class CountdownHandle:
    """Handle on a running countdown."""

    def __init__(self, duration_seconds: int) -> None:
        self._duration = duration_seconds
        self._remaining = duration_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def duration(self) -> int:
        return self._duration

    @property
    def remaining(self) -> int:
        """Seconds left as of the last tick."""
        return self._remaining

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    def cancel(self) -> bool:
        """Stop the countdown. Returns ``False`` if it already finished."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    async def wait(self) -> None:
        """Wait until the countdown completes or is cancelled."""
        if self._task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def _run(
        self,
        on_tick: TickCallback,
        on_complete: CompleteCallback,
        sleep: Sleep,
    ) -> None:
        await _call(on_tick, self._remaining)
        while self._remaining > 0:
            await sleep(1)
            self._remaining -= 1
            await _call(on_tick, self._remaining)
        await _call(on_complete)


def start_countdown(
    duration_seconds: int,
    on_tick: TickCallback,
    on_complete: CompleteCallback,
    *,
    sleep: Sleep = asyncio.sleep,
) -> CountdownHandle:
    """Start a countdown task on the running event loop.

    Args:
        duration_seconds: Whole seconds to count down from.
        on_tick: Called with the remaining seconds; may be a coroutine function.
        on_complete: Called once after the ``0`` tick; may be a coroutine function.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        A :class:`CountdownHandle` for cancelling or awaiting the countdown.

    Raises:
        ValueError: If *duration_seconds* is negative.
    """
    if duration_seconds < 0:
        msg = f"countdown duration must not be negative, got {duration_seconds}"
        raise ValueError(msg)
    handle = CountdownHandle(duration_seconds)
    handle._task = asyncio.create_task(handle._run(on_tick, on_complete, sleep))
    return handle


class CountdownRegistry:
    """Keyed countdowns; starting a key again cancels the previous one.

    Finished or cancelled countdowns are dropped from the registry.
    """

    def __init__(self, *, sleep: Sleep = asyncio.sleep) -> None:
        self._sleep = sleep
        self._handles: dict[Hashable, CountdownHandle] = {}

    def __len__(self) -> int:
        return sum(1 for h in self._handles.values() if not h.done)

    def get(self, key: Hashable) -> CountdownHandle | None:
        return self._handles.get(key)

    def start(
        self,
        key: Hashable,
        duration_seconds: int,
        on_tick: TickCallback,
        on_complete: CompleteCallback,
    ) -> CountdownHandle:
        """Start a countdown under *key*, superseding any live one."""
        previous = self._handles.pop(key, None)
        if previous is not None and previous.cancel():
            logger.debug("Superseded countdown for %r", key)
        handle = start_countdown(duration_seconds, on_tick, on_complete, sleep=self._sleep)
        self._handles[key] = handle
        if handle._task is not None:
            handle._task.add_done_callback(lambda _task: self._discard(key, handle))
        return handle

    def _discard(self, key: Hashable, handle: CountdownHandle) -> None:
        if self._handles.get(key) is handle:
            del self._handles[key]

    async def cancel_all(self) -> None:
        """Cancel every live countdown and wait for them to unwind."""
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()
        for handle in handles:
            await handle.wait()
