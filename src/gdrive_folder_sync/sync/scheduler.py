"""Triggers for sync passes: debounced local changes and periodic polling.

``ChangeAggregator`` coalesces bursts of filesystem events into one push
batch after a quiet period.  ``PollScheduler`` runs a pull+push cycle on a
fixed interval.  Both catch and log failures from the callback they drive;
a failed pass never stops either trigger.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

logger = logging.getLogger(__name__)


class ChangeAggregator:
    """Debounce change notifications into batches.

    Every ``notify()`` adds the path to the pending set and restarts the
    quiet-period timer.  When the timer elapses, the pending set is swapped
    out and passed to *on_batch* as one list.

    Must be used from the event loop thread; watchdog observers hand events
    over with ``loop.call_soon_threadsafe``.

    Args:
        delay: Quiet period in seconds.
        on_batch: Coroutine function receiving the batch of paths.
    """

    def __init__(
        self,
        delay: float,
        on_batch: Callable[[list[Path]], Awaitable[object]],
    ) -> None:
        self.delay = delay
        self._on_batch = on_batch
        self._pending: set[Path] = set()
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> frozenset[Path]:
        return frozenset(self._pending)

    def notify(self, path: Path) -> None:
        """Record a changed path and restart the quiet-period timer."""
        if self._closed:
            return
        self._pending.add(path)
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        batch, self._pending = self._pending, set()
        if not batch:
            return
        task = asyncio.get_running_loop().create_task(
            self._run_batch(sorted(batch))
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_batch(self, batch: list[Path]) -> None:
        try:
            await self._on_batch(batch)
        except Exception:
            logger.exception("[push] Batch of %d paths failed", len(batch))

    def close(self) -> None:
        """Cancel the pending timer and drop queued paths."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending:
            logger.info(
                "[watch] Dropping %d pending changes on shutdown",
                len(self._pending),
            )
        self._pending.clear()

    async def wait_idle(self) -> None:
        """Wait for batches that already started to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


class PollScheduler:
    """Run *callback* every *interval* seconds until stopped.

    The first run happens one interval after ``start()``; the startup cycle
    is the caller's job.

    Args:
        interval: Seconds between the end of one run and the next.
        callback: Coroutine function to run.
    """

    def __init__(
        self, interval: float, callback: Callable[[], Awaitable[object]]
    ) -> None:
        self.interval = interval
        self._callback = callback
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.get_running_loop().create_task(self._loop())

    async def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                await self._callback()
            except Exception:
                logger.exception("[pull] Scheduled sync failed")

    async def stop(self) -> None:
        """Stop polling; a run already in progress is allowed to finish."""
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None
