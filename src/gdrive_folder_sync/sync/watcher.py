"""Local filesystem change notification via watchdog.

The observer runs in its own thread.  ``ChangeHandler`` filters events
there and hands each interesting path to the event loop with
``call_soon_threadsafe``, where the ``ChangeAggregator`` debounces them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config import is_ignored_name

logger = logging.getLogger(__name__)


class ChangeHandler(FileSystemEventHandler):
    """Forward file events to *on_change* on the event loop.

    Directory events are ignored: folders are created remotely only when a
    file inside them is pushed.  For moves both the old and the new path
    are forwarded, so the push sees one deletion and one new file.

    Args:
        loop: The event loop that owns the aggregator.
        on_change: Called on the loop thread with each changed path.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_change: Callable[[Path], None],
    ) -> None:
        super().__init__()
        self._loop = loop
        self._on_change = on_change

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type not in ("created", "modified", "deleted", "moved"):
            return

        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if event.event_type == "moved" and dest:
            paths.append(dest)

        for raw in paths:
            if isinstance(raw, bytes):
                raw = raw.decode()
            path = Path(raw)
            if is_ignored_name(path.name):
                continue
            self._loop.call_soon_threadsafe(self._emit, path)

    def _emit(self, path: Path) -> None:
        logger.info("[watch] Change detected: %s", path)
        self._on_change(path)


class LocalWatcher:
    """Recursive watch on the synced directory.

    Args:
        root: Directory to watch.
        loop: Event loop receiving the notifications.
        on_change: Callback for each changed path (loop thread).
    """

    def __init__(
        self,
        root: Path,
        loop: asyncio.AbstractEventLoop,
        on_change: Callable[[Path], None],
    ) -> None:
        self.root = root
        self._handler = ChangeHandler(loop, on_change)
        self._observer: Observer | None = None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self._handler, str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("[watch] Watching %s", self.root)

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        logger.info("[watch] Stopped")
