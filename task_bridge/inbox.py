"""Host side of the inbox: watch for notice files and deliver them.

The companion client (``task-bridge send``) drops one JSON file per notice into
{data_dir}/inbox. The host process runs a NotificationInbox on its event loop;
each file is read, handed to the delivery callback in arrival order, and only
deleted once delivery has returned. A notice whose delivery fails stays on
disk and is retried on the next start.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

from watchfiles import Change, awatch

from .config import inbox_dir
from .logging_config import get_logger
from .types import Notice

logger = get_logger(__name__)

POLL_INTERVAL = 5.0  # Inbox polling interval (seconds)


class NotificationInbox:
    """Watches the inbox directory and dispatches notices to ``deliver``."""

    def __init__(self, deliver: Callable[[Notice], object], *, directory: Path | None = None) -> None:
        self._deliver = deliver
        self._queue: asyncio.Queue[tuple[Path | None, Notice]] = asyncio.Queue()
        self._inbox_dir = directory or inbox_dir()
        self._poll_interval = POLL_INTERVAL
        self._tasks: list[asyncio.Task[None]] = []
        self._stop_event: asyncio.Event | None = None
        self._running = False
        self._queued: set[Path] = set()  # Read but not yet delivered
        self._failed: set[Path] = set()  # Delivery raised; left for the next start

    @property
    def running(self) -> bool:
        """Whether the inbox is currently running."""
        return self._running

    async def start(self) -> None:
        """Launch the dispatch loop and the watchers."""
        self._running = True
        self._stop_event = asyncio.Event()
        self._queue = asyncio.Queue()
        self._queued.clear()
        self._failed.clear()
        self._tasks = [
            asyncio.create_task(self._dispatch_loop()),
            asyncio.create_task(self._watch_inbox()),
        ]

    async def stop(self) -> None:
        """Cancel all tasks. Undelivered notices are still on disk for the next start."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        if not self._queue.empty():
            logger.info("Stopped with %d notice(s) undelivered", self._queue.qsize())

    async def _dispatch_loop(self) -> None:
        """Drain the queue, deliver each notice, then remove its file."""
        while self._running:
            try:
                path, notice = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            if path is not None:
                self._queued.discard(path)
            try:
                self._deliver(notice)
            except Exception:
                logger.exception("Failed to deliver notice%s, keeping it", f" {path.name}" if path else "")
                if path is not None:
                    self._failed.add(path)
                continue
            if path is not None:
                path.unlink(missing_ok=True)

    async def _watch_inbox(self) -> None:
        """inotify (via watchfiles) for speed, polling for anything it misses."""
        self._inbox_dir.mkdir(parents=True, exist_ok=True)

        # Notices written while the host was down
        for f in sorted(self._inbox_dir.glob("*.json")):
            self._consume(f)

        await asyncio.gather(self._inotify_inbox(), self._poll_inbox())

    async def _inotify_inbox(self) -> None:
        try:
            async for changes in awatch(self._inbox_dir, stop_event=self._stop_event):
                if not self._running:
                    break
                for change_type, path_str in sorted(changes, key=lambda c: c[1]):
                    if change_type != Change.added:
                        continue
                    path = Path(path_str)
                    if path.suffix != ".json" or path.name.startswith("."):
                        continue
                    self._consume(path)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("inotify inbox loop error")

    async def _poll_inbox(self) -> None:
        while self._running:
            await asyncio.sleep(self._poll_interval)
            if not self._running:
                break
            try:
                for f in sorted(self._inbox_dir.glob("*.json")):
                    self._consume(f)
            except Exception:
                logger.exception("Inbox poll error")

    def _consume(self, path: Path) -> None:
        """Read a notice file and enqueue it. Corrupt files are dropped."""
        if path in self._queued or path in self._failed:
            return
        try:
            content = path.read_text(encoding="utf-8")
        except OSError:
            return  # Already delivered and removed

        try:
            notice = Notice.from_json(content)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Dropping unreadable notice %s: %s", path.name, e)
            path.unlink(missing_ok=True)
            return

        logger.info("Notice: %s", notice.message[:80])
        self._queued.add(path)
        self._queue.put_nowait((path, notice))
