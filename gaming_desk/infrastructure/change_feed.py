# gaming_desk/infrastructure/change_feed.py
from __future__ import annotations

import logging
import threading
from typing import Awaitable, Callable

import anyio
import anyio.from_thread
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from gaming_desk.domain.errors import PersistenceError

log = logging.getLogger("infra.change_feed")

OnChange = Callable[[], Awaitable[object]]


class MongoChangeFeed:
    """
    Calls `on_change` whenever the collection changes.
    Uses a change stream when the deployment has one (replica set / Atlas),
    otherwise polls every `poll_interval_s`.
    """

    def __init__(self, col: Collection, poll_interval_s: float = 5.0) -> None:
        self._col = col
        self.poll_interval_s = poll_interval_s
        self._stopped = threading.Event()

    def stop(self) -> None:
        self._stopped.set()

    async def run(self, on_change: OnChange) -> None:
        try:
            await anyio.to_thread.run_sync(self._watch, on_change)
        except PyMongoError as e:
            log.warning("Change stream unavailable (%s); polling every %.1fs", e, self.poll_interval_s)
        await self._poll(on_change)

    def _watch(self, on_change: OnChange) -> None:
        with self._col.watch(max_await_time_ms=1000) as stream:
            log.info("Watching %s for changes", self._col.full_name)
            while not self._stopped.is_set():
                change = stream.try_next()
                if change is not None:
                    anyio.from_thread.run(_safe_call, on_change)

    async def _poll(self, on_change: OnChange) -> None:
        while not self._stopped.is_set():
            await anyio.sleep(self.poll_interval_s)
            await _safe_call(on_change)


async def _safe_call(on_change: OnChange) -> None:
    try:
        await on_change()
    except PersistenceError as e:
        log.warning("Snapshot reload failed: %s", e)
