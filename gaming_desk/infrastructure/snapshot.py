# gaming_desk/infrastructure/snapshot.py
from __future__ import annotations

import logging
import time
from typing import Callable, List, Tuple

from gaming_desk.domain.entities import SessionRecord

log = logging.getLogger("infra.snapshot")

Snapshot = Tuple[SessionRecord, ...]
SnapshotHandler = Callable[[Snapshot], None]


class SnapshotCell:
    """
    Single-slot holder for the latest session list.
    The tuple is replaced wholesale, never mutated, so readers dereference
    `current()` at the moment of use and always see a complete list.
    """

    def __init__(self) -> None:
        self._value: Snapshot = ()
        self._loaded = False
        self.version = 0
        self.updated_at: float = 0.0
        self._handlers: List[SnapshotHandler] = []

    @property
    def loaded(self) -> bool:
        return self._loaded

    def current(self) -> Snapshot:
        return self._value

    def publish(self, sessions: Snapshot, force: bool = False) -> bool:
        if self._loaded and not force and sessions == self._value:
            return False
        self._value = tuple(sessions)
        self._loaded = True
        self.version += 1
        self.updated_at = time.time()
        for handler in list(self._handlers):
            self._deliver(handler, self._value)
        return True

    def subscribe(self, handler: SnapshotHandler) -> Callable[[], None]:
        self._handlers.append(handler)
        if self._loaded:
            self._deliver(handler, self._value)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def _deliver(self, handler: SnapshotHandler, value: Snapshot) -> None:
        try:
            handler(value)
        except Exception:
            log.exception("Snapshot subscriber %r failed", handler)
