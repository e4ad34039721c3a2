# gaming_desk/application/live_board.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Tuple

import anyio

from gaming_desk.application.expiry_monitor import SessionPhase, SessionTiming, try_evaluate
from gaming_desk.application.session_adapter import SessionStoreAdapter
from gaming_desk.core.clock import Clock, utc_now
from gaming_desk.domain.entities import SessionRecord

log = logging.getLogger("app.live_board")


@dataclass(frozen=True)
class BoardView:
    now: datetime
    sessions: Tuple[SessionRecord, ...]
    timings: Dict[str, SessionTiming]

    @property
    def active_count(self) -> int:
        return sum(1 for t in self.timings.values() if t.phase is not SessionPhase.EXPIRED)


class LiveBoard:
    """Countdown state for every session, recomputed on the wall-clock tick. Read-only."""

    def __init__(
        self,
        store: SessionStoreAdapter,
        warning_window: timedelta,
        interval_s: float = 1.0,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.warning_window = warning_window
        self.interval_s = interval_s
        self.clock = clock
        self._view: BoardView | None = None

    def recompute(self) -> BoardView:
        now = self.clock()
        sessions = self.store.current()
        timings: Dict[str, SessionTiming] = {}
        for s in sessions:
            t = try_evaluate(s, now, self.warning_window)
            if t is not None:
                timings[s.id] = t
        self._view = BoardView(now=now, sessions=sessions, timings=timings)
        return self._view

    def view(self) -> BoardView:
        # stale if the snapshot changed since the last tick
        v = self._view
        if v is None or v.sessions is not self.store.current():
            return self.recompute()
        return v

    async def run(self) -> None:
        while True:
            try:
                self.recompute()
            except Exception:
                log.exception("Board recompute failed")
            await anyio.sleep(self.interval_s)
