# gaming_desk/application/expiry_monitor.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Set

import anyio
from anyio.abc import TaskGroup

from gaming_desk.application import message_templates as mt
from gaming_desk.application.notifier import NotificationContext, NotificationDispatcher, normalize_phone
from gaming_desk.application.session_adapter import SessionStoreAdapter
from gaming_desk.core.clock import Clock, utc_now
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.domain.errors import DispatchError

log = logging.getLogger("app.expiry_monitor")

DEFAULT_WARNING_WINDOW = timedelta(minutes=5)


class SessionPhase(str, Enum):
    ACTIVE = "active"
    WARNING = "warning"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SessionTiming:
    phase: SessionPhase
    remaining: timedelta
    exceeded: timedelta
    progress_percent: float
    status_text: str


def _h_m(delta: timedelta) -> tuple[int, int]:
    total_min = int(delta.total_seconds() // 60)
    return total_min // 60, total_min % 60


def evaluate(session: SessionRecord, now: datetime, warning_window: timedelta = DEFAULT_WARNING_WINDOW) -> SessionTiming:
    """Derived from started_at + duration on every call; nothing here is stored."""
    diff = session.ends_at - now
    remaining = max(diff, timedelta(0))
    total = timedelta(hours=session.duration_hours)

    if diff <= timedelta(0):
        exceeded = -diff
        return SessionTiming(
            phase=SessionPhase.EXPIRED,
            remaining=timedelta(0),
            exceeded=exceeded,
            progress_percent=0.0,
            status_text=mt.exceeded_text(*_h_m(exceeded)),
        )

    progress = 100.0 if total <= timedelta(0) else min(100.0, remaining / total * 100.0)
    phase = SessionPhase.WARNING if remaining <= warning_window else SessionPhase.ACTIVE
    return SessionTiming(
        phase=phase,
        remaining=remaining,
        exceeded=timedelta(0),
        progress_percent=progress,
        status_text=mt.remaining_text(*_h_m(remaining)),
    )


def try_evaluate(
    session: SessionRecord,
    now: datetime,
    warning_window: timedelta = DEFAULT_WARNING_WINDOW,
) -> SessionTiming | None:
    """evaluate() for one session of many; a record whose end time cannot be computed yields None."""
    try:
        return evaluate(session, now, warning_window)
    except (OverflowError, ValueError) as e:
        log.warning("Cannot time session %s (duration=%r): %s", session.id, session.duration_hours, e)
        return None


class ExpiryMonitor:
    """
    Every tick: for each lapsed session that has not been notified yet,
    start one independent dispatch task.

      invalid number           -> mark notified, never dispatched
      dispatch ok              -> mark notified
      gateway: invalid number  -> mark notified
      anything else            -> left as is, retried next tick
    """

    def __init__(
        self,
        store: SessionStoreAdapter,
        dispatcher: NotificationDispatcher,
        interval_s: float = 10.0,
        country_code: str = "+91",
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.interval_s = interval_s
        self.country_code = country_code
        self.clock = clock
        self._in_flight: Set[str] = set()

    def due(self, now: datetime | None = None) -> List[SessionRecord]:
        now = now or self.clock()
        out = []
        for s in self.store.current():
            if s.notification_sent or s.id in self._in_flight:
                continue
            timing = try_evaluate(s, now)
            if timing is not None and timing.phase is SessionPhase.EXPIRED:
                out.append(s)
        return out

    def schedule(self, tg: TaskGroup) -> int:
        sessions = self.due()
        for s in sessions:
            self._in_flight.add(s.id)
            tg.start_soon(self._process, s)
        return len(sessions)

    async def tick(self) -> int:
        """One evaluation pass; returns once every dispatch it started has finished."""
        async with anyio.create_task_group() as tg:
            started = self.schedule(tg)
        return started

    async def run(self) -> None:
        log.info("Expiry monitor running every %.1fs", self.interval_s)
        async with anyio.create_task_group() as tg:
            while True:
                try:
                    started = self.schedule(tg)
                    if started:
                        log.debug("Expiry tick started %d dispatches", started)
                except Exception:
                    log.exception("Expiry tick failed")
                await anyio.sleep(self.interval_s)

    async def _process(self, session: SessionRecord) -> None:
        try:
            if normalize_phone(session.phone_number, self.country_code) is None:
                log.info("Skipping SMS for invalid number %r (session %s)", session.phone_number, session.id)
                await self.store.mark_notified(session.id)
                return

            log.info("Triggering SMS for %s (session %s)", session.customer_name, session.id)
            try:
                await self.dispatcher.notify(session.phone_number, NotificationContext.of(session))
            except DispatchError as e:
                if e.is_invalid_number:
                    log.warning("SMS for session %s rejected as invalid number: %s", session.id, e)
                    await self.store.mark_notified(session.id)
                else:
                    log.warning("SMS for session %s failed, will retry: %s", session.id, e)
                return
            await self.store.mark_notified(session.id)
        except Exception:
            log.exception("Unexpected failure processing expired session %s", session.id)
        finally:
            self._in_flight.discard(session.id)
