# =========================
# FILE: gaming_desk/infrastructure/session_store.py
# (in-process backend for STORE_BACKEND=memory and tests)
# =========================
from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Sequence

from gaming_desk.domain.entities import SessionRecord, SnackOrderLine
from gaming_desk.domain.repositories import SessionRepo


class InMemorySessionRepository(SessionRepo):
    def __init__(self) -> None:
        self._data: Dict[str, SessionRecord] = {}
        # repo methods run on worker threads via anyio.to_thread
        self._lock = threading.Lock()

    def insert(self, session: SessionRecord) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._data[session_id] = replace(session, id=session_id)
        return session_id

    def get(self, session_id: str) -> SessionRecord | None:
        with self._lock:
            return self._data.get(session_id)

    def update_billing(
        self,
        session_id: str,
        duration_hours: float,
        party_size: int,
        snack_orders: Sequence[SnackOrderLine],
        subtotal: int,
        renewed: bool,
    ) -> bool:
        with self._lock:
            st = self._data.get(session_id)
            if st is None:
                return False
            self._data[session_id] = replace(
                st,
                duration_hours=duration_hours,
                party_size=party_size,
                snack_orders=tuple(snack_orders),
                subtotal=subtotal,
                renewed=renewed,
            )
            return True

    def mark_notified(self, session_id: str) -> bool:
        with self._lock:
            st = self._data.get(session_id)
            if st is None:
                return False
            self._data[session_id] = replace(st, notification_sent=True)
            return True

    def list_recent(self) -> List[SessionRecord]:
        with self._lock:
            return sorted(self._data.values(), key=lambda s: s.started_at, reverse=True)

    def find_started_before(self, cutoff: datetime) -> List[SessionRecord]:
        with self._lock:
            return [s for s in self._data.values() if s.started_at < cutoff]

    def delete_many(self, session_ids: Iterable[str]) -> int:
        with self._lock:
            removed = [k for k in session_ids if self._data.pop(k, None) is not None]
        return len(removed)
