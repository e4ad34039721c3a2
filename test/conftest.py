from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Sequence

import pytest

from gaming_desk.application.session_adapter import NewSession, SessionStoreAdapter
from gaming_desk.domain.catalog import CATALOG
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.domain.errors import DispatchError, ExportError, PersistenceError
from gaming_desk.infrastructure.session_store import InMemorySessionRepository

T0 = datetime(2026, 3, 14, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw: float) -> None:
        self.now = self.now + timedelta(**kw)


class FlakyRepo(InMemorySessionRepository):
    """In-memory repo that can be told to fail like an unreachable store."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False
        self.fail_mark = False
        self.fail_delete = False
        self.insert_calls = 0
        self.deleted: List[List[str]] = []

    def insert(self, session: SessionRecord) -> str:
        self.insert_calls += 1
        if self.fail_writes:
            raise PersistenceError("store offline")
        return super().insert(session)

    def update_billing(self, *args: Any, **kw: Any) -> bool:
        if self.fail_writes:
            raise PersistenceError("store offline")
        return super().update_billing(*args, **kw)

    def mark_notified(self, session_id: str) -> bool:
        if self.fail_mark:
            raise PersistenceError("store offline")
        return super().mark_notified(session_id)

    def delete_many(self, session_ids) -> int:
        ids = list(session_ids)
        self.deleted.append(ids)
        if self.fail_delete:
            raise PersistenceError("batch delete rejected")
        return super().delete_many(ids)


class StubGateway:
    def __init__(self, error: DispatchError | None = None) -> None:
        self.error = error
        self.sent: List[Dict[str, str]] = []

    def send(self, digits: str, message: str) -> Dict[str, Any]:
        self.sent.append({"digits": digits, "message": message})
        if self.error is not None:
            raise self.error
        return {"return": True, "request_id": f"req-{len(self.sent)}", "message": ["SMS sent successfully."]}


class StubExporter:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.exported: List[List[str]] = []

    def export_archive(self, sessions: Sequence[SessionRecord], now: datetime) -> str:
        if self.fail:
            raise ExportError("disk full")
        self.exported.append([s.id for s in sessions])
        return f"archive_{now.date().isoformat()}.xlsx"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo() -> FlakyRepo:
    return FlakyRepo()


@pytest.fixture
def store(repo: FlakyRepo, clock: FakeClock) -> SessionStoreAdapter:
    return SessionStoreAdapter(repo, CATALOG, rate=60, country_code="+91", clock=clock)


@pytest.fixture
def new_session():
    def make(**kw: Any) -> NewSession:
        base: Dict[str, Any] = dict(
            customer_name="Arjun",
            phone_number="9876543210",
            duration_hours=1,
            party_size=1,
        )
        base.update(kw)
        return NewSession(**base)

    return make
