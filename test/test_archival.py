from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gaming_desk.application.archival import ArchivalSweep, SweepStatus, months_before
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.domain.errors import ExportError, PersistenceError

from conftest import T0, StubExporter


def _record(name: str, started_at: datetime) -> SessionRecord:
    return SessionRecord(
        id="",
        customer_name=name,
        phone_number="+91 9876543210",
        party_size=1,
        duration_hours=1,
        snack_orders=(),
        subtotal=50,
        started_at=started_at,
    )


@pytest.fixture
def seeded(repo):
    old = [
        repo.insert(_record("Old A", datetime(2025, 6, 1, tzinfo=timezone.utc))),
        repo.insert(_record("Old B", datetime(2025, 9, 13, 23, 0, tzinfo=timezone.utc))),
    ]
    fresh = [
        repo.insert(_record("Fresh", datetime(2025, 9, 14, 10, 0, tzinfo=timezone.utc))),
        repo.insert(_record("Today", T0)),
    ]
    return old, fresh


@pytest.mark.parametrize(
    "when,months,expected",
    [
        (datetime(2026, 3, 14), 6, datetime(2025, 9, 14)),
        (datetime(2026, 8, 31), 6, datetime(2026, 2, 28)),
        (datetime(2024, 8, 31), 6, datetime(2024, 2, 29)),
        (datetime(2026, 1, 15), 1, datetime(2025, 12, 15)),
        (datetime(2026, 5, 10), 0, datetime(2026, 5, 10)),
    ],
)
def test_months_before(when, months, expected):
    assert months_before(when, months) == expected


@pytest.mark.asyncio
async def test_sweep_exports_then_deletes_exactly_stale_records(repo, clock, seeded):
    old, fresh = seeded
    exporter = StubExporter()

    result = await ArchivalSweep(repo, exporter, clock=clock).sweep(6)

    assert result.status is SweepStatus.SUCCESS
    assert result.exported_count == 2
    assert result.artifact_name == "archive_2026-03-14.xlsx"
    assert sorted(exporter.exported[0]) == sorted(old)
    assert sorted(repo.deleted[0]) == sorted(old)
    assert sorted(s.id for s in repo.list_recent()) == sorted(fresh)


@pytest.mark.asyncio
async def test_sweep_with_nothing_stale(repo, clock):
    repo.insert(_record("Today", T0))
    exporter = StubExporter()

    result = await ArchivalSweep(repo, exporter, clock=clock).sweep(6)

    assert result.status is SweepStatus.NO_DATA
    assert result.exported_count == 0
    assert exporter.exported == []
    assert repo.deleted == []


@pytest.mark.asyncio
async def test_export_failure_deletes_nothing(repo, clock, seeded):
    before = sorted(s.id for s in repo.list_recent())

    with pytest.raises(ExportError):
        await ArchivalSweep(repo, StubExporter(fail=True), clock=clock).sweep(6)

    assert repo.deleted == []
    assert sorted(s.id for s in repo.list_recent()) == before


@pytest.mark.asyncio
async def test_delete_failure_surfaces_after_export(repo, clock, seeded):
    old, _ = seeded
    exporter = StubExporter()
    repo.fail_delete = True

    with pytest.raises(PersistenceError):
        await ArchivalSweep(repo, exporter, clock=clock).sweep(6)

    assert sorted(exporter.exported[0]) == sorted(old)
    assert len(repo.list_recent()) == 4


@pytest.mark.asyncio
async def test_run_once_logs_instead_of_raising(repo, clock, seeded):
    result = await ArchivalSweep(repo, StubExporter(fail=True), clock=clock).run_once(6)
    assert result is None
    assert len(repo.list_recent()) == 4
