# gaming_desk/application/archival.py
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, Sequence

import anyio

from gaming_desk.core.clock import Clock, utc_now
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.domain.errors import DeskError, ExportError
from gaming_desk.domain.repositories import SessionRepo

log = logging.getLogger("app.archival")


class ArchiveExporter(Protocol):
    def export_archive(self, sessions: Sequence[SessionRecord], now: datetime) -> str: ...


class SweepStatus(str, Enum):
    NO_DATA = "no_data"
    SUCCESS = "success"


@dataclass(frozen=True)
class SweepResult:
    status: SweepStatus
    exported_count: int = 0
    artifact_name: Optional[str] = None


def months_before(when: datetime, months: int) -> datetime:
    """Calendar months back; the day is clamped to the target month's length."""
    idx = when.year * 12 + (when.month - 1) - months
    year, month = divmod(idx, 12)
    month += 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


class ArchivalSweep:
    def __init__(self, repo: SessionRepo, exporter: ArchiveExporter, clock: Clock = utc_now) -> None:
        self.repo = repo
        self.exporter = exporter
        self.clock = clock

    async def sweep(self, retention_months: int) -> SweepResult:
        """
        Export every session older than the retention window, then delete
        exactly those records. Nothing is deleted unless the export was written.
        """
        now = self.clock()
        cutoff = months_before(now, retention_months)
        stale = await anyio.to_thread.run_sync(self.repo.find_started_before, cutoff)
        if not stale:
            log.info("Archival: nothing older than %s", cutoff.date().isoformat())
            return SweepResult(status=SweepStatus.NO_DATA)

        try:
            artifact = await anyio.to_thread.run_sync(self.exporter.export_archive, stale, now)
        except ExportError:
            log.exception("Archival export failed; %d records left in place", len(stale))
            raise

        ids = [s.id for s in stale]
        # a failure here leaves the export on disk; the next run picks the rows up again
        await anyio.to_thread.run_sync(self.repo.delete_many, ids)
        log.info("Archival: exported and purged %d sessions -> %s", len(ids), artifact)
        return SweepResult(status=SweepStatus.SUCCESS, exported_count=len(ids), artifact_name=artifact)

    async def run_once(self, retention_months: int) -> SweepResult | None:
        try:
            return await self.sweep(retention_months)
        except DeskError as e:
            log.error("Archival sweep failed: %s", e)
            return None

    async def run_periodic(self, retention_months: int, interval_s: float) -> None:
        while True:
            await self.run_once(retention_months)
            await anyio.sleep(interval_s)
