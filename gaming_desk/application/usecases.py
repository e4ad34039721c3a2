# =========================
# FILE: gaming_desk/application/usecases.py
# =========================
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple
from zoneinfo import ZoneInfo

from gaming_desk.application import selectors as sel
from gaming_desk.application.pricing import estimate_subtotal
from gaming_desk.core.clock import Clock, utc_now
from gaming_desk.domain.catalog import SnackCatalog
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.infrastructure.excel_export import ExcelExporter


@dataclass(frozen=True)
class EstimateTotal:
    catalog: SnackCatalog
    rate: int

    def __call__(self, duration_hours: Any, party_size: Any, selections: Mapping[str, Any]) -> Dict[str, Any]:
        seats = estimate_subtotal(duration_hours, party_size, {}, self.catalog, self.rate)
        total = estimate_subtotal(duration_hours, party_size, selections, self.catalog, self.rate)
        return {"seat_charge": seats, "snacks_total": total - seats, "subtotal": total, "rate": self.rate}


@dataclass(frozen=True)
class BuildAnalytics:
    tz: ZoneInfo
    clock: Clock = utc_now

    def __call__(self, sessions: Sequence[SessionRecord], scope: str = "today") -> Dict[str, Any]:
        now = self.clock()
        today = sel.select_today(sessions, now, self.tz)
        stats_source = list(sessions) if scope == "lifetime" else today
        return {
            "scope": scope,
            "stats": sel.summarize(stats_source),
            "snacks": sel.snacks_distribution(today),
            "hourly": sel.hourly_distribution(today, self.tz),
            "last_7_days": sel.revenue_by_day(sessions, now, self.tz),
            "active_now": len(sel.select_active(sessions, now)),
        }


@dataclass(frozen=True)
class ExportSessions:
    exporter: ExcelExporter
    clock: Clock = utc_now

    def __call__(self, sessions: Sequence[SessionRecord]) -> Tuple[str, bytes]:
        return self.exporter.export_sessions(sessions, self.clock())
