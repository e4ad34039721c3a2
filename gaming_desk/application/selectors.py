# gaming_desk/application/selectors.py
"""
One place for the "which sessions" rules shared by the board, the table and
the analytics views.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Sequence
from zoneinfo import ZoneInfo

from gaming_desk.domain.entities import PaymentMethod, SessionRecord


def start_of_day(now: datetime, tz: ZoneInfo) -> datetime:
    local = now.astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def select_today(sessions: Iterable[SessionRecord], now: datetime, tz: ZoneInfo) -> List[SessionRecord]:
    start = start_of_day(now, tz)
    return [s for s in sessions if s.started_at >= start]


def _ends_after(s: SessionRecord, now: datetime) -> bool:
    try:
        return s.ends_at > now
    except OverflowError:
        # end lies past datetime.max
        return True


def select_active(sessions: Iterable[SessionRecord], now: datetime) -> List[SessionRecord]:
    return [s for s in sessions if _ends_after(s, now)]


def select_completed(sessions: Iterable[SessionRecord], now: datetime) -> List[SessionRecord]:
    return [s for s in sessions if not _ends_after(s, now)]


def select_by_payment_mode(sessions: Iterable[SessionRecord], method: PaymentMethod) -> List[SessionRecord]:
    return [s for s in sessions if s.payment_method is method]


def summarize(sessions: Sequence[SessionRecord]) -> Dict[str, Any]:
    revenue = sum(s.subtotal for s in sessions)
    customers = len(sessions)
    return {
        "total_revenue": revenue,
        "total_customers": customers,
        "avg_session_value": revenue / customers if customers else 0.0,
        "total_hours": sum(s.duration_hours for s in sessions),
        "total_cash": sum(s.subtotal for s in select_by_payment_mode(sessions, PaymentMethod.CASH)),
        "total_online": sum(s.subtotal for s in select_by_payment_mode(sessions, PaymentMethod.ONLINE)),
    }


def snacks_distribution(sessions: Iterable[SessionRecord]) -> List[Dict[str, Any]]:
    dist: Dict[str, int] = OrderedDict()
    for s in sessions:
        for line in s.snack_orders:
            dist[line.display_name] = dist.get(line.display_name, 0) + line.quantity
    return [{"name": k, "value": v} for k, v in dist.items()]


def hourly_distribution(sessions: Iterable[SessionRecord], tz: ZoneInfo) -> List[Dict[str, Any]]:
    hours = {h: {"customers": 0, "revenue": 0} for h in range(24)}
    for s in sessions:
        h = s.started_at.astimezone(tz).hour
        hours[h]["customers"] += 1
        hours[h]["revenue"] += s.subtotal
    return [
        {"hour": f"{h}:00", **v}
        for h, v in hours.items()
        if v["customers"] > 0 or v["revenue"] > 0
    ]


def revenue_by_day(sessions: Sequence[SessionRecord], now: datetime, tz: ZoneInfo, days: int = 7) -> List[Dict[str, Any]]:
    today = start_of_day(now, tz)
    out = []
    for i in range(days - 1, -1, -1):
        day = (today - timedelta(days=i)).replace(hour=0, minute=0, second=0, microsecond=0)
        nxt = day + timedelta(days=1)
        day_sessions = [s for s in sessions if day <= s.started_at < nxt]
        out.append({
            "date": day.strftime("%a, %b %d"),
            "revenue": sum(s.subtotal for s in day_sessions),
            "customers": len(day_sessions),
        })
    return out
