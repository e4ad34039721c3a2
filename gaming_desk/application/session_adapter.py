# gaming_desk/application/session_adapter.py
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Sequence

import anyio

from gaming_desk.application.pricing import apply_snack_delta, compute_subtotal, order_lines_from_selection
from gaming_desk.core.clock import Clock, utc_now
from gaming_desk.domain.catalog import SnackCatalog
from gaming_desk.domain.entities import MAX_DURATION_HOURS, PaymentMethod, SessionRecord, SnackOrderLine
from gaming_desk.domain.errors import NotFoundError, PersistenceError, ValidationError
from gaming_desk.domain.repositories import SessionRepo
from gaming_desk.infrastructure.snapshot import Snapshot, SnapshotCell, SnapshotHandler

log = logging.getLogger("app.session_adapter")

_RE_TEN_DIGITS = re.compile(r"\d{10}")


@dataclass(frozen=True)
class NewSession:
    customer_name: str
    phone_number: str
    duration_hours: float
    party_size: int = 1
    snacks: Dict[str, int] = field(default_factory=dict)  # item_id -> quantity
    age_years: Optional[int] = None
    payment_method: PaymentMethod = PaymentMethod.CASH


def _check_duration(duration_hours: Any) -> float:
    try:
        d = float(duration_hours)
    except (TypeError, ValueError) as e:
        raise ValidationError("duration_hours", "Duration must be a number of hours") from e
    if not math.isfinite(d):
        raise ValidationError("duration_hours", "Duration must be a number of hours")
    if not d > 0:
        raise ValidationError("duration_hours", "Duration must be greater than 0")
    if d > MAX_DURATION_HOURS:
        raise ValidationError("duration_hours", f"Duration cannot exceed {MAX_DURATION_HOURS} hours")
    if not (d * 2).is_integer():
        raise ValidationError("duration_hours", "Duration must be in steps of 0.5 hours")
    return d


def _check_party(party_size: Any) -> int:
    try:
        n = int(party_size)
    except (TypeError, ValueError) as e:
        raise ValidationError("party_size", "Number of people must be a whole number") from e
    if n < 1:
        raise ValidationError("party_size", "Number of people must be at least 1")
    return n


class SessionStoreAdapter:
    """
    Front door to the `entries` store: validated writes, plus the latest
    full snapshot pushed to subscribers after every change.
    """

    def __init__(
        self,
        repo: SessionRepo,
        catalog: SnackCatalog,
        rate: int,
        country_code: str = "+91",
        clock: Clock = utc_now,
        cell: SnapshotCell | None = None,
    ) -> None:
        self.repo = repo
        self.catalog = catalog
        self.rate = rate
        self.country_code = country_code
        self.clock = clock
        self.cell = cell or SnapshotCell()

    # ---- reads ----
    def current(self) -> Snapshot:
        return self.cell.current()

    def subscribe(self, on_change: SnapshotHandler) -> Callable[[], None]:
        return self.cell.subscribe(on_change)

    async def refresh(self) -> Snapshot:
        sessions = await anyio.to_thread.run_sync(self.repo.list_recent)
        self.cell.publish(tuple(sessions))
        return self.cell.current()

    async def get_session(self, session_id: str) -> SessionRecord:
        for s in self.cell.current():
            if s.id == session_id:
                return s
        found = await anyio.to_thread.run_sync(self.repo.get, session_id)
        if found is None:
            raise NotFoundError(session_id)
        return found

    # ---- writes ----
    async def create_session(self, data: NewSession) -> str:
        name = (data.customer_name or "").strip()
        if not name:
            raise ValidationError("customer_name", "Customer name is required")
        phone = (data.phone_number or "").strip()
        if not _RE_TEN_DIGITS.fullmatch(phone):
            raise ValidationError("phone_number", "Phone number must be exactly 10 digits")
        duration = _check_duration(data.duration_hours)
        party = _check_party(data.party_size)
        if data.age_years is not None and data.age_years < 0:
            raise ValidationError("age_years", "Age cannot be negative")
        lines = order_lines_from_selection(data.snacks or {}, self.catalog)

        record = SessionRecord(
            id="",
            customer_name=name,
            phone_number=f"{self.country_code} {phone}",
            party_size=party,
            duration_hours=duration,
            snack_orders=tuple(lines),
            subtotal=compute_subtotal(duration, party, lines, self.rate),
            started_at=self.clock(),
            renewed=False,
            notification_sent=False,
            age_years=data.age_years or None,
            payment_method=data.payment_method,
        )
        session_id = await anyio.to_thread.run_sync(self.repo.insert, record)
        log.info("Session started id=%s name=%s hours=%s subtotal=%d", session_id, name, duration, record.subtotal)
        await self._refresh_quietly()
        return session_id

    async def update_session(
        self,
        session_id: str,
        duration_hours: float,
        party_size: int,
        snack_orders: Sequence[SnackOrderLine],
    ) -> SessionRecord:
        duration = _check_duration(duration_hours)
        party = _check_party(party_size)
        for line in snack_orders:
            if line.quantity < 1:
                raise ValidationError("snacks", f"Quantity for {line.item_id} must be at least 1")

        prior = await anyio.to_thread.run_sync(self.repo.get, session_id)
        if prior is None:
            raise NotFoundError(session_id)

        lines = tuple(snack_orders)
        subtotal = compute_subtotal(duration, party, lines, self.rate)
        renewed = prior.renewed or duration > prior.duration_hours

        matched = await anyio.to_thread.run_sync(
            self.repo.update_billing, session_id, duration, party, lines, subtotal, renewed
        )
        if not matched:
            raise NotFoundError(session_id)
        log.info("Session updated id=%s hours=%s->%s renewed=%s subtotal=%d",
                 session_id, prior.duration_hours, duration, renewed, subtotal)
        await self._refresh_quietly()
        return replace(
            prior,
            duration_hours=duration,
            party_size=party,
            snack_orders=lines,
            subtotal=subtotal,
            renewed=renewed,
        )

    async def adjust_snack(self, session_id: str, item_id: str, delta: int) -> SessionRecord:
        """+/- one catalog item on a running session; duration and party size stay as they are."""
        if item_id not in self.catalog:
            raise ValidationError("item_id", f"Unknown snack item: {item_id}")
        prior = await anyio.to_thread.run_sync(self.repo.get, session_id)
        if prior is None:
            raise NotFoundError(session_id)
        lines = apply_snack_delta(prior.snack_orders, item_id, delta, self.catalog)
        return await self.update_session(session_id, prior.duration_hours, prior.party_size, lines)

    async def mark_notified(self, session_id: str) -> None:
        """Idempotent; unknown ids are a no-op and store failures are only logged."""
        try:
            matched = await anyio.to_thread.run_sync(self.repo.mark_notified, session_id)
        except PersistenceError as e:
            log.warning("mark_notified failed for %s: %s", session_id, e)
            return
        if not matched:
            log.info("mark_notified: session %s no longer exists", session_id)
        self._patch_notified(session_id)

    def _patch_notified(self, session_id: str) -> None:
        snap = self.cell.current()
        if not any(s.id == session_id and not s.notification_sent for s in snap):
            return
        self.cell.publish(tuple(
            replace(s, notification_sent=True) if s.id == session_id else s for s in snap
        ))

    async def _refresh_quietly(self) -> None:
        # the write already succeeded; the change feed will catch up if this read fails
        try:
            await self.refresh()
        except PersistenceError as e:
            log.warning("Snapshot refresh after write failed: %s", e)
