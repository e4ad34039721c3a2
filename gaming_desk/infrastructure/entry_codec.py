# gaming_desk/infrastructure/entry_codec.py
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple, Union

from gaming_desk.core.clock import ensure_utc
from gaming_desk.domain.catalog import LEGACY_SNACK_PRICES
from gaming_desk.domain.entities import MAX_DURATION_HOURS, PaymentMethod, SessionRecord, SnackOrderLine

log = logging.getLogger("infra.entry_codec")


@dataclass(frozen=True)
class LegacySnackList:
    labels: Tuple[str, ...]


@dataclass(frozen=True)
class StructuredSnackOrders:
    lines: Tuple[Dict[str, Any], ...]


StoredSnacks = Union[LegacySnackList, StructuredSnackOrders]


def classify_snacks(raw: Any) -> StoredSnacks:
    """Old entries stored bare labels (["soda", "soda"]); new ones store order lines."""
    if not isinstance(raw, list) or not raw:
        return StructuredSnackOrders(lines=())
    if isinstance(raw[0], str):
        return LegacySnackList(labels=tuple(str(x) for x in raw))
    return StructuredSnackOrders(lines=tuple(x for x in raw if isinstance(x, dict)))


def fold_legacy_snacks(labels: Sequence[str]) -> List[SnackOrderLine]:
    counts = Counter(labels)
    lines = []
    for label, qty in counts.items():
        lines.append(
            SnackOrderLine(
                item_id=label,
                display_name=label[:1].upper() + label[1:],
                quantity=qty,
                unit_price=LEGACY_SNACK_PRICES.get(label, 0),
                category="legacy",
            )
        )
    return lines


def _int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _parse_line(raw: Dict[str, Any]) -> SnackOrderLine:
    line = SnackOrderLine(
        item_id=str(raw.get("id") or ""),
        display_name=str(raw.get("name") or "").strip(),
        quantity=max(1, _int(raw.get("quantity"), 1)),
        unit_price=_int(raw.get("unitPrice")),
        category=str(raw.get("category") or "general"),
    )
    stored = raw.get("totalPrice")
    if stored is not None and _int(stored, -1) != line.line_total:
        log.warning(
            "snack line %s stored totalPrice=%s, re-derived %d",
            line.item_id, stored, line.line_total,
        )
    return line


def decode_snacks(raw: Any) -> List[SnackOrderLine]:
    stored = classify_snacks(raw)
    if isinstance(stored, LegacySnackList):
        return fold_legacy_snacks(stored.labels)
    return [_parse_line(x) for x in stored.lines]


def encode_snacks(lines: Sequence[SnackOrderLine]) -> List[Dict[str, Any]]:
    return [
        {
            "id": s.item_id,
            "name": s.display_name,
            "category": s.category,
            "quantity": s.quantity,
            "unitPrice": s.unit_price,
            "totalPrice": s.line_total,
        }
        for s in lines
    ]


def parse_timestamp(v: Any) -> datetime:
    if isinstance(v, datetime):
        return ensure_utc(v)
    if isinstance(v, (int, float)):
        return datetime.fromtimestamp(v / 1000.0, tz=timezone.utc)
    if isinstance(v, str) and v.strip():
        return ensure_utc(datetime.fromisoformat(v.strip().replace("Z", "+00:00")))
    raise ValueError(f"Unsupported timestamp: {v!r}")


def _duration(v: Any) -> float:
    d = float(v or 0)
    if not math.isfinite(d) or d < 0 or d > MAX_DURATION_HOURS:
        raise ValueError(f"duration out of range: {v!r}")
    return d


def _payment(v: Any) -> PaymentMethod:
    if str(v or "").lower() == PaymentMethod.ONLINE.value:
        return PaymentMethod.ONLINE
    return PaymentMethod.CASH


def document_to_session(doc: Dict[str, Any]) -> SessionRecord:
    try:
        age = _int(doc.get("age"))
        return SessionRecord(
            id=str(doc.get("_id") or doc.get("id") or ""),
            customer_name=str(doc.get("customerName") or "").strip(),
            phone_number=str(doc.get("phoneNumber") or "").strip(),
            party_size=max(1, _int(doc.get("numberOfPeople"), 1)),
            duration_hours=_duration(doc.get("duration")),
            snack_orders=tuple(decode_snacks(doc.get("snacks"))),
            subtotal=_int(doc.get("subTotal")),
            started_at=parse_timestamp(doc.get("timestamp")),
            renewed=bool(doc.get("isRenewed", False)),
            notification_sent=bool(doc.get("smsSent", False)),
            age_years=age if age > 0 else None,
            payment_method=_payment(doc.get("paymentMode")),
        )
    except Exception as e:
        log.exception("Invalid entry document: %s", doc.get("_id"))
        raise ValueError(f"Invalid entry document: {e}") from e


def session_to_document(session: SessionRecord) -> Dict[str, Any]:
    return {
        "customerName": session.customer_name,
        "phoneNumber": session.phone_number,
        "numberOfPeople": session.party_size,
        "duration": session.duration_hours,
        "snacks": encode_snacks(session.snack_orders),
        "subTotal": session.subtotal,
        "timestamp": session.started_at,
        "isRenewed": session.renewed,
        "smsSent": session.notification_sent,
        "age": session.age_years or 0,
        "paymentMode": session.payment_method.value,
    }
