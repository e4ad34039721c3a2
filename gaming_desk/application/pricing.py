# gaming_desk/application/pricing.py
from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping, Sequence

from gaming_desk.domain.catalog import SnackCatalog
from gaming_desk.domain.entities import SnackOrderLine
from gaming_desk.domain.errors import ValidationError


def _as_number(v: Any) -> float:
    # half-typed form values ("", None, "abc") count as 0
    try:
        x = float(v)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(x) or math.isinf(x):
        return 0.0
    return x


def compute_subtotal(
    duration_hours: Any,
    party_size: Any,
    snack_orders: Iterable[SnackOrderLine],
    rate: int,
) -> int:
    """
    floor(duration x party x rate) + sum of snack line totals.
    Input is trusted; the callers reject duration <= 0 before persisting.
    """
    seat_charge = math.floor(_as_number(duration_hours) * _as_number(party_size) * rate)
    return int(seat_charge) + sum(line.line_total for line in snack_orders)


def order_lines_from_selection(selections: Mapping[str, int], catalog: SnackCatalog) -> List[SnackOrderLine]:
    lines: List[SnackOrderLine] = []
    for item_id, qty in selections.items():
        if item_id not in catalog:
            raise ValidationError("snacks", f"Unknown snack item: {item_id}")
        if int(qty) < 1:
            raise ValidationError("snacks", f"Quantity for {item_id} must be at least 1")
        lines.append(catalog.order_line(item_id, int(qty)))
    return lines


def estimate_subtotal(
    duration_hours: Any,
    party_size: Any,
    selections: Mapping[str, Any],
    catalog: SnackCatalog,
    rate: int,
) -> int:
    """Live total while the desk is still typing; nothing is validated or stored."""
    lines = []
    for item_id, qty in selections.items():
        n = int(_as_number(qty))
        if n > 0 and item_id in catalog:
            lines.append(catalog.order_line(item_id, n))
    return compute_subtotal(duration_hours, party_size, lines, rate)


def apply_snack_delta(
    lines: Sequence[SnackOrderLine],
    item_id: str,
    delta: int,
    catalog: SnackCatalog,
) -> List[SnackOrderLine]:
    """+/- on one snack in the edit dialog. Existing lines keep their captured unit price."""
    if item_id not in catalog:
        return list(lines)

    out = list(lines)
    for i, line in enumerate(out):
        if line.item_id == item_id:
            qty = line.quantity + delta
            if qty <= 0:
                del out[i]
            else:
                out[i] = line.with_quantity(qty)
            return out

    if delta > 0:
        out.append(catalog.order_line(item_id, delta))
    return out
