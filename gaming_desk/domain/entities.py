# gaming_desk/domain/entities.py
from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Tuple

# longest bookable session
MAX_DURATION_HOURS = 24


class PaymentMethod(str, Enum):
    # values are the stored `paymentMode` strings
    CASH = "offline"
    ONLINE = "online"


@dataclass(frozen=True)
class SnackCatalogItem:
    id: str
    name: str
    unit_price: int
    category: str


@dataclass(frozen=True)
class SnackOrderLine:
    item_id: str
    display_name: str
    quantity: int
    unit_price: int
    category: str = "general"

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price

    def with_quantity(self, quantity: int) -> "SnackOrderLine":
        return replace(self, quantity=quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "name": self.display_name,
            "category": self.category,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
        }


@dataclass(frozen=True)
class SessionRecord:
    id: str
    customer_name: str
    phone_number: str
    party_size: int
    duration_hours: float
    snack_orders: Tuple[SnackOrderLine, ...]
    subtotal: int
    started_at: datetime
    renewed: bool = False
    notification_sent: bool = False
    age_years: int | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH

    @property
    def ends_at(self) -> datetime:
        return self.started_at + timedelta(hours=self.duration_hours)

    def snack_description(self) -> str:
        return ", ".join(f"{s.display_name} (x{s.quantity})" for s in self.snack_orders)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "phone_number": self.phone_number,
            "party_size": self.party_size,
            "duration_hours": self.duration_hours,
            "snack_orders": [s.to_dict() for s in self.snack_orders],
            "subtotal": self.subtotal,
            "started_at": self.started_at.isoformat(),
            "ends_at": self.ends_at.isoformat(),
            "renewed": self.renewed,
            "notification_sent": self.notification_sent,
            "age_years": self.age_years,
            "payment_method": self.payment_method.value,
        }
