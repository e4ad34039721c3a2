# =========================
# FILE: gaming_desk/api/schemas.py
# =========================
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from gaming_desk.domain.entities import PaymentMethod, SnackOrderLine


class CreateSessionRequest(BaseModel):
    customer_name: str = Field(..., example="Rahul")
    phone_number: str = Field(..., description="10 local digits, without country code", example="9876543210")
    duration_hours: float = Field(..., description="Hours, in steps of 0.5", example=1.5)
    party_size: int = Field(default=1)
    snacks: Dict[str, int] = Field(default_factory=dict, description="catalog item id -> quantity")
    age_years: Optional[int] = None
    payment_method: PaymentMethod = PaymentMethod.CASH


class CreateSessionResponse(BaseModel):
    id: str


class SnackLineIn(BaseModel):
    item_id: str
    name: str
    quantity: int = Field(..., ge=1)
    unit_price: int = Field(..., ge=0)
    category: str = "general"

    def to_line(self) -> SnackOrderLine:
        return SnackOrderLine(
            item_id=self.item_id,
            display_name=self.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            category=self.category,
        )


class UpdateSessionRequest(BaseModel):
    duration_hours: float
    party_size: int = 1
    snacks: List[SnackLineIn] = Field(default_factory=list)


class EstimateRequest(BaseModel):
    # raw form values; anything unparsable counts as 0
    duration_hours: Any = None
    party_size: Any = None
    snacks: Dict[str, Any] = Field(default_factory=dict)


class EstimateResponse(BaseModel):
    seat_charge: int
    snacks_total: int
    subtotal: int
    rate: int


class SessionView(BaseModel):
    id: str
    customer_name: str
    phone_number: str
    party_size: int
    duration_hours: float
    snack_orders: List[Dict[str, Any]]
    subtotal: int
    started_at: str
    ends_at: str
    renewed: bool
    notification_sent: bool
    age_years: Optional[int] = None
    payment_method: str
    phase: Optional[str] = None
    status_text: Optional[str] = None
    progress_percent: Optional[float] = None


class SessionListResponse(BaseModel):
    now: str
    view: str
    active_count: int
    sessions: List[SessionView]


class SweepRequest(BaseModel):
    retention_months: int = Field(default=6, ge=1)


class SweepResponse(BaseModel):
    status: str
    exported_count: int
    artifact_name: Optional[str] = None


class SnackDeltaRequest(BaseModel):
    item_id: str = Field(..., example="water")
    delta: int = Field(..., description="+1 / -1 from the edit dialog; lines dropping to 0 are removed", example=1)
