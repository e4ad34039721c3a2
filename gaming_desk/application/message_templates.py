# =========================
# FILE: gaming_desk/application/message_templates.py
# =========================
from __future__ import annotations

from datetime import datetime
from typing import Optional


def clock_text(when: datetime) -> str:
    # "07:45 PM"
    return when.strftime("%I:%M %p")


def thank_you_message(customer_name: Optional[str], cafe_name: str, when: datetime) -> str:
    name = (customer_name or "").strip() or "Valued Customer"
    return (
        f"Thank You {name} for Visiting - {cafe_name}\n"
        "We hope to see you soon!\n"
        f"[{clock_text(when)}]"
    )


def remaining_text(hours: int, minutes: int) -> str:
    return f"{hours}h {minutes}m remaining"


def exceeded_text(hours: int, minutes: int) -> str:
    return f"Exceeded by {hours}h {minutes}m" if hours > 0 else f"Exceeded by {minutes}m"
