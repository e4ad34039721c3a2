# gaming_desk/application/notifier.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Protocol
from zoneinfo import ZoneInfo

import anyio

from gaming_desk.application import message_templates as mt
from gaming_desk.core.clock import Clock, utc_now
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.domain.errors import DispatchError, DispatchReason

log = logging.getLogger("app.notifier")


class SmsGateway(Protocol):
    def send(self, digits: str, message: str) -> Dict[str, Any]: ...


def normalize_phone(phone_number: str, country_code: str = "+91") -> str | None:
    """
    Reduce "+91 98765 43210" style numbers to the 10 local digits.
    Returns None when that is not possible.
    """
    raw = (phone_number or "").strip()
    if country_code and raw.startswith(country_code):
        raw = raw[len(country_code):]
    digits = "".join(ch for ch in raw if ch.isdigit())
    cc_digits = "".join(ch for ch in country_code if ch.isdigit())
    if len(digits) > 10 and cc_digits and digits.startswith(cc_digits):
        digits = digits[len(cc_digits):]
    return digits if len(digits) == 10 else None


@dataclass(frozen=True)
class NotificationContext:
    session_id: str
    customer_name: str

    @classmethod
    def of(cls, session: SessionRecord) -> "NotificationContext":
        return cls(session_id=session.id, customer_name=session.customer_name)


@dataclass(frozen=True)
class Ack:
    digits: str
    request_id: str | None
    message: str


class NotificationDispatcher:
    def __init__(
        self,
        gateway: SmsGateway,
        cafe_name: str,
        tz: ZoneInfo,
        country_code: str = "+91",
        clock: Clock = utc_now,
    ) -> None:
        self.gateway = gateway
        self.cafe_name = cafe_name
        self.tz = tz
        self.country_code = country_code
        self.clock = clock

    def compose(self, context: NotificationContext, when: datetime | None = None) -> str:
        local = (when or self.clock()).astimezone(self.tz)
        return mt.thank_you_message(context.customer_name, self.cafe_name, local)

    async def notify(self, phone_number: str, context: NotificationContext) -> Ack:
        """One gateway call. Raises DispatchError on any failure; never retries."""
        digits = normalize_phone(phone_number, self.country_code)
        if digits is None:
            raise DispatchError(
                f"Invalid phone number: {phone_number!r}. Must be 10 digits.",
                DispatchReason.INVALID_NUMBER,
            )
        message = self.compose(context)
        data = await anyio.to_thread.run_sync(self.gateway.send, digits, message)
        log.info("Thank-you SMS sent for session %s", context.session_id)
        return Ack(digits=digits, request_id=data.get("request_id"), message=message)
