# gaming_desk/domain/errors.py
from __future__ import annotations

from enum import Enum


class DeskError(Exception):
    """Base class for every failure the desk surfaces on purpose."""


class ValidationError(DeskError, ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class NotFoundError(DeskError, LookupError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class PersistenceError(DeskError):
    """Store unreachable or write rejected."""


class DispatchReason(str, Enum):
    INVALID_NUMBER = "invalid_number"
    REJECTED = "rejected"
    TRANSPORT = "transport"


class DispatchError(DeskError):
    def __init__(self, message: str, reason: DispatchReason = DispatchReason.TRANSPORT) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason

    @property
    def is_invalid_number(self) -> bool:
        # gateway rejections carry the reason only in their text
        return self.reason is DispatchReason.INVALID_NUMBER or "invalid phone number" in self.message.lower()


class ExportError(DeskError):
    """Spreadsheet generation or write failed."""
