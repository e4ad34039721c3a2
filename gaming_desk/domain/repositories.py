# gaming_desk/domain/repositories.py
from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Sequence

from gaming_desk.domain.entities import SessionRecord, SnackOrderLine


class SessionRepo(ABC):
    """
    Blocking access to the `entries` collection.
    Every method raises PersistenceError when the store cannot be reached.
    """

    @abstractmethod
    def insert(self, session: SessionRecord) -> str:
        """Write a new record; the store assigns and returns the id (session.id is ignored)."""

    @abstractmethod
    def get(self, session_id: str) -> SessionRecord | None: ...

    @abstractmethod
    def update_billing(
        self,
        session_id: str,
        duration_hours: float,
        party_size: int,
        snack_orders: Sequence[SnackOrderLine],
        subtotal: int,
        renewed: bool,
    ) -> bool:
        """Returns False when no record matched."""

    @abstractmethod
    def mark_notified(self, session_id: str) -> bool:
        """Returns False when no record matched."""

    @abstractmethod
    def list_recent(self) -> List[SessionRecord]:
        """All records, newest `started_at` first."""

    @abstractmethod
    def find_started_before(self, cutoff: datetime) -> List[SessionRecord]: ...

    @abstractmethod
    def delete_many(self, session_ids: Iterable[str]) -> int: ...
