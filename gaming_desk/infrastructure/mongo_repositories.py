# gaming_desk/infrastructure/mongo_repositories.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence
import logging

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from gaming_desk.domain.entities import SessionRecord, SnackOrderLine
from gaming_desk.domain.errors import PersistenceError
from gaming_desk.domain.repositories import SessionRepo
from gaming_desk.infrastructure.entry_codec import document_to_session, encode_snacks, session_to_document

log = logging.getLogger("infra.mongo_repo")


def _as_object_id(v: str) -> ObjectId | None:
    try:
        return ObjectId(str(v))
    except (InvalidId, TypeError):
        return None


def _decode_all(docs: Iterable[Dict[str, Any]]) -> List[SessionRecord]:
    out: List[SessionRecord] = []
    for doc in docs:
        try:
            out.append(document_to_session(doc))
        except ValueError:
            # already logged by the codec; one bad entry must not hide the rest
            continue
    return out


class MongoSessionRepository(SessionRepo):
    """
    `entries` collection, one document per customer session.
    Driver errors are re-raised as PersistenceError.
    """
    def __init__(self, col: Collection) -> None:
        self._col = col
        try:
            self._col.create_index([("timestamp", DESCENDING)])
        except PyMongoError as e:
            log.warning("MongoSessionRepository: could not ensure timestamp index: %s", e)

    def insert(self, session: SessionRecord) -> str:
        try:
            res = self._col.insert_one(session_to_document(session))
        except PyMongoError as e:
            raise PersistenceError(f"Failed to save session: {e}") from e
        return str(res.inserted_id)

    def get(self, session_id: str) -> SessionRecord | None:
        oid = _as_object_id(session_id)
        if oid is None:
            return None
        try:
            doc = self._col.find_one({"_id": oid})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to load session {session_id}: {e}") from e
        return document_to_session(doc) if doc else None

    def update_billing(
        self,
        session_id: str,
        duration_hours: float,
        party_size: int,
        snack_orders: Sequence[SnackOrderLine],
        subtotal: int,
        renewed: bool,
    ) -> bool:
        oid = _as_object_id(session_id)
        if oid is None:
            return False
        try:
            res = self._col.update_one(
                {"_id": oid},
                {"$set": {
                    "duration": duration_hours,
                    "numberOfPeople": party_size,
                    "snacks": encode_snacks(snack_orders),
                    "subTotal": subtotal,
                    "isRenewed": renewed,
                }},
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to update session {session_id}: {e}") from e
        return res.matched_count > 0

    def mark_notified(self, session_id: str) -> bool:
        oid = _as_object_id(session_id)
        if oid is None:
            return False
        try:
            res = self._col.update_one({"_id": oid}, {"$set": {"smsSent": True}})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to flag session {session_id}: {e}") from e
        return res.matched_count > 0

    def list_recent(self) -> List[SessionRecord]:
        try:
            docs = list(self._col.find({}).sort("timestamp", DESCENDING))
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list sessions: {e}") from e
        return _decode_all(docs)

    def find_started_before(self, cutoff: datetime) -> List[SessionRecord]:
        try:
            docs = list(self._col.find({"timestamp": {"$lt": cutoff}}))
        except PyMongoError as e:
            raise PersistenceError(f"Failed to query sessions before {cutoff.isoformat()}: {e}") from e
        return _decode_all(docs)

    def delete_many(self, session_ids: Iterable[str]) -> int:
        oids = [oid for oid in (_as_object_id(s) for s in session_ids) if oid is not None]
        if not oids:
            return 0
        try:
            res = self._col.delete_many({"_id": {"$in": oids}})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to delete {len(oids)} archived sessions: {e}") from e
        log.info("Deleted %d archived sessions", res.deleted_count)
        return res.deleted_count
