"""
'rtdb/service.py': RealtimeDatabaseService stores collections as child nodes of the Realtime Database.
"""
import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from firebase_admin import db
from firebase_admin.exceptions import FirebaseError

from ..base import BaseDatastore, Filter, apply_query
from ..exceptions import ERROR_MESSAGES, DatastoreError, DocumentNotFoundError
from ..firestore.constants import CREATED_AT_FIELD, UPDATED_AT_FIELD

logger = logging.getLogger(__name__)


def to_rtdb_value(value: Any) -> Any:
    """RTDB only stores JSON types: datetimes become epoch milliseconds."""
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_rtdb_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_rtdb_value(v) for v in value]
    return value


class RealtimeDatabaseService(BaseDatastore):
    """
    Realtime Database backend. Each collection is a node whose children are keyed by document ID.
    The database has no compound queries, so filtering, ordering and limits run client-side.
    """

    def __init__(self, app=None, root: str = "", reference_factory: Callable[..., Any] = None):
        self._app = app
        self._root = root.strip("/")
        self._reference = reference_factory or db.reference

    def _ref(self, *parts: str):
        path = "/".join(p for p in (self._root, *parts) if p)
        return self._reference(f"/{path}", app=self._app)

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    def get_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        try:
            data = self._ref(collection, document_id).get()
        except FirebaseError as e:
            logger.error(f"[get_document] Realtime Database error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        if not data:
            raise DocumentNotFoundError(collection, document_id)
        return {**data, "id": document_id}

    def list_documents(
            self,
            collection: str,
            where: Optional[List[Filter]] = None,
            order_by: Optional[str] = None,
            descending: bool = False,
            limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        try:
            snapshot = self._ref(collection).get() or {}
        except FirebaseError as e:
            logger.error(f"[list_documents] Realtime Database error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        docs = [{**value, "id": key} for key, value in snapshot.items() if isinstance(value, dict)]
        return apply_query(docs, where, order_by, descending, limit)

    def add_document(self, collection: str, data: Dict[str, Any]) -> str:
        now = self._now_ms()
        payload = to_rtdb_value({**data, CREATED_AT_FIELD: now, UPDATED_AT_FIELD: now})
        try:
            ref = self._ref(collection).push(payload)
            logger.info(f"[add_document] Created {collection}/{ref.key}")
            return ref.key
        except FirebaseError as e:
            logger.error(f"[add_document] Realtime Database error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

    def set_document(self, collection: str, document_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        payload = to_rtdb_value({k: v for k, v in data.items() if k != "id"})
        try:
            if merge:
                self._ref(collection, document_id).update(payload)
            else:
                self._ref(collection, document_id).set(payload)
        except FirebaseError as e:
            logger.error(f"[set_document] Realtime Database error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

    def update_document(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        payload = to_rtdb_value({**data, UPDATED_AT_FIELD: self._now_ms()})
        try:
            self._ref(collection, document_id).update(payload)
        except FirebaseError as e:
            logger.error(f"[update_document] Realtime Database error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

    def delete_document(self, collection: str, document_id: str) -> None:
        try:
            self._ref(collection, document_id).delete()
            logger.info(f"[delete_document] Deleted {collection}/{document_id}")
        except FirebaseError as e:
            logger.error(f"[delete_document] Realtime Database error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

    def on_snapshot(self, collection: str, callback: Callable[[List[Dict[str, Any]]], None]):
        """Listen to a node; the callback receives the whole collection on every change."""
        def _on_event(event):
            callback(self.list_documents(collection))

        return self._ref(collection).listen(_on_event)
