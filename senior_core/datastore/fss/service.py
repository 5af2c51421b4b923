import json
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..base import BaseDatastore, Filter, apply_query
from ..exceptions import DatastoreError, DocumentNotFoundError
from ..firestore.constants import CREATED_AT_FIELD, UPDATED_AT_FIELD


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class FileSystemService(BaseDatastore):
    """
    File-based datastore implementation.
    Instead of using Firestore, this class reads and writes one JSON file per document
    under `<base_path>/<collection>/`, simulating the backend for offline use and tests.
    """

    def __init__(self, base_path: str = "data/"):
        """
        Initialize the FileSystemService with a base directory to read/write files.

        Args:
            base_path (str): Directory where all collections are stored.
        """
        self.base_path = base_path
        os.makedirs(self.base_path, exist_ok=True)

    def _get_path(self, *parts) -> str:
        return os.path.join(self.base_path, *parts)

    def _read(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise DatastoreError(f"[_read] Corrupted document: {path}", cause=e)

    def _write(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        path = self._get_path(collection, f"{document_id}.json")
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=_json_default)

    def get_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        path = self._get_path(collection, f"{document_id}.json")
        if not os.path.exists(path):
            raise DocumentNotFoundError(collection, document_id)
        data = self._read(path)
        data["id"] = document_id
        return data

    def list_documents(
            self,
            collection: str,
            where: Optional[List[Filter]] = None,
            order_by: Optional[str] = None,
            descending: bool = False,
            limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        folder = self._get_path(collection)
        if not os.path.isdir(folder):
            return []

        docs = []
        for name in sorted(os.listdir(folder)):
            if name.endswith(".json"):
                docs.append(self.get_document(collection, name[:-len(".json")]))
        return apply_query(docs, where, order_by, descending, limit)

    def add_document(self, collection: str, data: Dict[str, Any]) -> str:
        document_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        self._write(collection, document_id, {**data, CREATED_AT_FIELD: now, UPDATED_AT_FIELD: now})
        return document_id

    def set_document(self, collection: str, document_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        current = {}
        if merge and os.path.exists(self._get_path(collection, f"{document_id}.json")):
            current = self.get_document(collection, document_id)
        current.update(data)
        current.pop("id", None)
        self._write(collection, document_id, current)

    def update_document(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        current = self.get_document(collection, document_id)
        current.update(data)
        current[UPDATED_AT_FIELD] = datetime.now(timezone.utc)
        current.pop("id", None)
        self._write(collection, document_id, current)

    def delete_document(self, collection: str, document_id: str) -> None:
        path = self._get_path(collection, f"{document_id}.json")
        if os.path.exists(path):
            os.remove(path)
