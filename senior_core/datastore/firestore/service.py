"""
'firestore/service.py': FirestoreService handles document CRUD against Cloud Firestore.
"""
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, DocumentSnapshot
from google.cloud.firestore_v1.base_query import FieldFilter

from ..base import BaseDatastore, Filter
from ..exceptions import ERROR_MESSAGES, DatastoreError, DocumentNotFoundError
from .constants import CREATED_AT_FIELD, UPDATED_AT_FIELD
from .paths import get_collection_path, get_document_path

logger = logging.getLogger(__name__)


class FirestoreService(BaseDatastore):
    def __init__(
            self,
            config: Optional[Dict] = None,
            credentials_path: Optional[str] = None,
            client: Optional[firestore.Client] = None,
    ):
        """Initialize the Firestore client.

        Use exactly one:
        - ADC -> pass `config` as the **database block** (e.g. {"type":"firestore","project_id":"..."}).
        - Service account -> pass `credentials_path` (path to JSON).
        - An already built `client`.
        """
        if client is not None:
            self._firestore_client = client
            return

        if bool(config) == bool(credentials_path):
            raise ValueError("Provide exactly one of `config` (ADC) or `credentials_path`.")

        if config:
            project_id = config.get("project_id")
            if not project_id:
                raise ValueError("`project_id` is required in config for ADC.")
            self._firestore_client = firestore.Client(project=project_id)
            return

        p = Path(credentials_path)
        if not p.exists():
            raise FileNotFoundError(f"Service-account key not found: {p}")
        self._firestore_client = firestore.Client.from_service_account_json(str(p))

    @staticmethod
    def _to_dict(doc: DocumentSnapshot) -> Dict[str, Any]:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return data

    def get_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        """
        Fetch a document from a collection.

        Args:
            collection (str): Collection name.
            document_id (str): Document ID.

        Returns:
            Dict[str, Any]: Document data with its `id`.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            DatastoreError: If Firestore is unavailable or fails unexpectedly.
        """
        if not all([collection.strip(), document_id.strip()]):
            raise ValueError(ERROR_MESSAGES["invalid_input"])

        try:
            doc = get_document_path(self._firestore_client, collection, document_id).get()

        except GoogleAPIError as e:
            logger.error(f"[get_document] Firestore API error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        except Exception as e:
            logger.error(f"[get_document] Unexpected error while fetching document <ID:{document_id}>: {e}")
            raise DatastoreError(ERROR_MESSAGES["unexpected_error"], cause=e)

        if not doc.exists:
            logger.warning(f"[get_document] Document {collection}/{document_id} not found.")
            raise DocumentNotFoundError(collection, document_id)

        return self._to_dict(doc)

    def list_documents(
            self,
            collection: str,
            where: Optional[List[Filter]] = None,
            order_by: Optional[str] = None,
            descending: bool = False,
            limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query a collection with optional filters, ordering and limit.

        Raises:
            DatastoreError: If the query fails.
        """
        query = get_collection_path(self._firestore_client, collection)
        for field, op, value in where or []:
            query = query.where(filter=FieldFilter(field, op, value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)

        try:
            docs = [self._to_dict(doc) for doc in query.stream()]
            logger.info(f"[list_documents] Fetched {len(docs)} documents from '{collection}'")
            return docs

        except GoogleAPIError as e:
            logger.error(f"[list_documents] Firestore API error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        except Exception as e:
            logger.error(f"[list_documents] Unexpected error: {e}")
            raise DatastoreError(ERROR_MESSAGES["unexpected_error"], cause=e)

    def add_document(self, collection: str, data: Dict[str, Any]) -> str:
        doc_ref = get_collection_path(self._firestore_client, collection).document()
        doc_data = dict(data)
        doc_data[CREATED_AT_FIELD] = SERVER_TIMESTAMP
        doc_data[UPDATED_AT_FIELD] = SERVER_TIMESTAMP

        try:
            doc_ref.set(doc_data)
            logger.info(f"[add_document] Created {collection}/{doc_ref.id}")
            return doc_ref.id

        except GoogleAPIError as e:
            logger.error(f"[add_document] Firestore API error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        except Exception as e:
            logger.error(f"[add_document] Unexpected error: {e}")
            raise DatastoreError(ERROR_MESSAGES["unexpected_error"], cause=e)

    def set_document(self, collection: str, document_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        doc_ref = get_document_path(self._firestore_client, collection, document_id)

        try:
            doc_ref.set(dict(data), merge=merge)
            logger.info(f"[set_document] Stored {collection}/{document_id} (merge={merge})")

        except GoogleAPIError as e:
            logger.error(f"[set_document] Firestore API error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        except Exception as e:
            logger.error(f"[set_document] Unexpected error: {e}")
            raise DatastoreError(ERROR_MESSAGES["unexpected_error"], cause=e)

    def update_document(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        doc_ref = get_document_path(self._firestore_client, collection, document_id)
        doc_data = dict(data)
        doc_data[UPDATED_AT_FIELD] = SERVER_TIMESTAMP

        try:
            doc_ref.update(doc_data)
            logger.info(f"[update_document] Updated {collection}/{document_id}")

        except GoogleAPIError as e:
            logger.error(f"[update_document] Firestore API error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        except Exception as e:
            logger.error(f"[update_document] Unexpected error: {e}")
            raise DatastoreError(ERROR_MESSAGES["unexpected_error"], cause=e)

    def delete_document(self, collection: str, document_id: str) -> None:
        doc_ref = get_document_path(self._firestore_client, collection, document_id)

        try:
            doc_ref.delete()
            logger.info(f"[delete_document] Deleted {collection}/{document_id}")

        except GoogleAPIError as e:
            logger.error(f"[delete_document] Firestore API error: {e}")
            raise DatastoreError(ERROR_MESSAGES["service_unavailable"], cause=e)

        except Exception as e:
            logger.error(f"[delete_document] Unexpected error: {e}")
            raise DatastoreError(ERROR_MESSAGES["unexpected_error"], cause=e)

    def on_snapshot(self, collection: str, callback: Callable[[List[Dict[str, Any]]], None]):
        """
        Attach a real-time listener on a whole collection.

        Returns:
            Watch: Handle whose `unsubscribe()` detaches the listener.
        """
        def _on_change(col_snapshot, changes, read_time):
            callback([self._to_dict(doc) for doc in col_snapshot])

        logger.info(f"[on_snapshot] Listening to '{collection}'")
        return get_collection_path(self._firestore_client, collection).on_snapshot(_on_change)
