from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

Filter = Tuple[str, str, Any]

OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "array_contains": lambda a, b: isinstance(a, list) and b in a,
}


def matches(doc: Dict[str, Any], where: Optional[List[Filter]]) -> bool:
    """Evaluate `(field, op, value)` filters against a plain document dict."""
    for field, op, value in where or []:
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        try:
            if not OPERATORS[op](doc.get(field), value):
                return False
        except TypeError:
            return False
    return True


def apply_query(
        docs: List[Dict[str, Any]],
        where: Optional[List[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Filter, sort and truncate documents client-side."""
    result = [doc for doc in docs if matches(doc, where)]
    if order_by:
        present = [doc for doc in result if doc.get(order_by) is not None]
        missing = [doc for doc in result if doc.get(order_by) is None]
        present.sort(key=lambda d: d[order_by], reverse=descending)
        result = present + missing
    if limit is not None:
        result = result[:limit]
    return result


class BaseDatastore(ABC):

    @abstractmethod
    def get_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        """
        Retrieve a single document.

        Args:
            collection (str): Name of the collection.
            document_id (str): ID of the document to retrieve.

        Returns:
            Dict[str, Any]: Document data, including its `id`.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        pass

    @abstractmethod
    def list_documents(
            self,
            collection: str,
            where: Optional[List[Filter]] = None,
            order_by: Optional[str] = None,
            descending: bool = False,
            limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query documents of a collection.

        Args:
            collection (str): Name of the collection.
            where (List[Filter]): `(field, op, value)` filters, all of which must match.
            order_by (str): Field to sort on.
            descending (bool): Sort direction.
            limit (int): Maximum number of documents.

        Returns:
            List[Dict[str, Any]]: Matching documents, each including its `id`.
        """
        pass

    @abstractmethod
    def add_document(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated ID, stamping `createdAt`/`updatedAt`. Returns the ID."""
        pass

    @abstractmethod
    def set_document(self, collection: str, document_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Create or overwrite (or merge into) a document."""
        pass

    @abstractmethod
    def update_document(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        """Update fields of an existing document, stamping `updatedAt`."""
        pass

    @abstractmethod
    def delete_document(self, collection: str, document_id: str) -> None:
        """Delete a document."""
        pass

    def delete_where(self, collection: str, field: str, value: Any) -> int:
        """
        Best-effort deletion of every document whose `field` equals `value`.

        Returns:
            int: Number of deleted documents.
        """
        deleted = 0
        for doc in self.list_documents(collection, where=[(field, "==", value)]):
            self.delete_document(collection, doc["id"])
            deleted += 1
        return deleted

    def on_snapshot(self, collection: str, callback: Callable[[List[Dict[str, Any]]], None]):
        """Register a real-time listener. Backends without push support raise NotImplementedError."""
        raise NotImplementedError(f"{self.__class__.__name__} does not support real-time listeners")
