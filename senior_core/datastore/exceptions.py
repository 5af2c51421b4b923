ERROR_MESSAGES = {
    "document_not_found": "Document not found.",
    "service_unavailable": "Firebase service unavailable.",
    "invalid_format": "Invalid model format",
    "invalid_input": "Invalid inputs",
    "unexpected_error": "Unexpected error",
}


class DatastoreError(Exception):
    """Base class for datastore-related errors."""

    def __init__(self, message: str, *, cause: Exception = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self):
        base = f"{self.__class__.__name__}: {self.message}"
        if self.cause:
            return f"{base} (caused by {repr(self.cause)})"
        return base


class DocumentNotFoundError(DatastoreError):
    """Raised when a requested document does not exist."""

    def __init__(self, collection: str, document_id: str):
        super().__init__(f"{ERROR_MESSAGES['document_not_found']} <{collection}/{document_id}>")
        self.collection = collection
        self.document_id = document_id
