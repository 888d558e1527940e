class FinboardError(Exception):
    """Base class for every error raised by finboard."""


class StoreError(FinboardError):
    """The document store could not be reached or written."""


class DocumentNotFound(StoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document {doc_id} not found in {collection}")
        self.collection = collection
        self.doc_id = doc_id


class ValidationFailed(FinboardError):
    """Raised by services when a validator returned a Left.

    `error` is the validator's dict, e.g. {"error": "missing_fields", "message": ...}.
    """

    def __init__(self, error: dict):
        super().__init__(error.get("message", error.get("error", "validation failed")))
        self.error = error


class ExportError(FinboardError):
    pass
