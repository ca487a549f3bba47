"""Error taxonomy for the Firestore data layer."""
from typing import Optional


class DataLayerError(Exception):
    """Base exception for all data layer errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class RemoteReadFailed(DataLayerError):
    """A collection query or document get failed."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        super().__init__(f"Remote read failed for {path}: {cause}", cause)


class SubscriptionFailed(DataLayerError):
    """A live listener could not be started or errored mid-stream.

    Never raised to the subscriber. The registry reports it to its error
    sink and delivers an empty snapshot instead.
    """

    def __init__(self, collection_name: str, cause: Optional[BaseException] = None):
        self.collection_name = collection_name
        super().__init__(f"Subscription to {collection_name} failed: {cause}", cause)


class BatchFailed(DataLayerError):
    """An atomic batch was rejected or failed to commit; nothing was written."""

    def __init__(self, cause: Optional[BaseException] = None, message: Optional[str] = None):
        super().__init__(message or f"Batch write failed: {cause}", cause)


class RemoteTimeout(DataLayerError):
    """A remote call did not finish within the configured timeout."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:.2f}s")
