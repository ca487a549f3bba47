"""
Atomic batch writes with cache invalidation
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from app.services.data.cache import ExpiringCache
from app.services.data.errors import BatchFailed, RemoteTimeout
from app.services.data.query import collection_of, validate_document_path
from app.services.data.retry import RetryPolicy, run_blocking

logger = logging.getLogger(__name__)

# Firestore rejects batches larger than this
MAX_BATCH_SIZE = 500


class OpKind(str, enum.Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class BatchOperation:
    kind: OpKind
    path: str
    data: Optional[Dict[str, Any]] = None

    @property
    def collection(self) -> str:
        return collection_of(self.path)


def set_op(path: str, data: Dict[str, Any]) -> BatchOperation:
    return BatchOperation(OpKind.SET, path, data)


def update_op(path: str, data: Dict[str, Any]) -> BatchOperation:
    return BatchOperation(OpKind.UPDATE, path, data)


def delete_op(path: str) -> BatchOperation:
    return BatchOperation(OpKind.DELETE, path)


def validate_operations(operations: Sequence[BatchOperation]) -> List[BatchOperation]:
    """
    Reject the whole batch before anything is sent

    Raises:
        BatchFailed: Empty or oversized batch, malformed path, missing payload
    """
    operations = list(operations)
    if not operations:
        raise BatchFailed(message="Batch write failed: no operations")
    if len(operations) > MAX_BATCH_SIZE:
        raise BatchFailed(
            message=f"Batch write failed: {len(operations)} operations exceeds limit of {MAX_BATCH_SIZE}"
        )

    validated = []
    for index, op in enumerate(operations):
        if not isinstance(op, BatchOperation):
            raise BatchFailed(message=f"Batch write failed: operation {index} is not a BatchOperation")
        try:
            kind = OpKind(op.kind)
            path = validate_document_path(op.path)
        except ValueError as e:
            raise BatchFailed(e) from e
        if kind in (OpKind.SET, OpKind.UPDATE) and not isinstance(op.data, dict):
            raise BatchFailed(message=f"Batch write failed: {kind.value} on {path} requires data")
        if kind is OpKind.UPDATE and not op.data:
            raise BatchFailed(message=f"Batch write failed: update on {path} has no fields")
        validated.append(BatchOperation(kind, path, op.data))
    return validated


class BatchMutator:
    """
    Applies a list of set/update/delete operations as one atomic commit

    On success every cache entry of every touched collection is dropped, so
    the next read goes to Firestore. A rejected commit invalidates nothing
    since nothing changed remotely. A timed out commit may still land, so it
    is never retried and its collections are invalidated before failing.
    """

    def __init__(self, remote, cache: ExpiringCache, policy: Optional[RetryPolicy] = None):
        self._remote = remote
        self._cache = cache
        self._policy = policy or RetryPolicy()

    def _invalidate(self, operations: Sequence[BatchOperation]) -> List[str]:
        # Document entries are indexed under their collection too
        collections = []
        for op in operations:
            if op.collection not in collections:
                collections.append(op.collection)
        for collection in collections:
            self._cache.invalidate_collection(collection)
        return collections

    async def apply_batch(self, operations: Sequence[BatchOperation]) -> None:
        operations = validate_operations(operations)

        try:
            await run_blocking(
                lambda: self._remote.commit_batch(operations),
                self._policy,
                f"commit batch of {len(operations)}",
                retry_timeouts=False,
            )
        except RemoteTimeout as e:
            collections = self._invalidate(operations)
            logger.error(
                f"Batch of {len(operations)} operation(s) timed out with unknown outcome; "
                f"invalidated {', '.join(collections)}"
            )
            raise BatchFailed(e) from e
        except Exception as e:
            logger.error(f"Batch of {len(operations)} operation(s) failed: {e}")
            raise BatchFailed(e) from e

        collections = self._invalidate(operations)
        logger.info(f"Committed batch of {len(operations)} operation(s) on {', '.join(collections)}")
