"""
Remote store adapter

The data layer only needs four primitives from the document database
(query, get, on_change, commit_batch) plus auto-generated document IDs.
FirestoreRemoteStore provides them on top of a google-cloud-firestore
client or the in-memory MockFirestoreClient.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from app.services.data.batch import BatchOperation, OpKind
from app.services.data.query import Constraint, Limit, OrderBy, Where, normalize_constraints

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class RemoteStore(Protocol):
    """Primitives consumed by the reader, registry and mutator (all blocking)"""

    def query(self, collection: str, constraints: Sequence[Constraint] = ()) -> List[Record]:
        ...

    def get(self, path: str) -> Optional[Record]:
        ...

    def on_change(
        self,
        collection: str,
        constraints: Sequence[Constraint],
        on_snapshot: Callable[[List[Record]], None],
        on_error: Callable[[BaseException], None],
    ) -> Callable[[], None]:
        ...

    def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        ...

    def new_document_id(self, collection: str) -> str:
        ...


def snapshot_to_record(doc) -> Record:
    """Convert a Firestore document snapshot to a record dict"""
    data = doc.to_dict() or {}
    data['id'] = doc.id
    return data


class FirestoreRemoteStore:
    """RemoteStore backed by a Firestore client"""

    def __init__(self, db, watch_poll_interval: float = 1.0):
        self._db = db
        self._watch_poll_interval = watch_poll_interval

    @property
    def db(self):
        return self._db

    def _build_query(self, collection: str, constraints: Sequence[Constraint]):
        query = self._db.collection(collection)
        for constraint in normalize_constraints(constraints):
            if isinstance(constraint, Where):
                query = query.where(filter=FieldFilter(constraint.field, constraint.op, constraint.value))
            elif isinstance(constraint, OrderBy):
                direction = firestore.Query.DESCENDING if constraint.descending else firestore.Query.ASCENDING
                query = query.order_by(constraint.field, direction=direction)
            elif isinstance(constraint, Limit):
                query = query.limit(constraint.count)
        return query

    def query(self, collection: str, constraints: Sequence[Constraint] = ()) -> List[Record]:
        docs = self._build_query(collection, constraints).stream()
        return [snapshot_to_record(doc) for doc in docs]

    def get(self, path: str) -> Optional[Record]:
        doc = self._db.document(path).get()
        if not doc.exists:
            return None
        return snapshot_to_record(doc)

    def on_change(self, collection, constraints, on_snapshot, on_error):
        query = self._build_query(collection, constraints)
        stopped = threading.Event()

        # Firestore invokes this on its own watch thread
        def _callback(docs, changes, read_time):
            try:
                records = [snapshot_to_record(doc) for doc in docs]
            except Exception as e:
                on_error(e)
                return
            on_snapshot(records)

        watch = query.on_snapshot(_callback)

        # Watch has no error callback; a failed listen stream just closes itself
        def _monitor():
            while not stopped.wait(self._watch_poll_interval):
                if not watch.is_active:
                    if not stopped.is_set():
                        logger.warning(f"Listen stream for {collection} closed unexpectedly")
                        on_error(ConnectionError(f"Listen stream for {collection} closed"))
                    return

        threading.Thread(target=_monitor, name=f"watch-monitor-{collection}", daemon=True).start()

        def unsubscribe():
            stopped.set()
            watch.unsubscribe()

        return unsubscribe

    def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        batch = self._db.batch()
        for op in operations:
            ref = self._db.document(op.path)
            if op.kind is OpKind.SET:
                batch.set(ref, op.data)
            elif op.kind is OpKind.UPDATE:
                batch.update(ref, op.data)
            else:
                batch.delete(ref)
        batch.commit()

    def new_document_id(self, collection: str) -> str:
        return self._db.collection(collection).document().id
