"""
Base class for collection-bound domain services

A domain service binds one Firestore collection to the shared data layer and
converts raw records into its pydantic model. It holds no business rules:
reads go through the cached reader, live views through the subscription
registry and every write through an atomic batch.

Usage:
    class VehiclesService(CollectionService[Vehicle]):
        collection = Collections.VEHICLES
        model = Vehicle
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Generic, List, Mapping, Optional, Sequence, Type, TypeVar, Union
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from app.schemas.common import FirestoreModel, StoredRecord
from app.services.data import DataLayer, Limit, OrderBy, Where, delete_op, set_op, update_op
from app.services.data.query import Constraint

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=StoredRecord)
Payload = Union[BaseModel, Mapping[str, Any]]

CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollectionService(Generic[ModelT]):
    """Typed CRUD and live views over one collection"""

    collection: str
    model: Type[ModelT]
    # Documents lacking the order field are dropped by Firestore
    default_order: Optional[OrderBy] = OrderBy(CREATED_AT, descending=True)

    def __init__(self, data: DataLayer):
        self._data = data

    # ==================== Helpers ====================

    def _path(self, doc_id: str) -> str:
        if not doc_id or '/' in doc_id:
            raise ValueError(f"Invalid {self.collection} document ID: {doc_id!r}")
        return f"{self.collection}/{doc_id}"

    def _default_constraints(self) -> List[Constraint]:
        return [self.default_order] if self.default_order else []

    def _to_model(self, record: Mapping[str, Any]) -> Optional[ModelT]:
        try:
            return self.model.model_validate(record)
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid {self.collection} document {record.get('id')}: "
                f"{e.error_count()} validation error(s)"
            )
            return None

    def _to_models(self, records: Sequence[Mapping[str, Any]]) -> List[ModelT]:
        models = []
        for record in records:
            model = self._to_model(record)
            if model is not None:
                models.append(model)
        return models

    @staticmethod
    def _payload(data: Payload, partial: bool = False) -> dict:
        if isinstance(data, FirestoreModel):
            payload = data.to_firestore(partial=partial)
        elif isinstance(data, BaseModel):
            payload = data.model_dump(exclude_unset=partial, exclude_none=not partial)
        elif isinstance(data, Mapping):
            payload = dict(data)
        else:
            raise TypeError(f"Unsupported payload type: {type(data).__name__}")

        for field in ('id', CREATED_AT):
            payload.pop(field, None)
        return payload

    # ==================== Reads ====================

    def subscribe(
        self,
        callback: Callable[[List[ModelT]], None],
        constraints: Optional[Sequence[Constraint]] = None,
        key: Optional[str] = None
    ) -> Callable[[], None]:
        """
        Live view of the collection

        Args:
            callback: Receives the full list of models on every change
                (an empty list if the listener fails)
            constraints: Query clauses, default ordering when None
            key: Subscription key; an existing listener under the same key is
                replaced. Defaults to a fresh key so independent callers never
                evict each other

        Returns:
            Unsubscribe function
        """
        if constraints is None:
            constraints = self._default_constraints()
        key = key or f"{self.collection}:{uuid4().hex}"
        return self._data.subscriptions.subscribe(
            key,
            self.collection,
            constraints,
            lambda records: callback(self._to_models(records)),
        )

    async def get_all(
        self,
        constraints: Optional[Sequence[Constraint]] = None,
        use_cache: bool = True,
        ttl: Optional[float] = None
    ) -> List[ModelT]:
        if constraints is None:
            constraints = self._default_constraints()
        records = await self._data.reader.get_collection(self.collection, constraints, use_cache, ttl)
        return self._to_models(records)

    async def get(self, doc_id: str, use_cache: bool = True) -> Optional[ModelT]:
        record = await self._data.reader.get_document(self._path(doc_id), use_cache)
        if record is None:
            return None
        return self._to_model(record)

    async def is_empty(self) -> bool:
        records = await self._data.reader.get_collection(self.collection, [Limit(1)], use_cache=False)
        return not records

    # ==================== Writes ====================

    async def add(self, data: Payload) -> str:
        """Create a document with an auto-generated ID and return the ID"""
        return (await self.bulk_create([data]))[0]

    async def bulk_create(self, items: Sequence[Payload]) -> List[str]:
        """Create several documents in one atomic batch"""
        if not items:
            return []
        now = utcnow()
        ids = []
        operations = []
        for item in items:
            doc_id = self._data.remote.new_document_id(self.collection)
            payload = self._payload(item)
            payload[CREATED_AT] = now
            payload[UPDATED_AT] = now
            operations.append(set_op(self._path(doc_id), payload))
            ids.append(doc_id)

        await self._data.mutator.apply_batch(operations)
        logger.info(f"Created {len(ids)} {self.collection} document(s)")
        return ids

    async def update(self, doc_id: str, patch: Payload) -> None:
        """Patch fields of an existing document (fails if it does not exist)"""
        payload = self._payload(patch, partial=True)
        payload[UPDATED_AT] = utcnow()
        await self._data.mutator.apply_batch([update_op(self._path(doc_id), payload)])
        logger.info(f"Updated {self.collection}/{doc_id}")

    async def delete(self, doc_id: str) -> None:
        await self._data.mutator.apply_batch([delete_op(self._path(doc_id))])
        logger.info(f"Deleted {self.collection}/{doc_id}")


class FeaturedContentService(CollectionService[ModelT]):
    """Content collections whose documents carry an ``isFeatured`` flag"""

    def featured_constraints(self, featured: bool = True) -> List[Constraint]:
        return [Where('isFeatured', '==', featured), OrderBy(CREATED_AT, descending=True)]

    def subscribe_featured(self, callback: Callable[[List[ModelT]], None]) -> Callable[[], None]:
        return self.subscribe(callback, self.featured_constraints())

    async def get_featured(self, featured: bool = True, use_cache: bool = True) -> List[ModelT]:
        return await self.get_all(self.featured_constraints(featured), use_cache=use_cache)
