"""
Cached Firestore reads
"""
import logging
from typing import List, Optional, Sequence

from app.services.data.cache import ExpiringCache
from app.services.data.errors import RemoteReadFailed
from app.services.data.query import (
    Constraint,
    collection_cache_key,
    collection_of,
    document_cache_key,
    normalize_constraints,
)
from app.services.data.remote import Record
from app.services.data.retry import RetryPolicy, run_blocking

logger = logging.getLogger(__name__)


def _copy_records(records: List[Record]) -> List[Record]:
    return [dict(record) for record in records]


class ResourceReader:
    """
    Fetches collections and documents, skipping Firestore on a fresh cache hit

    Failures surface as RemoteReadFailed; a stale entry is never served in
    place of a failed read.
    """

    def __init__(self, remote, cache: ExpiringCache, policy: Optional[RetryPolicy] = None):
        self._remote = remote
        self._cache = cache
        self._policy = policy or RetryPolicy()

    async def get_collection(
        self,
        name: str,
        constraints: Sequence[Constraint] = (),
        use_cache: bool = True,
        ttl: Optional[float] = None
    ) -> List[Record]:
        """
        Query a collection

        Args:
            name: Collection path (e.g. 'vehicles')
            constraints: Where / OrderBy / Limit clauses, in order
            use_cache: Read from and write to the cache
            ttl: Entry lifetime in seconds (cache default when None)

        Returns:
            List of records ({'id': ..., **fields})
        """
        constraints = normalize_constraints(constraints)
        cache_key = collection_cache_key(name, constraints)

        if use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {cache_key}")
                return _copy_records(cached)

        try:
            records = await run_blocking(
                lambda: self._remote.query(name, constraints),
                self._policy,
                f"query {name}",
            )
        except Exception as e:
            logger.error(f"Error querying {name}: {e}")
            raise RemoteReadFailed(name, e) from e

        if use_cache:
            self._cache.set(cache_key, records, ttl, collection=name)

        logger.info(f"Loaded {len(records)} record(s) from {name}")
        return _copy_records(records)

    async def get_document(
        self,
        path: str,
        use_cache: bool = True,
        ttl: Optional[float] = None
    ) -> Optional[Record]:
        """
        Get a single document by path (e.g. 'vehicles/abc')

        Returns:
            The record, or None if the document does not exist
        """
        try:
            collection = collection_of(path)
        except ValueError as e:
            raise RemoteReadFailed(path, e) from e

        cache_key = document_cache_key(path)

        if use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {cache_key}")
                return dict(cached)

        try:
            record = await run_blocking(
                lambda: self._remote.get(path),
                self._policy,
                f"get {path}",
            )
        except Exception as e:
            logger.error(f"Error getting document {path}: {e}")
            raise RemoteReadFailed(path, e) from e

        if record is None:
            return None

        if use_cache:
            self._cache.set(cache_key, record, ttl, collection=collection)
        return dict(record)
