"""
Live Firestore listeners, at most one per caller-chosen key

Features:
- subscribe() under an existing key tears the previous listener down first
- Every push refreshes the cache entry the reader would use for the same
  collection and constraints, then hands the full snapshot to the subscriber
- Listener errors never reach the subscriber as exceptions: they are reported
  as SubscriptionFailed to the error sink and the subscriber gets one empty snapshot
- Pushes from Firestore's watch thread are marshalled onto the event loop that
  was running at subscribe time; anything arriving after teardown is dropped
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.services.data.cache import ExpiringCache
from app.services.data.errors import DataLayerError, SubscriptionFailed
from app.services.data.query import Constraint, collection_cache_key, normalize_constraints
from app.services.data.remote import Record

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[List[Record]], None]
ErrorSink = Callable[[DataLayerError], None]


@dataclass(eq=False)
class Subscription:
    key: str
    collection: str
    constraints: Tuple[Constraint, ...]
    on_update: UpdateCallback
    loop: Optional[asyncio.AbstractEventLoop] = None
    unsubscribe: Optional[Callable[[], None]] = None
    last_snapshot: List[Record] = field(default_factory=list)
    active: bool = True
    failed: bool = False


class SubscriptionRegistry:
    """Registry of live collection listeners keyed by subscription key"""

    def __init__(self, remote, cache: ExpiringCache, error_sink: Optional[ErrorSink] = None):
        self._remote = remote
        self._cache = cache
        self._error_sink = error_sink
        self._subscriptions: Dict[str, Subscription] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def active_keys(self) -> List[str]:
        return list(self._subscriptions)

    def is_active(self, key: str) -> bool:
        return key in self._subscriptions

    def snapshot(self, key: str) -> Optional[List[Record]]:
        """Last snapshot pushed under key, or None when nothing is registered"""
        subscription = self._subscriptions.get(key)
        if subscription is None:
            return None
        return list(subscription.last_snapshot)

    def subscribe(
        self,
        key: str,
        collection: str,
        constraints: Sequence[Constraint],
        on_update: UpdateCallback
    ) -> Callable[[], None]:
        """
        Start a live listener on a collection

        Args:
            key: Subscription key; replaces any listener already under it
            collection: Collection path
            constraints: Where / OrderBy / Limit clauses
            on_update: Receives the full current snapshot on every change

        Returns:
            Teardown function (idempotent)
        """
        constraints = normalize_constraints(constraints)

        existing = self._subscriptions.get(key)
        if existing is not None:
            logger.debug(f"Replacing subscription '{key}'")
            self._teardown(existing)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        subscription = Subscription(key, collection, constraints, on_update, loop=loop)
        self._subscriptions[key] = subscription

        try:
            unsubscribe = self._remote.on_change(
                collection,
                constraints,
                lambda records: self._dispatch(subscription, self._deliver, records),
                lambda error: self._dispatch(subscription, self._fail, error),
            )
        except Exception as e:
            self._fail(subscription, e)
        else:
            subscription.unsubscribe = unsubscribe
            # The subscriber may already have torn down from inside the first push
            if not subscription.active:
                self._release(subscription)

        logger.info(f"Subscribed '{key}' to {collection}")
        return lambda: self._teardown(subscription)

    def cleanup_all(self):
        """Tear down every live subscription (application shutdown)"""
        subscriptions = list(self._subscriptions.values())
        for subscription in subscriptions:
            self._teardown(subscription)
        if subscriptions:
            logger.info(f"Cleaned up {len(subscriptions)} subscription(s)")

    # ==================== Internals ====================

    def _is_current(self, subscription: Subscription) -> bool:
        return subscription.active and self._subscriptions.get(subscription.key) is subscription

    def _dispatch(self, subscription: Subscription, handler, payload: Any):
        loop = subscription.loop
        if loop is None:
            handler(subscription, payload)
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            handler(subscription, payload)
            return

        try:
            loop.call_soon_threadsafe(handler, subscription, payload)
        except RuntimeError:
            logger.debug(f"Dropping push for '{subscription.key}': event loop is closed")

    def _deliver(self, subscription: Subscription, records: List[Record]):
        if not self._is_current(subscription):
            logger.debug(f"Dropping late push for torn down subscription '{subscription.key}'")
            return

        subscription.last_snapshot = records
        subscription.failed = False
        self._cache.set(
            collection_cache_key(subscription.collection, subscription.constraints),
            records,
            collection=subscription.collection,
        )
        self._notify(subscription, [dict(record) for record in records])

    def _fail(self, subscription: Subscription, error: BaseException):
        if not self._is_current(subscription):
            return

        failure = SubscriptionFailed(subscription.collection, error)
        logger.error(f"Subscription '{subscription.key}' failed: {failure}")
        if self._error_sink is not None:
            try:
                self._error_sink(failure)
            except Exception:
                logger.exception("Error sink raised while reporting a subscription failure")

        if subscription.failed:
            return
        subscription.failed = True
        subscription.last_snapshot = []
        self._notify(subscription, [])

    def _notify(self, subscription: Subscription, records: List[Record]):
        try:
            subscription.on_update(records)
        except Exception:
            logger.exception(f"Subscriber callback for '{subscription.key}' raised")

    def _teardown(self, subscription: Subscription):
        if not subscription.active:
            return
        subscription.active = False
        if self._subscriptions.get(subscription.key) is subscription:
            del self._subscriptions[subscription.key]
        self._release(subscription)
        logger.debug(f"Unsubscribed '{subscription.key}'")

    def _release(self, subscription: Subscription):
        unsubscribe, subscription.unsubscribe = subscription.unsubscribe, None
        if unsubscribe is None:
            return
        try:
            unsubscribe()
        except Exception as e:
            logger.warning(f"Error unsubscribing '{subscription.key}': {e}")
