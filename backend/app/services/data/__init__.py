"""Cached, listener-managed Firestore data layer"""
import logging
from dataclasses import dataclass
from typing import Optional

from app.services.data.batch import (
    BatchMutator,
    BatchOperation,
    OpKind,
    delete_op,
    set_op,
    update_op,
)
from app.services.data.cache import ExpiringCache
from app.services.data.errors import (
    BatchFailed,
    DataLayerError,
    RemoteReadFailed,
    RemoteTimeout,
    SubscriptionFailed,
)
from app.services.data.query import Limit, OrderBy, Where
from app.services.data.reader import ResourceReader
from app.services.data.remote import FirestoreRemoteStore, RemoteStore
from app.services.data.retry import RetryPolicy
from app.services.data.subscriptions import ErrorSink, SubscriptionRegistry

logger = logging.getLogger(__name__)


@dataclass
class DataLayer:
    """One instance per process, passed explicitly to the domain services"""
    remote: RemoteStore
    cache: ExpiringCache
    reader: ResourceReader
    subscriptions: SubscriptionRegistry
    mutator: BatchMutator

    def close(self):
        self.subscriptions.cleanup_all()
        self.cache.clear()


def build_data_layer(
    remote: RemoteStore,
    cache: Optional[ExpiringCache] = None,
    policy: Optional[RetryPolicy] = None,
    error_sink: Optional[ErrorSink] = None
) -> DataLayer:
    """Wire reader, registry and mutator around one shared cache"""
    cache = cache if cache is not None else ExpiringCache()
    policy = policy or RetryPolicy()
    return DataLayer(
        remote=remote,
        cache=cache,
        reader=ResourceReader(remote, cache, policy),
        subscriptions=SubscriptionRegistry(remote, cache, error_sink),
        mutator=BatchMutator(remote, cache, policy),
    )


def build_data_layer_from_settings(db, config, error_sink: Optional[ErrorSink] = None) -> DataLayer:
    """Data layer over a Firestore (or mock) client using configured TTL and retry policy"""
    logger.info(
        f"Data layer: ttl={config.CACHE_DEFAULT_TTL_SECONDS}s "
        f"timeout={config.REMOTE_TIMEOUT_SECONDS}s attempts={config.RETRY_MAX_ATTEMPTS}"
    )
    return build_data_layer(
        FirestoreRemoteStore(db),
        cache=ExpiringCache(default_ttl=config.CACHE_DEFAULT_TTL_SECONDS),
        policy=RetryPolicy.from_settings(config),
        error_sink=error_sink,
    )


__all__ = [
    'BatchFailed',
    'BatchMutator',
    'BatchOperation',
    'DataLayer',
    'DataLayerError',
    'ExpiringCache',
    'FirestoreRemoteStore',
    'Limit',
    'OpKind',
    'OrderBy',
    'RemoteReadFailed',
    'RemoteStore',
    'RemoteTimeout',
    'ResourceReader',
    'RetryPolicy',
    'SubscriptionFailed',
    'SubscriptionRegistry',
    'Where',
    'build_data_layer',
    'build_data_layer_from_settings',
    'delete_op',
    'set_op',
    'update_op',
]
