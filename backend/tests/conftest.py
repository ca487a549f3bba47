"""Shared fixtures: an empty mock Firestore wired into a data layer with a fake clock."""
from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional

import pytest

from app.core.firebase import MockFirestoreClient
from app.services.container import build_services
from app.services.data import ExpiringCache, FirestoreRemoteStore, RetryPolicy, build_data_layer
from app.services.data.query import normalize_constraints


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedRemote:
    """RemoteStore double whose listeners are driven by the test.

    Callbacks stay reachable after unsubscribe so tests can simulate pushes
    that Firestore delivers late.
    """

    def __init__(self) -> None:
        self.collections: Dict[str, List[dict]] = {}
        self.documents: Dict[str, Optional[dict]] = {}
        self.query_calls: List[tuple] = []
        self.get_calls: List[str] = []
        self.listeners: List[dict] = []
        self.query_errors: List[BaseException] = []
        self.commit_error: Optional[BaseException] = None
        self.committed: List[list] = []
        self.start_error: Optional[BaseException] = None
        self.commit_delay = 0.0
        self.commit_calls = 0
        self._next_id = 0

    def query(self, collection, constraints=()):
        self.query_calls.append((collection, normalize_constraints(constraints)))
        if self.query_errors:
            raise self.query_errors.pop(0)
        return [dict(r) for r in self.collections.get(collection, [])]

    def get(self, path):
        self.get_calls.append(path)
        if self.query_errors:
            raise self.query_errors.pop(0)
        doc = self.documents.get(path)
        return dict(doc) if doc is not None else None

    def on_change(self, collection, constraints, on_snapshot, on_error):
        if self.start_error is not None:
            raise self.start_error
        listener = {
            "collection": collection,
            "constraints": normalize_constraints(constraints),
            "on_snapshot": on_snapshot,
            "on_error": on_error,
            "unsubscribed": False,
        }
        self.listeners.append(listener)

        def unsubscribe():
            listener["unsubscribed"] = True

        return unsubscribe

    def commit_batch(self, operations):
        self.commit_calls += 1
        if self.commit_delay:
            time.sleep(self.commit_delay)
        if self.commit_error is not None:
            raise self.commit_error
        self.committed.append(list(operations))

    def new_document_id(self, collection):
        self._next_id += 1
        return f"{collection}-{self._next_id}"

    # test helpers

    def push(self, index: int, records: List[dict]) -> None:
        self.listeners[index]["on_snapshot"](records)

    def push_from_thread(self, index: int, records: List[dict]) -> None:
        thread = threading.Thread(target=self.push, args=(index, records))
        thread.start()
        thread.join()

    def fail(self, index: int, error: BaseException) -> None:
        self.listeners[index]["on_error"](error)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, initial_backoff=0, max_backoff=0, timeout=5.0)


@pytest.fixture
def cache(clock: FakeClock) -> ExpiringCache:
    return ExpiringCache(default_ttl=300, clock=clock)


@pytest.fixture
def mock_db() -> MockFirestoreClient:
    return MockFirestoreClient(seed=False)


@pytest.fixture
def errors() -> list:
    return []


@pytest.fixture
def data(mock_db, cache, policy, errors):
    layer = build_data_layer(FirestoreRemoteStore(mock_db), cache=cache, policy=policy, error_sink=errors.append)
    yield layer
    layer.close()


@pytest.fixture
def scripted() -> ScriptedRemote:
    return ScriptedRemote()


@pytest.fixture
def scripted_data(scripted, cache, policy, errors):
    layer = build_data_layer(scripted, cache=cache, policy=policy, error_sink=errors.append)
    yield layer
    layer.close()


@pytest.fixture
def services(data):
    return build_services(data)

