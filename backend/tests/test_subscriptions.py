from __future__ import annotations

import asyncio

import pytest
from google.api_core import exceptions as gcp_exceptions

from app.services.data import FirestoreRemoteStore, OrderBy, SubscriptionFailed, Where, build_data_layer, set_op
from app.services.data.query import collection_cache_key


@pytest.mark.asyncio
async def test_subscription_pushes_full_snapshots(scripted, scripted_data) -> None:
    received: list = []
    scripted_data.subscriptions.subscribe("vehicles:all", "vehicles", [], received.append)

    scripted.push(0, [{"id": "a"}])
    scripted.push(0, [{"id": "a"}, {"id": "b"}])

    assert received == [[{"id": "a"}], [{"id": "a"}, {"id": "b"}]]
    assert scripted_data.subscriptions.snapshot("vehicles:all") == [{"id": "a"}, {"id": "b"}]


@pytest.mark.asyncio
async def test_same_key_replaces_previous_listener(scripted, scripted_data) -> None:
    first: list = []
    second: list = []

    scripted_data.subscriptions.subscribe("tours", "bikeTours", [], first.append)
    scripted_data.subscriptions.subscribe("tours", "bikeTours", [], second.append)

    assert scripted.listeners[0]["unsubscribed"] is True
    assert len(scripted_data.subscriptions) == 1

    # the replaced listener may still fire once; it must not reach anyone
    scripted.push(0, [{"id": "late"}])
    scripted.push(1, [{"id": "fresh"}])

    assert first == []
    assert second == [[{"id": "fresh"}]]


@pytest.mark.asyncio
async def test_teardown_is_idempotent_and_drops_late_pushes(scripted, scripted_data) -> None:
    received: list = []
    unsubscribe = scripted_data.subscriptions.subscribe("v", "vehicles", [], received.append)

    unsubscribe()
    unsubscribe()
    scripted.push(0, [{"id": "late"}])

    assert received == []
    assert scripted.listeners[0]["unsubscribed"] is True
    assert not scripted_data.subscriptions.is_active("v")
    assert scripted_data.cache.keys() == []


@pytest.mark.asyncio
async def test_old_teardown_does_not_remove_replacement(scripted, scripted_data) -> None:
    received: list = []
    old_unsubscribe = scripted_data.subscriptions.subscribe("v", "vehicles", [], lambda records: None)
    scripted_data.subscriptions.subscribe("v", "vehicles", [], received.append)

    old_unsubscribe()
    scripted.push(1, [{"id": "a"}])

    assert scripted_data.subscriptions.is_active("v")
    assert received == [[{"id": "a"}]]


@pytest.mark.asyncio
async def test_push_writes_through_to_reader_cache(scripted, scripted_data) -> None:
    constraints = [Where("region", "==", "Leh"), OrderBy("createdAt", descending=True)]
    scripted_data.subscriptions.subscribe("leh", "vehicles", constraints, lambda records: None)

    scripted.push(0, [{"id": "a", "region": "Leh"}])
    records = await scripted_data.reader.get_collection("vehicles", constraints)

    assert records == [{"id": "a", "region": "Leh"}]
    assert scripted.query_calls == []
    assert collection_cache_key("vehicles", constraints) in scripted_data.cache.keys()


@pytest.mark.asyncio
async def test_mid_stream_error_delivers_one_empty_snapshot(scripted, scripted_data, errors) -> None:
    received: list = []
    scripted_data.subscriptions.subscribe("v", "vehicles", [], received.append)

    scripted.push(0, [{"id": "a"}])
    scripted.fail(0, gcp_exceptions.PermissionDenied("rules changed"))
    scripted.fail(0, gcp_exceptions.PermissionDenied("still denied"))

    assert received == [[{"id": "a"}], []]
    assert len(errors) == 2
    assert all(isinstance(error, SubscriptionFailed) for error in errors)
    assert errors[0].collection_name == "vehicles"
    # still registered so a later recovery push gets through
    scripted.push(0, [{"id": "b"}])
    assert received[-1] == [{"id": "b"}]


@pytest.mark.asyncio
async def test_start_failure_is_reported_not_raised(scripted, scripted_data, errors) -> None:
    scripted.start_error = gcp_exceptions.PermissionDenied("no access")
    received: list = []

    unsubscribe = scripted_data.subscriptions.subscribe("v", "vehicles", [], received.append)

    assert received == [[]]
    assert isinstance(errors[0].cause, gcp_exceptions.PermissionDenied)
    unsubscribe()
    assert len(scripted_data.subscriptions) == 0


@pytest.mark.asyncio
async def test_callback_exception_is_contained(scripted, scripted_data) -> None:
    calls: list = []

    def explode(records):
        calls.append(records)
        raise RuntimeError("subscriber bug")

    scripted_data.subscriptions.subscribe("v", "vehicles", [], explode)
    scripted.push(0, [{"id": "a"}])
    scripted.push(0, [{"id": "b"}])

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_push_from_watch_thread_runs_on_event_loop(scripted, scripted_data) -> None:
    loop = asyncio.get_running_loop()
    seen_loops: list = []

    def on_update(records):
        seen_loops.append(asyncio.get_running_loop())

    scripted_data.subscriptions.subscribe("v", "vehicles", [], on_update)
    scripted.push_from_thread(0, [{"id": "a"}])
    await asyncio.sleep(0)

    assert seen_loops == [loop]


@pytest.mark.asyncio
async def test_thread_push_after_teardown_is_dropped(scripted, scripted_data) -> None:
    received: list = []
    unsubscribe = scripted_data.subscriptions.subscribe("v", "vehicles", [], received.append)

    scripted.push_from_thread(0, [{"id": "a"}])
    unsubscribe()
    await asyncio.sleep(0)

    assert received == []


@pytest.mark.asyncio
async def test_cleanup_all_tears_everything_down(scripted, scripted_data) -> None:
    for key in ("a", "b", "c"):
        scripted_data.subscriptions.subscribe(key, "vehicles", [], lambda records: None)

    scripted_data.subscriptions.cleanup_all()

    assert len(scripted_data.subscriptions) == 0
    assert all(listener["unsubscribed"] for listener in scripted.listeners)


@pytest.mark.asyncio
async def test_mock_firestore_listener_sees_batch_commit(data, mock_db) -> None:
    received: list = []
    data.subscriptions.subscribe("v", "vehicles", [], received.append)

    await data.mutator.apply_batch([set_op("vehicles/a", {"name": "Himalayan"})])
    await asyncio.sleep(0)

    assert received[0] == []
    assert received[-1] == [{"id": "a", "name": "Himalayan"}]


@pytest.mark.asyncio
async def test_mock_firestore_denied_collection(data, mock_db, errors) -> None:
    mock_db.denied_collections.add("vehicles")
    received: list = []

    data.subscriptions.subscribe("v", "vehicles", [], received.append)

    assert received == [[]]
    assert isinstance(errors[0], SubscriptionFailed)


@pytest.mark.asyncio
async def test_closed_listen_stream_is_reported(mock_db, cache, policy, errors) -> None:
    layer = build_data_layer(
        FirestoreRemoteStore(mock_db, watch_poll_interval=0.01), cache=cache, policy=policy, error_sink=errors.append
    )
    received: list = []
    layer.subscriptions.subscribe("v", "vehicles", [], received.append)
    mock_db.collection("vehicles").document("a").set({"name": "Himalayan"})

    mock_db._listeners[0].close()
    for _ in range(50):
        if errors:
            break
        await asyncio.sleep(0.01)

    assert received[-1] == []
    assert isinstance(errors[0], SubscriptionFailed)
    layer.close()


@pytest.mark.asyncio
async def test_unsubscribe_stops_stream_monitor_quietly(mock_db, cache, policy, errors) -> None:
    layer = build_data_layer(
        FirestoreRemoteStore(mock_db, watch_poll_interval=0.01), cache=cache, policy=policy, error_sink=errors.append
    )
    unsubscribe = layer.subscriptions.subscribe("v", "vehicles", [], lambda records: None)

    unsubscribe()
    await asyncio.sleep(0.05)

    assert errors == []
    assert mock_db._listeners == []
    layer.close()
