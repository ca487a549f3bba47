from __future__ import annotations

import time

import pytest
from google.api_core import exceptions as gcp_exceptions

from app.services.data import (
    Limit,
    OrderBy,
    RemoteReadFailed,
    RemoteTimeout,
    RetryPolicy,
    Where,
    build_data_layer,
)
from app.services.data.query import collection_cache_key, collection_of, constraints_key, validate_document_path


@pytest.mark.asyncio
async def test_collection_read_is_cached_until_ttl(scripted, scripted_data, clock) -> None:
    scripted.collections["vehicles"] = [{"id": "a", "name": "Himalayan"}]

    first = await scripted_data.reader.get_collection("vehicles")
    scripted.collections["vehicles"] = [{"id": "b", "name": "Classic"}]
    second = await scripted_data.reader.get_collection("vehicles")

    assert first == second == [{"id": "a", "name": "Himalayan"}]
    assert len(scripted.query_calls) == 1

    clock.advance(301)
    third = await scripted_data.reader.get_collection("vehicles")

    assert third == [{"id": "b", "name": "Classic"}]
    assert len(scripted.query_calls) == 2


@pytest.mark.asyncio
async def test_custom_ttl_and_cache_bypass(scripted, scripted_data, clock) -> None:
    scripted.collections["vehicles"] = [{"id": "a"}]

    await scripted_data.reader.get_collection("vehicles", ttl=5)
    clock.advance(6)
    await scripted_data.reader.get_collection("vehicles", ttl=5)
    await scripted_data.reader.get_collection("vehicles", use_cache=False)

    assert len(scripted.query_calls) == 3


@pytest.mark.asyncio
async def test_constraints_are_part_of_cache_key(scripted, scripted_data) -> None:
    scripted.collections["vehicles"] = [{"id": "a", "region": "Leh"}]

    await scripted_data.reader.get_collection("vehicles", [Where("region", "==", "Leh")])
    await scripted_data.reader.get_collection("vehicles", [Where("region", "==", "Manali")])
    await scripted_data.reader.get_collection("vehicles", [("region", "==", "Leh")])

    assert len(scripted.query_calls) == 2
    assert scripted.query_calls[0][1] == (Where("region", "==", "Leh"),)


@pytest.mark.asyncio
async def test_returned_records_do_not_alias_cache(scripted, scripted_data) -> None:
    scripted.collections["vehicles"] = [{"id": "a", "price": 1500}]

    records = await scripted_data.reader.get_collection("vehicles")
    records[0]["price"] = 0
    again = await scripted_data.reader.get_collection("vehicles")

    assert again[0]["price"] == 1500


@pytest.mark.asyncio
async def test_remote_error_is_wrapped_and_not_cached(scripted, scripted_data) -> None:
    scripted.query_errors.append(gcp_exceptions.PermissionDenied("rules"))

    with pytest.raises(RemoteReadFailed) as exc_info:
        await scripted_data.reader.get_collection("vehicles")

    assert exc_info.value.path == "vehicles"
    assert isinstance(exc_info.value.cause, gcp_exceptions.PermissionDenied)
    assert scripted_data.cache.keys() == []
    # not transient: one attempt only
    assert len(scripted.query_calls) == 1


@pytest.mark.asyncio
async def test_failed_refresh_does_not_serve_stale_entry(scripted, scripted_data, clock) -> None:
    scripted.collections["vehicles"] = [{"id": "a"}]
    await scripted_data.reader.get_collection("vehicles")

    clock.advance(301)
    scripted.query_errors.append(gcp_exceptions.PermissionDenied("rules"))

    with pytest.raises(RemoteReadFailed):
        await scripted_data.reader.get_collection("vehicles")


@pytest.mark.asyncio
async def test_transient_errors_are_retried(scripted, scripted_data) -> None:
    scripted.collections["vehicles"] = [{"id": "a"}]
    scripted.query_errors.extend([gcp_exceptions.ServiceUnavailable("down"), ConnectionError("reset")])

    records = await scripted_data.reader.get_collection("vehicles")

    assert records == [{"id": "a"}]
    assert len(scripted.query_calls) == 3


@pytest.mark.asyncio
async def test_retries_are_bounded(scripted, scripted_data) -> None:
    scripted.query_errors.extend([gcp_exceptions.ServiceUnavailable("down")] * 5)

    with pytest.raises(RemoteReadFailed) as exc_info:
        await scripted_data.reader.get_collection("vehicles")

    assert isinstance(exc_info.value.cause, gcp_exceptions.ServiceUnavailable)
    assert len(scripted.query_calls) == 3


@pytest.mark.asyncio
async def test_slow_remote_times_out(scripted, cache) -> None:
    class SlowRemote(type(scripted)):
        def query(self, collection, constraints=()):
            time.sleep(0.2)
            return []

    policy = RetryPolicy(max_attempts=1, initial_backoff=0, timeout=0.05)
    layer = build_data_layer(SlowRemote(), cache=cache, policy=policy)

    with pytest.raises(RemoteReadFailed) as exc_info:
        await layer.reader.get_collection("vehicles")

    assert isinstance(exc_info.value.cause, RemoteTimeout)


@pytest.mark.asyncio
async def test_document_read_and_cache(scripted, scripted_data) -> None:
    scripted.documents["vehicles/a"] = {"id": "a", "name": "Himalayan"}

    first = await scripted_data.reader.get_document("vehicles/a")
    second = await scripted_data.reader.get_document("vehicles/a")

    assert first == second == {"id": "a", "name": "Himalayan"}
    assert scripted.get_calls == ["vehicles/a"]
    # tagged with the owning collection
    assert scripted_data.cache.invalidate_collection("vehicles") == 1


@pytest.mark.asyncio
async def test_missing_document_is_none_and_not_cached(scripted, scripted_data) -> None:
    assert await scripted_data.reader.get_document("vehicles/ghost") is None
    assert await scripted_data.reader.get_document("vehicles/ghost") is None

    assert scripted.get_calls == ["vehicles/ghost", "vehicles/ghost"]


@pytest.mark.asyncio
async def test_malformed_document_path_fails_without_remote_call(scripted, scripted_data) -> None:
    for path in ("vehicles", "vehicles//a", "", "users/u1/trips"):
        with pytest.raises(RemoteReadFailed):
            await scripted_data.reader.get_document(path)

    assert scripted.get_calls == []


@pytest.mark.asyncio
async def test_reader_against_mock_firestore(mock_db, data) -> None:
    for doc_id, region, created in (("a", "Leh", 1), ("b", "Leh", 3), ("c", "Manali", 2)):
        mock_db.collection("vehicles").document(doc_id).set({"region": region, "createdAt": created})

    records = await data.reader.get_collection(
        "vehicles", [Where("region", "==", "Leh"), OrderBy("createdAt", descending=True), Limit(1)]
    )

    assert records == [{"id": "b", "region": "Leh", "createdAt": 3}]


def test_query_helpers() -> None:
    assert validate_document_path("/vehicles/a/") == "vehicles/a"
    assert collection_of("users/u1/trips/t1") == "users/u1/trips"
    with pytest.raises(ValueError):
        validate_document_path("vehicles/a/reviews")

    assert constraints_key([("type", "==", "bike")]) == constraints_key([Where("type", "==", "bike")])
    assert collection_cache_key("vehicles") == "collection:vehicles:[]"
    with pytest.raises(ValueError):
        constraints_key(["not a constraint"])
