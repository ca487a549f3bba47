from __future__ import annotations

from app.services.data import ExpiringCache


def test_get_returns_value_until_ttl_elapses(cache, clock) -> None:
    cache.set("collection:vehicles:[]", [{"id": "a"}], ttl=10)

    clock.advance(10)
    assert cache.get("collection:vehicles:[]") == [{"id": "a"}]

    clock.advance(0.5)
    assert cache.get("collection:vehicles:[]") is None
    # lazily evicted
    assert len(cache) == 0


def test_default_ttl_applies_when_none_given(clock) -> None:
    cache = ExpiringCache(default_ttl=60, clock=clock)
    cache.set("k", 1)

    clock.advance(59)
    assert "k" in cache
    clock.advance(2)
    assert "k" not in cache


def test_set_overwrites_and_resets_age(cache, clock) -> None:
    cache.set("k", "old", ttl=5)
    clock.advance(4)
    cache.set("k", "new", ttl=5)
    clock.advance(4)

    assert cache.get("k") == "new"


def test_invalidate_by_substring(cache) -> None:
    cache.set("collection:vehicles:[]", 1)
    cache.set("collection:vehicles:[[\"Limit\",1]]", 2)
    cache.set("collection:bikeTours:[]", 3)

    removed = cache.invalidate("vehicles")

    assert removed == 2
    assert cache.keys() == ["collection:bikeTours:[]"]


def test_invalidate_collection_uses_tags_not_key_text(cache) -> None:
    cache.set("collection:vehicles:[]", 1, collection="vehicles")
    cache.set("doc:vehicles/1", {"id": "1"}, collection="vehicles")
    cache.set("doc:vehicles/10", {"id": "10"}, collection="vehicles")
    # key mentions vehicles but belongs elsewhere
    cache.set("collection:vehiclesArchive:[]", 4, collection="vehiclesArchive")

    assert cache.invalidate_collection("vehicles") == 3
    assert cache.keys() == ["collection:vehiclesArchive:[]"]
    assert cache.invalidate_collection("vehicles") == 0


def test_retagging_a_key_moves_it_between_collections(cache) -> None:
    cache.set("shared", 1, collection="a")
    cache.set("shared", 2, collection="b")

    assert cache.invalidate_collection("a") == 0
    assert cache.get("shared") == 2
    assert cache.invalidate_collection("b") == 1


def test_clear_and_missing_keys(cache) -> None:
    assert cache.get("nope") is None
    assert cache.invalidate("nope") == 0

    cache.set("x", 1, collection="c")
    cache.clear()

    assert len(cache) == 0
    assert cache.invalidate_collection("c") == 0
