import asyncio
import os
import sys

import fakeredis.aioredis
import pytest
import ulid

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from scout.exceptions import MatchNotFound
from scout.scoring import doubles
import scout.store as store_module
from scout.store import MemoryMatchStore, RedisMatchStore


def _match(court="1"):
    return doubles.init_state(
        {"court": court, "team1": {"name": "A"}, "team2": {"name": "B"}}
    )


def _redis_store():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    return RedisMatchStore(client, prefix=f"test-{ulid.new()}")


@pytest.fixture(params=["memory", "redis"])
def make_store(request):
    return MemoryMatchStore if request.param == "memory" else _redis_store


def test_put_get_roundtrip(make_store):
    async def run():
        store = make_store()
        state = _match()
        await store.put("m1", state)
        loaded = await store.get("m1")
        assert loaded == state
        loaded["court"] = "changed"
        assert (await store.get("m1"))["court"] == "1"

    asyncio.run(run())


def test_missing_match_raises(make_store):
    async def run():
        store = make_store()
        with pytest.raises(MatchNotFound) as exc:
            await store.get("nope")
        assert exc.value.status_code == 404
        with pytest.raises(MatchNotFound):
            await store.delete("nope")

    asyncio.run(run())


def test_list_and_delete(make_store):
    async def run():
        store = make_store()
        await store.put("a", _match("1"))
        await store.put("b", _match("2"))
        listed = await store.list()
        assert sorted(listed) == ["a", "b"]
        assert listed["b"]["court"] == "2"
        await store.delete("a")
        assert list(await store.list()) == ["b"]
        with pytest.raises(MatchNotFound):
            await store.get("a")

    asyncio.run(run())


def test_put_replaces_whole_document(make_store):
    async def run():
        store = make_store()
        await store.put("m1", _match("1"))
        await store.put("m1", _match("9"))
        assert (await store.get("m1"))["court"] == "9"
        assert len(await store.list()) == 1

    asyncio.run(run())


def test_update_applies_transition(make_store):
    async def run():
        store = make_store()
        await store.put("m1", _match())
        state = await store.update("m1", doubles.set_server, 2, 1)
        assert state["currentServer"] == 2
        assert (await store.get("m1"))["currentPoint"]["servingPlayer"] == 1

    asyncio.run(run())


def test_update_propagates_transition_errors(make_store):
    async def run():
        store = make_store()
        await store.put("m1", _match())
        before = await store.get("m1")
        with pytest.raises(doubles.EmptyHistoryError):
            await store.update("m1", doubles.undo_last_point)
        assert await store.get("m1") == before
        state = await store.update("m1", doubles.toggle_big_point)
        assert state["currentPoint"]["isBigPoint"] is True

    asyncio.run(run())


def test_update_serialises_concurrent_transitions(make_store):
    async def run():
        store = make_store()
        await store.put("m1", _match())
        await asyncio.gather(
            *(store.update("m1", doubles.toggle_big_point) for _ in range(5))
        )
        assert (await store.get("m1"))["currentPoint"]["isBigPoint"] is True
        await asyncio.gather(
            *(store.update("m1", doubles.update_team, 1, name=f"T{i}") for i in range(3))
        )
        state = await store.get("m1")
        assert state["currentPoint"]["isBigPoint"] is True
        assert state["team1"]["name"] in {"T0", "T1", "T2"}

    asyncio.run(run())


def test_memory_subscribers_receive_every_put():
    async def run():
        store = MemoryMatchStore()
        seen = []

        async def on_change(state):
            seen.append(state["court"])

        unsubscribe = await store.subscribe("m1", on_change)
        await store.put("m1", _match("1"))
        await store.put("m2", _match("other"))
        await store.put("m1", _match("2"))
        await unsubscribe()
        await store.put("m1", _match("3"))
        assert seen == ["1", "2"]

    asyncio.run(run())


def test_memory_failing_subscriber_does_not_block_others(caplog):
    async def run():
        store = MemoryMatchStore()
        seen = []

        async def broken(state):
            raise RuntimeError("socket gone")

        async def healthy(state):
            seen.append(state["court"])

        await store.subscribe("m1", broken)
        await store.subscribe("m1", healthy)
        await store.put("m1", _match("1"))
        assert seen == ["1"]
        assert (await store.get("m1"))["court"] == "1"

    asyncio.run(run())
    assert "Subscriber for match m1 failed" in caplog.text


def test_redis_subscribers_receive_published_documents():
    async def run():
        store = _redis_store()
        received = asyncio.Queue()

        async def on_change(state):
            await received.put(state)

        unsubscribe = await store.subscribe("m1", on_change)
        try:
            await store.put("m1", _match("7"))
            state = await asyncio.wait_for(received.get(), timeout=2)
        finally:
            await unsubscribe()
        assert state["court"] == "7"
        assert state["points"] == []

    asyncio.run(run())


def test_build_store_rejects_unknown_backend(monkeypatch):
    monkeypatch.setattr(store_module, "MATCH_STORE", "sqlite")
    with pytest.raises(ValueError):
        store_module.build_store()
    monkeypatch.setattr(store_module, "MATCH_STORE", "memory")
    assert isinstance(store_module.build_store(), MemoryMatchStore)


def test_memory_delete_waits_for_write_lock():
    async def run():
        store = MemoryMatchStore()
        await store.put("m1", _match())
        lock = store.lock("m1")
        async with lock:
            deleting = asyncio.create_task(store.delete("m1"))
            await asyncio.sleep(0)
            assert (await store.get("m1"))["court"] == "1"
        await deleting
        assert store.lock("m1") is lock
        with pytest.raises(MatchNotFound):
            await store.get("m1")

    asyncio.run(run())
