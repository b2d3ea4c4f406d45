import asyncio
import time

import pytest

from planning_poker.core.exceptions import RoomNotFound
from planning_poker.services.room_store import RoomStore, run_reaper


def _never_connected(room_id):
    return False


def test_create_and_get_room():
    store = RoomStore()
    room = store.create_room()
    assert store.get_room(room.id) is room
    assert len(store) == 1


def test_create_room_ids_are_unique():
    store = RoomStore()
    ids = {store.create_room().id for _ in range(50)}
    assert len(ids) == 50


def test_get_unknown_room():
    store = RoomStore()
    with pytest.raises(RoomNotFound) as exc:
        store.get_room("missing")
    assert exc.value.room_id == "missing"
    assert store.find_room("missing") is None


def test_rooms_inherit_store_deck():
    store = RoomStore(deck=["1", "2"])
    assert store.create_room().deck == frozenset({"1", "2"})


def test_delete_room():
    store = RoomStore()
    room = store.create_room()
    assert store.delete_room(room.id) is True
    assert store.delete_room(room.id) is False
    assert store.list_rooms() == []


def test_reap_idle_respects_grace_period():
    store = RoomStore()
    old = store.create_room()
    fresh = store.create_room()
    old.mark_active()
    old.mark_idle(now=0.0)
    fresh.mark_active()
    fresh.mark_idle(now=90.0)

    reaped = store.reap_idle(60, _never_connected, now=100.0)

    assert reaped == [old.id]
    assert store.find_room(old.id) is None
    assert store.find_room(fresh.id) is fresh


def test_reap_idle_skips_connected_rooms():
    store = RoomStore()
    room = store.create_room()
    room.mark_active()
    room.mark_idle(now=0.0)

    assert store.reap_idle(60, lambda room_id: room_id == room.id, now=1000.0) == []
    assert store.find_room(room.id) is room


def test_reap_idle_skips_active_rooms():
    store = RoomStore()
    room = store.create_room()
    room.mark_active()
    assert store.reap_idle(0, _never_connected, now=1e12) == []


def test_run_reaper_removes_idle_rooms_until_cancelled():
    store = RoomStore()
    stale = store.create_room()
    stale.mark_active()
    stale.mark_idle(now=time.monotonic() - 1000)
    fresh = store.create_room()

    async def scenario():
        reaper = asyncio.create_task(run_reaper(store, _never_connected, interval_sec=0.01, grace_sec=60))
        await asyncio.sleep(0.1)
        reaper.cancel()
        with pytest.raises(asyncio.CancelledError):
            await reaper

    asyncio.run(scenario())

    assert store.find_room(stale.id) is None
    assert store.find_room(fresh.id) is fresh


def test_run_reaper_survives_a_failing_pass():
    store = RoomStore()
    store.create_room()
    calls = []

    def flaky(room_id):
        calls.append(room_id)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return True

    async def scenario():
        reaper = asyncio.create_task(run_reaper(store, flaky, interval_sec=0.01, grace_sec=0))
        await asyncio.sleep(0.1)
        reaper.cancel()
        with pytest.raises(asyncio.CancelledError):
            await reaper

    asyncio.run(scenario())

    assert len(calls) > 1
    assert len(store) == 1


def test_clear_drops_everything():
    store = RoomStore()
    store.create_room()
    store.create_room()
    store.clear()
    assert len(store) == 0
