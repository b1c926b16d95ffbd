import asyncio

import pytest

from secret_angel.services.conversation import (
    ConversationStep,
    ConversationStore,
    RosterEntry,
)


def test_store_start_get_clear():
    store = ConversationStore()
    assert store.get(10) is None

    state = store.start(10, ConversationStep.AWAITING_WISHLIST, name="Alice")
    assert store.get(10) is state
    assert state.name == "Alice"
    assert 10 in store
    assert len(store) == 1

    assert store.clear(10) is state
    assert store.clear(10) is None
    assert 10 not in store


def test_state_counts_roster():
    store = ConversationStore()
    state = store.start(
        1,
        ConversationStep.AWAITING_NUM_GROUPS,
        roster=[RosterEntry(1, "Alice"), RosterEntry(2, "Bob")],
    )
    assert state.participant_count == 2
    assert state.step == "awaiting_num_groups"


@pytest.mark.asyncio
async def test_locked_serializes_one_chat():
    store = ConversationStore()
    events = []

    async def worker(tag):
        async with store.locked(5):
            events.append(f"{tag}-in")
            await asyncio.sleep(0.01)
            events.append(f"{tag}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a-in", "a-out", "b-in", "b-out"]
    assert store.active_locks() == 0


@pytest.mark.asyncio
async def test_locked_does_not_block_other_chats():
    store = ConversationStore()
    release = asyncio.Event()
    entered = []

    async def slow():
        async with store.locked(1):
            entered.append(1)
            await release.wait()

    async def fast():
        async with store.locked(2):
            entered.append(2)

    task = asyncio.create_task(slow())
    await asyncio.sleep(0)
    await fast()
    assert entered == [1, 2]
    assert store.active_locks() == 1

    release.set()
    await task
    assert store.active_locks() == 0


@pytest.mark.asyncio
async def test_lock_is_released_on_error():
    store = ConversationStore()
    with pytest.raises(RuntimeError):
        async with store.locked(3):
            raise RuntimeError("boom")
    assert store.active_locks() == 0
