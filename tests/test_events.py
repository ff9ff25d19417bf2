import asyncio

import pytest

from telecare.services.events import StateEvents


def test_subscribe_and_unsubscribe():
    events: StateEvents[int] = StateEvents()
    seen = []
    sub = events.subscribe(seen.append)
    events.publish(1)
    sub.unsubscribe()
    sub.unsubscribe()
    events.publish(2)
    assert seen == [1]
    assert not sub.active
    assert events.listener_count == 0


def test_failing_listener_does_not_block_others():
    events: StateEvents[int] = StateEvents()
    seen = []

    def broken(value: int) -> None:
        raise RuntimeError("listener bug")

    events.subscribe(broken)
    events.subscribe(seen.append)
    events.publish(1)
    assert seen == [1]


def test_nothing_delivered_after_close():
    events: StateEvents[int] = StateEvents()
    seen = []
    events.subscribe(seen.append)
    events.close()
    events.publish(1)
    assert seen == []
    with pytest.raises(RuntimeError):
        events.subscribe(seen.append)


async def test_stream_ends_on_close():
    events: StateEvents[int] = StateEvents()
    received = []

    async def consume() -> None:
        async for value in events.stream():
            received.append(value)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    events.publish(1)
    events.publish(2)
    for _ in range(3):
        await asyncio.sleep(0)
    events.close()
    await asyncio.wait_for(task, timeout=1)
    assert received == [1, 2]
    assert events.listener_count == 0


async def test_slow_stream_keeps_newest():
    events: StateEvents[int] = StateEvents(stream_maxsize=2)
    received = []

    async def consume() -> None:
        async for value in events.stream():
            received.append(value)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    for i in range(5):
        events.publish(i)
    for _ in range(3):
        await asyncio.sleep(0)
    events.close()
    await asyncio.wait_for(task, timeout=1)
    assert received == [3, 4]
