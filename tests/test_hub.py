from __future__ import annotations

import asyncio
import threading

import pytest

from devchannel.events import Errors, Invalid, Ok, StillOk
from devchannel.server.hub import ChannelHub


def _drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_publish_preserves_order_per_subscriber() -> None:
    async def scenario():
        hub = ChannelHub()
        a, b = hub.subscribe(), hub.subscribe()
        sequence = [Invalid(), Ok(hash="1"), Invalid(), Errors(messages=("x",))]
        for event in sequence:
            assert hub.publish(event) == 2
        return sequence, _drain(a.queue), _drain(b.queue)

    sequence, got_a, got_b = asyncio.run(scenario())
    assert got_a == sequence
    assert got_b == sequence


def test_new_subscriber_gets_current_status_first() -> None:
    async def scenario():
        hub = ChannelHub()
        hub.publish(Invalid())
        hub.publish(Ok(hash="1"))
        hub.publish(StillOk())
        sub = hub.subscribe()
        return hub.status, _drain(sub.queue)

    status, received = asyncio.run(scenario())
    assert status == Ok(hash="1")
    assert received == [Ok(hash="1")]


def test_unsubscribe_isolates_other_subscribers() -> None:
    async def scenario():
        hub = ChannelHub()
        gone, stays = hub.subscribe(), hub.subscribe()
        hub.unsubscribe(gone)
        delivered = hub.publish(Invalid())
        return delivered, gone, stays, len(hub)

    delivered, gone, stays, count = asyncio.run(scenario())
    assert delivered == 1
    assert count == 1
    assert gone.closed.is_set()
    assert gone.queue.empty()
    assert stays.queue.qsize() == 1


def test_slow_subscriber_is_dropped_without_blocking_others() -> None:
    async def scenario():
        hub = ChannelHub(queue_size=1)
        fast, slow = hub.subscribe(), hub.subscribe()
        hub.publish(Invalid())
        fast.queue.get_nowait()
        delivered = hub.publish(Ok())
        return delivered, fast, slow, len(hub)

    delivered, fast, slow, count = asyncio.run(scenario())
    assert delivered == 1
    assert count == 1
    assert slow.closed.is_set()
    assert not fast.closed.is_set()
    assert fast.queue.get_nowait() == Ok()


def test_publish_threadsafe_keeps_call_order() -> None:
    sequence = [Invalid(), Ok(hash="a"), Invalid(), Ok(hash="b")]

    async def scenario():
        hub = ChannelHub(loop=asyncio.get_running_loop())
        sub = hub.subscribe()

        def compiler():
            for event in sequence:
                hub.publish_threadsafe(event)

        thread = threading.Thread(target=compiler)
        thread.start()
        await asyncio.to_thread(thread.join)
        return [await asyncio.wait_for(sub.queue.get(), 1.0) for _ in sequence]

    assert asyncio.run(scenario()) == sequence


def test_publish_threadsafe_needs_a_loop() -> None:
    with pytest.raises(RuntimeError):
        ChannelHub().publish_threadsafe(Invalid())


def test_close_disconnects_everyone_and_refuses_new_subscribers() -> None:
    async def scenario():
        hub = ChannelHub()
        subs = [hub.subscribe() for _ in range(3)]
        hub.close()
        with pytest.raises(RuntimeError):
            hub.subscribe()
        return hub, subs

    hub, subs = asyncio.run(scenario())
    assert hub.closed
    assert len(hub) == 0
    assert all(s.closed.is_set() for s in subs)
