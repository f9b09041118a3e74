"""Tests for the session-keyed event bus."""

import asyncio

import pytest

from codevibe.config import BusConfig
from codevibe.errors import BusClosedError
from codevibe.events import EventBus
from codevibe.types import EventType


async def next_event(sub):
    """Next non-heartbeat frame."""
    async for event in sub:
        if event.type is not EventType.HEARTBEAT:
            return event
    return None


class TestPublish:
    async def test_sequences_are_per_session_from_one(self, bus):
        a1 = await bus.publish("a", EventType.STATUS, {"status": "started"})
        a2 = await bus.publish("a", EventType.PARTIAL, {"fragment": "x"})
        b1 = await bus.publish("b", EventType.STATUS)
        assert (a1.sequence, a2.sequence, b1.sequence) == (1, 2, 1)
        assert b1.payload == {}

    async def test_frame_shape(self, bus):
        event = await bus.publish("s", "complete", {"response": "ok"})
        frame = event.to_dict()
        assert frame["sequence"] == 1
        assert frame["type"] == "complete"
        assert frame["sessionId"] == "s"
        assert isinstance(frame["timestamp"], int)
        assert frame["payload"] == {"response": "ok"}
        assert event.is_terminal


class TestSubscribe:
    async def test_receives_in_order(self, bus):
        sub = bus.subscribe("s")
        for i in range(3):
            await bus.publish("s", EventType.PARTIAL, {"i": i})
        received = [await next_event(sub) for _ in range(3)]
        assert [e.payload["i"] for e in received] == [0, 1, 2]
        assert [e.sequence for e in received] == [1, 2, 3]

    async def test_fan_out_to_many(self, bus):
        subs = [bus.subscribe("s") for _ in range(3)]
        await bus.publish("s", EventType.STATUS, {"status": "started"})
        for sub in subs:
            assert (await next_event(sub)).sequence == 1

    async def test_only_own_session(self, bus):
        other = bus.subscribe("other")
        mine = bus.subscribe("mine")
        await bus.publish("other", EventType.STATUS)
        await bus.publish("mine", EventType.STATUS)
        assert (await next_event(mine)).session_id == "mine"
        assert (await next_event(other)).session_id == "other"

    async def test_late_subscriber_gets_no_backfill(self, bus):
        await bus.publish("s", EventType.STATUS)
        await bus.drain()
        sub = bus.subscribe("s")
        await bus.publish("s", EventType.PARTIAL)
        assert (await next_event(sub)).sequence == 2

    async def test_heartbeat_when_idle(self, bus):
        sub = bus.subscribe("s")
        beat = await anext(sub)
        assert beat.type is EventType.HEARTBEAT
        assert beat.sequence == 0
        assert beat.payload == {}
        assert beat.session_id == "s"

    async def test_close_unsubscribes(self, bus):
        sub = bus.subscribe("s")
        assert bus.subscriber_count("s") == 1
        sub.close()
        sub.close()
        assert bus.subscriber_count("s") == 0
        assert [e async for e in sub] == []

    async def test_context_manager(self, bus):
        async with bus.subscribe("s") as sub:
            assert bus.subscriber_count("s") == 1
        assert sub.closed
        assert bus.subscriber_count("s") == 0

    async def test_strictly_increasing_under_concurrent_sessions(self, bus):
        sub = bus.subscribe("target")

        async def producer(session_id, n):
            for i in range(n):
                await bus.publish(session_id, EventType.PARTIAL, {"i": i})
                await asyncio.sleep(0)

        await asyncio.gather(
            producer("target", 20), producer("noise-1", 20), producer("noise-2", 20)
        )
        seqs = [(await next_event(sub)).sequence for _ in range(20)]
        assert seqs == list(range(1, 21))


class TestOverflow:
    async def test_slow_subscriber_is_disconnected_alone(self):
        bus = EventBus(BusConfig(heartbeat_seconds=0.05, subscriber_queue_size=2))
        slow = bus.subscribe("s")
        fast = bus.subscribe("s")
        fast_seen = []
        for i in range(5):
            await bus.publish("s", EventType.PARTIAL, {"i": i})
            await bus.drain()
            fast_seen.append((await next_event(fast)).sequence)

        assert fast_seen == [1, 2, 3, 4, 5]
        assert slow.closed
        assert not fast.closed
        assert [e.sequence async for e in slow] == [1, 2]
        assert bus.subscriber_count("s") == 1
        await bus.shutdown()


class TestShutdown:
    async def test_shutdown_ends_streams_and_rejects_publish(self):
        bus = EventBus(BusConfig(heartbeat_seconds=10))
        sub = bus.subscribe("s")
        await bus.publish("s", EventType.STATUS)

        waiter = asyncio.create_task(next_event(sub))
        first = await waiter
        assert first.sequence == 1

        await bus.shutdown()
        assert bus.closed
        assert sub.closed
        assert [e async for e in sub] == []
        with pytest.raises(BusClosedError):
            await bus.publish("s", EventType.STATUS)
        with pytest.raises(BusClosedError):
            bus.subscribe("s")

    async def test_shutdown_wakes_blocked_reader(self):
        bus = EventBus(BusConfig(heartbeat_seconds=10))
        sub = bus.subscribe("s")
        reader = asyncio.create_task(next_event(sub))
        await asyncio.sleep(0)
        await bus.shutdown()
        assert await asyncio.wait_for(reader, timeout=1) is None

    async def test_shutdown_is_idempotent(self):
        bus = EventBus()
        await bus.shutdown()
        await bus.shutdown()
