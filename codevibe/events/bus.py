"""
Session-keyed event bus.

Publishers put frames on one bounded inbound queue; a single fan-out task
drains it into a bounded queue per subscriber. Production is decoupled from
delivery, and a slow subscriber can only hurt itself: when its queue
overflows it is disconnected while everyone else keeps receiving.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import defaultdict
from typing import Any

from ..config import BusConfig
from ..errors import BusClosedError
from ..infra.logging import get_logger
from ..types import EventType, StreamEvent

logger = get_logger(__name__)

_CLOSED = object()


class Subscription:
    """Live view of one session's frames from the moment of subscribing.

    Iterating yields frames in emission order; after ``heartbeat_seconds``
    of silence a heartbeat frame (sequence 0) is yielded instead. Iteration
    ends once the subscription is closed, by the caller or by the bus.
    """

    def __init__(self, bus: EventBus, session_id: str, maxsize: int, heartbeat_seconds: float):
        self.session_id = session_id
        self._bus = bus
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._heartbeat = heartbeat_seconds
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout=self._heartbeat)
        except asyncio.TimeoutError:
            if self._closed:
                raise StopAsyncIteration from None
            return StreamEvent(sequence=0, type=EventType.HEARTBEAT, session_id=self.session_id)
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        self._bus._remove(self)
        self._end()

    def _offer(self, event: StreamEvent) -> bool:
        if self._closed:
            return True
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def _end(self) -> None:
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait(_CLOSED)


class EventBus:
    """Process-scoped publish/subscribe registry.

    One instance is constructed per process (or per test) and passed by
    reference to publishers and subscribers. Sequence numbers are assigned
    per session at publish time, starting at 1. ``drain`` waits until every
    published frame has been fanned out; ``shutdown`` drains, stops the
    fan-out task and ends every subscription.
    """

    def __init__(self, config: BusConfig | None = None) -> None:
        self.config = config or BusConfig()
        self._inbound: asyncio.Queue[StreamEvent] = asyncio.Queue(
            maxsize=self.config.inbound_queue_size
        )
        self._subscribers: dict[str, set[Subscription]] = defaultdict(set)
        self._sequences: dict[str, int] = defaultdict(int)
        self._fanout: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, session_id: str) -> Subscription:
        if self._closed:
            raise BusClosedError()
        sub = Subscription(
            self, session_id, self.config.subscriber_queue_size, self.config.heartbeat_seconds
        )
        self._subscribers[session_id].add(sub)
        logger.debug("bus.subscribed", session_id=session_id)
        return sub

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    async def publish(
        self, session_id: str, type: EventType, payload: dict[str, Any] | None = None
    ) -> StreamEvent:
        if self._closed:
            raise BusClosedError()
        self._ensure_fanout()
        self._sequences[session_id] += 1
        event = StreamEvent(
            sequence=self._sequences[session_id],
            type=EventType(type),
            session_id=session_id,
            payload=payload or {},
        )
        await self._inbound.put(event)
        return event

    async def drain(self) -> None:
        if self._fanout is not None:
            await self._inbound.join()

    async def shutdown(self) -> None:
        if self._closed:
            return
        await self.drain()
        self._closed = True
        if self._fanout is not None:
            self._fanout.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._fanout
            self._fanout = None
        for subs in list(self._subscribers.values()):
            for sub in list(subs):
                sub._end()
        self._subscribers.clear()
        logger.info("bus.shutdown")

    def _ensure_fanout(self) -> None:
        if self._fanout is None or self._fanout.done():
            self._fanout = asyncio.create_task(self._fan_out(), name="event-bus-fanout")

    async def _fan_out(self) -> None:
        while True:
            event = await self._inbound.get()
            try:
                for sub in list(self._subscribers.get(event.session_id, ())):
                    if not sub._offer(event):
                        logger.warning(
                            "bus.subscriber_overflow",
                            session_id=event.session_id,
                            sequence=event.sequence,
                        )
                        sub.close()
            except Exception:
                logger.exception("bus.fanout_error", session_id=event.session_id)
            finally:
                self._inbound.task_done()

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.session_id)
        if subs is None:
            return
        subs.discard(sub)
        if not subs:
            del self._subscribers[sub.session_id]
