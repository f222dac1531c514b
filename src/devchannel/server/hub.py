"""Channel hub: the open subscriber connections and the current build status.

The hub is created by the app lifespan and closed at shutdown. Each
subscriber gets its own bounded queue, so one slow socket only ever delays
itself; a subscriber whose queue overflows is dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field

from devchannel.events import CompilationEvent, StillOk

log = logging.getLogger(__name__)


@dataclass
class Subscriber:
    id: int
    queue: asyncio.Queue = field(repr=False)
    closed: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    connected_at: float = field(default_factory=time.time)


class ChannelHub:
    """Broadcast target for compiler lifecycle transitions.

    ``publish`` must run on the event loop; compiler threads use
    ``publish_threadsafe``. The subscriber set is only touched under
    ``self._lock``.
    """

    def __init__(
        self,
        *,
        queue_size: int = 64,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._subscribers: dict[int, Subscriber] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._queue_size = queue_size
        self._loop = loop
        self._status: CompilationEvent | None = None
        self._closed = False

    # ------------------------------------------------------------------
    def subscribe(self) -> Subscriber:
        """Register a new subscriber, pre-loaded with the current build status."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        sub = Subscriber(id=next(self._ids), queue=asyncio.Queue(maxsize=self._queue_size))
        with self._lock:
            if self._closed:
                raise RuntimeError("channel hub is closed")
            if self._status is not None:
                sub.queue.put_nowait(self._status)
            self._subscribers[sub.id] = sub
            count = len(self._subscribers)
        log.info("subscriber %d connected (%d active)", sub.id, count)
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        with self._lock:
            removed = self._subscribers.pop(sub.id, None) is not None
            count = len(self._subscribers)
        sub.closed.set()
        if removed:
            log.info("subscriber %d disconnected (%d active)", sub.id, count)

    # ------------------------------------------------------------------
    def publish(self, event: CompilationEvent) -> int:
        """Queue *event* for every subscriber. Returns how many accepted it."""
        delivered = 0
        dropped: list[Subscriber] = []
        with self._lock:
            if not isinstance(event, StillOk):
                self._status = event
            for sub in self._subscribers.values():
                try:
                    sub.queue.put_nowait(event)
                    delivered += 1
                except asyncio.QueueFull:
                    dropped.append(sub)
            for sub in dropped:
                del self._subscribers[sub.id]
        for sub in dropped:
            log.warning("subscriber %d is not keeping up; dropping it", sub.id)
            sub.closed.set()
        log.debug("published %s to %d subscriber(s)", event.type, delivered)
        return delivered

    def publish_threadsafe(self, event: CompilationEvent) -> None:
        """Schedule ``publish(event)`` on the hub's loop from any thread.

        Calls are delivered in the order they were made.
        """
        if self._loop is None:
            raise RuntimeError("channel hub is not attached to an event loop")
        self._loop.call_soon_threadsafe(self.publish, event)

    # ------------------------------------------------------------------
    def close(self) -> None:
        """Disconnect every subscriber and refuse new ones."""
        with self._lock:
            self._closed = True
            subs = list(self._subscribers.values())
            self._subscribers.clear()
        for sub in subs:
            sub.closed.set()
        log.info("channel hub closed (%d subscriber(s) disconnected)", len(subs))

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def status(self) -> CompilationEvent | None:
        return self._status

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def list(self) -> list[dict]:
        with self._lock:
            return [
                {"id": s.id, "connected_at": s.connected_at, "pending": s.queue.qsize()}
                for s in self._subscribers.values()
            ]
