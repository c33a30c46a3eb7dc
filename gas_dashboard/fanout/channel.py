from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol, Set

from gas_dashboard.fanout.events import Event
from gas_dashboard.fanout.messages import event_message

log = logging.getLogger("fanout")

_ids = itertools.count(1)

# Close code sent to a viewer the fan-out gave up on (server-side error).
DROPPED_CLOSE_CODE = 1011


class Connection(Protocol):
    """Anything we can push JSON into (starlette WebSocket satisfies this)."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


@dataclass(eq=False)
class Subscriber:
    """
    One live viewer.

    queue: outbound messages, delivered in order by the pump task
    closed: set once the subscriber is unregistered; nothing is sent after that
    """
    connection: Connection
    queue: asyncio.Queue
    id: int = field(default_factory=lambda: next(_ids))
    task: Optional[asyncio.Task] = None
    closed: bool = False


class FanoutChannel:
    """
    Pushes every new sample to every registered subscriber.

    - subscribe(): queues the snapshot first, then registers, so the snapshot
      always precedes any update for that subscriber
    - on_event(): only enqueues, so a slow viewer never blocks the generator
      or other viewers; a full queue drops that viewer
    - each send is bounded by send_timeout; a dropped viewer is unregistered
      and its socket closed (1011) so the client reconnects for a new snapshot
    """

    def __init__(
        self,
        snapshot: Callable[[], dict],
        send_timeout: float = 5.0,
        queue_size: int = 100,
    ) -> None:
        self.snapshot = snapshot
        self.send_timeout = send_timeout
        self.queue_size = queue_size
        self.subscribers: Dict[int, Subscriber] = {}
        self._closing: Set[asyncio.Task] = set()

    def subscribe(self, connection: Connection) -> Subscriber:
        """Register a connection and start delivering to it. Must run on the event loop."""
        sub = Subscriber(connection=connection, queue=asyncio.Queue(maxsize=self.queue_size))
        sub.queue.put_nowait(self.snapshot())
        self.subscribers[sub.id] = sub
        sub.task = asyncio.create_task(self._pump(sub))
        log.info("Subscriber %d connected (total=%d)", sub.id, len(self.subscribers))
        return sub

    def unsubscribe(self, sub: Subscriber) -> None:
        """Remove a subscriber. Safe to call more than once."""
        if sub.closed:
            return
        sub.closed = True
        self.subscribers.pop(sub.id, None)

        task = sub.task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

        log.info("Subscriber %d removed (total=%d)", sub.id, len(self.subscribers))

    def on_event(self, event: Event) -> None:
        """Queue the event for every open subscriber. Never raises."""
        try:
            message = event_message(event)
        except Exception as e:
            log.error("Dropping event %r: %s", event, repr(e))
            return

        for sub in list(self.subscribers.values()):
            self.enqueue(sub, message)

    def enqueue(self, sub: Subscriber, message: dict) -> bool:
        """Queue one message for one subscriber. Returns False if it was dropped."""
        if sub.closed:
            return False
        try:
            sub.queue.put_nowait(message)
        except asyncio.QueueFull:
            log.warning("Subscriber %d is not keeping up; dropping it", sub.id)
            self._drop(sub)
            return False
        return True

    @property
    def subscriber_count(self) -> int:
        return len(self.subscribers)

    async def close(self) -> None:
        """Drop every subscriber and wait for their pumps to finish."""
        subs = list(self.subscribers.values())
        for sub in subs:
            self.unsubscribe(sub)
        tasks = [s.task for s in subs if s.task is not None] + list(self._closing)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def drain(self, sub: Subscriber) -> None:
        """Wait until everything queued so far for `sub` has been handled."""
        if sub.closed or sub.task is None:
            return
        joined = asyncio.ensure_future(sub.queue.join())
        # The pump ends early if the subscriber is dropped, so wait on both.
        await asyncio.wait({joined, sub.task}, return_when=asyncio.FIRST_COMPLETED)
        joined.cancel()

    async def _pump(self, sub: Subscriber) -> None:
        while not sub.closed:
            message = await sub.queue.get()
            try:
                if sub.closed:
                    continue
                await asyncio.wait_for(sub.connection.send_json(message), timeout=self.send_timeout)
            except asyncio.TimeoutError:
                log.warning("Subscriber %d send timed out after %.1fs", sub.id, self.send_timeout)
                self._drop(sub)
            except Exception as e:
                log.warning("Subscriber %d send failed: %s", sub.id, repr(e))
                self._drop(sub)
            finally:
                sub.queue.task_done()

    def _drop(self, sub: Subscriber) -> None:
        """Unregister a viewer the channel gave up on and close its socket so it reconnects."""
        self.unsubscribe(sub)
        task = asyncio.create_task(self._close_connection(sub))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_connection(self, sub: Subscriber) -> None:
        try:
            await asyncio.wait_for(
                sub.connection.close(code=DROPPED_CLOSE_CODE), timeout=self.send_timeout
            )
        except Exception as e:
            log.info("Subscriber %d close failed: %s", sub.id, repr(e))
