"""Fan-out of snapshots to server-sent-event subscribers.

One producer (the tick generator) and one bounded queue per subscriber. A
full queue drops its oldest pending event so a stalled client can never hold
up the producer or the other subscribers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from fleet_pulse.ticker import Snapshot, wall_clock_ms

logger = logging.getLogger(__name__)

UPDATE_EVENT = "train:update"
HEARTBEAT_EVENT = "hb"
READY_EVENT = "ping"


@dataclass(frozen=True)
class Event:
    event: str
    data: str
    id: str | None = None

    def encode(self) -> str:
        """Render as one SSE frame."""
        lines = []
        if self.id is not None:
            lines.append(f"id: {self.id}")
        lines.append(f"event: {self.event}")
        for chunk in self.data.split("\n"):
            lines.append(f"data: {chunk}")
        return "\n".join(lines) + "\n\n"


def parse_last_event_id(raw: str | None, current_seq: int) -> int:
    """Normalize a client's resumption token.

    Anything that is not an id this process could have issued becomes 0.
    """
    if raw is None:
        return 0
    try:
        token = int(raw.strip())
    except ValueError:
        return 0
    if token < 0 or token > current_seq:
        return 0
    return token


class Subscription:
    def __init__(self, token: int, maxsize: int):
        self.token = token
        self.last_seq = token
        self.dropped = 0
        self.queue: asyncio.Queue[Event | None] = asyncio.Queue(maxsize=maxsize)
        self.heartbeat_task: asyncio.Task | None = None

    def offer(self, event: Event | None) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.queue.get_nowait()
            self.dropped += 1
            self.queue.put_nowait(event)

    async def get(self) -> Event | None:
        """Next event, or None once the broadcaster has shut down."""
        return await self.queue.get()

    def end(self) -> None:
        self.offer(None)


class Broadcaster:
    def __init__(
        self,
        heartbeat_interval_s: float = 15,
        queue_size: int = 16,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        self.heartbeat_interval = heartbeat_interval_s
        self.queue_size = queue_size
        self.clock = clock
        self._subscriptions: set[Subscription] = set()
        self._heartbeats: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def active_heartbeats(self) -> int:
        return len(self._heartbeats)

    def subscribe(self, last_event_id: str | None, current_seq: int) -> Subscription:
        """Register a subscriber and queue its ready event.

        Must be called from a running event loop; the heartbeat runs as a task
        on it until ``unsubscribe``.
        """
        token = parse_last_event_id(last_event_id, current_seq)
        sub = Subscription(token, self.queue_size)
        sub.offer(Event(READY_EVENT, str(token), id=str(token)))
        sub.heartbeat_task = asyncio.create_task(self._heartbeat(sub))
        self._heartbeats.add(sub.heartbeat_task)
        self._subscriptions.add(sub)
        logger.info(
            "Subscriber connected (token %d). Total subscribers: %d",
            token,
            len(self._subscriptions),
        )
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub.heartbeat_task is not None:
            sub.heartbeat_task.cancel()
            self._heartbeats.discard(sub.heartbeat_task)
            sub.heartbeat_task = None
        if sub in self._subscriptions:
            self._subscriptions.discard(sub)
            logger.info(
                "Subscriber disconnected (%d dropped). Total subscribers: %d",
                sub.dropped,
                len(self._subscriptions),
            )

    def publish(self, snapshot: Snapshot) -> None:
        """Queue a snapshot for every subscriber without ever waiting."""
        if not self._subscriptions:
            return
        event = Event(UPDATE_EVENT, snapshot.to_json(), id=str(snapshot.seq))
        for sub in list(self._subscriptions):
            if snapshot.seq <= sub.last_seq:
                continue
            sub.offer(event)
            sub.last_seq = snapshot.seq

    async def _heartbeat(self, sub: Subscription) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            sub.offer(Event(HEARTBEAT_EVENT, str(self.clock())))

    def close(self) -> None:
        for sub in list(self._subscriptions):
            sub.end()
            self.unsubscribe(sub)
