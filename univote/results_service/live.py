"""
Live vote feed — fans PostgreSQL ``vote_inserted`` notifications out to
WebSocket subscribers, one bounded queue per subscriber, keyed by election.

Events only say "something changed"; subscribers respond by recomputing the
full tally, so a dropped or repeated event can never skew a count.
"""
import asyncio
import json
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Callable
from uuid import UUID

from univote.shared.database import Database

logger = logging.getLogger("results-service")

VOTE_CHANNEL = "vote_inserted"


class VoteFeed:

    def __init__(self, queue_size: int = 100,
                 on_event: Callable[[UUID], None] | None = None):
        self.queue_size = queue_size
        self.on_event = on_event
        self._subscribers: dict[UUID, set[asyncio.Queue]] = defaultdict(set)
        self._conn = None

    @property
    def listening(self) -> bool:
        return self._conn is not None

    async def start(self) -> None:
        self._conn = await Database.listener_connection()
        await self._conn.add_listener(VOTE_CHANNEL, self._on_notify)
        logger.info(f"Listening on channel {VOTE_CHANNEL}")

    async def stop(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.remove_listener(VOTE_CHANNEL, self._on_notify)
        finally:
            await self._conn.close()
            self._conn = None

    def _on_notify(self, connection, pid, channel, payload) -> None:
        try:
            event = json.loads(payload)
            election_id = UUID(event["election_id"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed {channel} payload {payload!r}: {e}")
            return
        if self.on_event is not None:
            self.on_event(election_id)
        self.publish(election_id, event)

    def publish(self, election_id: UUID, event: dict) -> int:
        """Deliver an event to every subscriber of the election. Returns deliveries."""
        delivered = 0
        for queue in list(self._subscribers.get(election_id, ())):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                # The subscriber already has a refresh pending.
                logger.warning(f"Live queue full for election {election_id}; event dropped")
        return delivered

    @asynccontextmanager
    async def subscribe(self, election_id: UUID):
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[election_id].add(queue)
        try:
            yield queue
        finally:
            subscribers = self._subscribers.get(election_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[election_id]

    def subscriber_count(self, election_id: UUID) -> int:
        return len(self._subscribers.get(election_id, ()))


def drain(queue: asyncio.Queue) -> int:
    """Discard queued events; one recompute covers all of them."""
    dropped = 0
    while True:
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            return dropped
        dropped += 1
