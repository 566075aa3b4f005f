"""
In-process change feed backing the realtime snapshot stream.

Routes publish the name of a collection after committing a change; every
stream subscribed for that user receives it and re-queries a fresh
snapshot. There is no ordering or locking beyond what the database gives.
"""

import asyncio
import logging
from collections import defaultdict
from uuid import UUID

from studyflow.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

COLLECTIONS = ("tasks", "documents", "ai_tasks")


class ChangeFeed:
    """Per-user fan-out of collection change notifications."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: dict[UUID, set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, user_id: UUID) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[user_id].add(queue)
        logger.debug("Realtime subscriber added for user %s", user_id)
        return queue

    def unsubscribe(self, user_id: UUID, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]
        logger.debug("Realtime subscriber removed for user %s", user_id)

    def subscriber_count(self, user_id: UUID) -> int:
        return len(self._subscribers.get(user_id, ()))

    def publish(self, user_id: UUID, collection: str) -> None:
        """Notify every subscriber of user_id that collection changed."""
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        for queue in list(self._subscribers.get(user_id, ())):
            try:
                queue.put_nowait(collection)
            except asyncio.QueueFull:
                logger.warning("Realtime queue full for user %s, dropping %s change", user_id, collection)


# Singleton instance
change_feed = ChangeFeed(max_queue_size=settings.realtime_queue_size)
