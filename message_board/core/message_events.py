"""In-process publish/subscribe channel for message changes, keyed by user id."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageEvent:
    """Notification that a user's message list changed."""

    user_id: str
    message_id: str
    created_at: int


@dataclass
class MessageEventConfig:
    """Configuration for the message event broker."""

    queue_size: int = 32  # Pending notifications buffered per subscriber

    @classmethod
    def from_settings(cls) -> "MessageEventConfig":
        """Create config from application settings."""
        from message_board.core.config import get_settings
        settings = get_settings()
        return cls(queue_size=settings.message_stream_queue_size)


class MessageEventBroker:
    """Fans out message change notifications to live subscribers.

    Each subscriber gets its own bounded queue. A ``None`` item on a queue
    means the broker closed and the subscriber should stop.
    """

    def __init__(self, config: MessageEventConfig | None = None) -> None:
        self.config = config or MessageEventConfig()
        self._subscribers: dict[str, set[asyncio.Queue[MessageEvent | None]]] = defaultdict(set)
        self._lock = Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def subscribe(self, user_id: str) -> AsyncIterator[asyncio.Queue[MessageEvent | None]]:
        """Register a queue for ``user_id`` for the duration of the context."""
        queue: asyncio.Queue[MessageEvent | None] = asyncio.Queue(maxsize=self.config.queue_size)
        with self._lock:
            if self._closed:
                queue.put_nowait(None)
            else:
                self._subscribers[user_id].add(queue)
        logger.debug("Subscriber added for user %s", user_id)
        try:
            yield queue
        finally:
            with self._lock:
                queues = self._subscribers.get(user_id)
                if queues is not None:
                    queues.discard(queue)
                    if not queues:
                        del self._subscribers[user_id]
            logger.debug("Subscriber removed for user %s", user_id)

    def publish(self, event: MessageEvent) -> int:
        """Deliver ``event`` to every subscriber of ``event.user_id``.

        Returns:
            int: Number of subscribers that received the event.
        """
        with self._lock:
            queues = list(self._subscribers.get(event.user_id, ()))

        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                # A queued notification already forces a fresh snapshot.
                logger.warning("Dropping message event for slow subscriber of user %s", event.user_id)
        return delivered

    def subscriber_count(self, user_id: str | None = None) -> int:
        """Count live subscribers, overall or for one user."""
        with self._lock:
            if user_id is not None:
                return len(self._subscribers.get(user_id, ()))
            return sum(len(queues) for queues in self._subscribers.values())

    async def close(self) -> None:
        """Wake every subscriber with the end-of-stream sentinel."""
        with self._lock:
            self._closed = True
            queues = [q for user_queues in self._subscribers.values() for q in user_queues]

        for queue in queues:
            while True:
                try:
                    queue.put_nowait(None)
                    break
                except asyncio.QueueFull:
                    queue.get_nowait()
        logger.info("Message event broker closed (%d subscribers notified)", len(queues))


# Global singleton instance
_broker: MessageEventBroker | None = None


def get_message_broker() -> MessageEventBroker:
    """Get or create the global message event broker."""
    global _broker
    if _broker is None:
        _broker = MessageEventBroker(MessageEventConfig.from_settings())
    return _broker


async def init_message_broker() -> MessageEventBroker:
    """Initialize the broker. Call at app startup."""
    return get_message_broker()


async def shutdown_message_broker() -> None:
    """Close the broker and end all live streams. Call at app shutdown."""
    global _broker
    if _broker:
        await _broker.close()
        _broker = None
