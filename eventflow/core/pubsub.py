"""
In-process Pub/Sub

Fan-out channel used by mutations to notify GraphQL subscriptions.
Publishing is fire-and-forget: payloads are queued for every current
subscriber of a topic and delivery is not acknowledged.
"""

import asyncio
from collections import defaultdict
from typing import Any, AsyncGenerator, DefaultDict, Set

from eventflow.utils.logger import get_logger

logger = get_logger(__name__)


class Topics:
    """Subscription topics"""
    EVENT_CREATED = "EVENT_CREATED"
    EVENT_UPDATED = "EVENT_UPDATED"
    EVENT_DELETED = "EVENT_DELETED"
    USER_JOINED_EVENT = "USER_JOINED_EVENT"
    USER_LEFT_EVENT = "USER_LEFT_EVENT"


class PubSub:
    """
    Topic-based fan-out over asyncio queues.

    One instance lives for the lifetime of the application and is shared by
    every request context. Each subscriber owns its queue, so a slow
    subscriber never blocks publishers or other subscribers.
    """

    def __init__(self):
        self._subscribers: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)

    def publish(self, topic: str, payload: Any) -> int:
        """
        Publish a payload to every subscriber of a topic.

        Args:
            topic: Topic name (see Topics)
            payload: Object delivered to subscribers as-is

        Returns:
            Number of subscribers the payload was queued for
        """
        queues = list(self._subscribers.get(topic, ()))
        for queue in queues:
            queue.put_nowait(payload)

        logger.debug(f"📣 Published {topic} to {len(queues)} subscriber(s)")
        return len(queues)

    async def subscribe(self, topic: str) -> AsyncGenerator[Any, None]:
        """
        Iterate over payloads published to a topic.

        The subscription is registered on first iteration and removed when
        the consumer stops iterating (client disconnect, cancellation).
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[topic].add(queue)
        logger.info(f"Subscribed to topic: {topic}")

        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers[topic].discard(queue)
            if not self._subscribers[topic]:
                del self._subscribers[topic]
            logger.info(f"Unsubscribed from topic: {topic}")

    def subscriber_count(self, topic: str) -> int:
        """Number of active subscribers for a topic"""
        return len(self._subscribers.get(topic, ()))
