"""
Realtime delivery hub
Topic-based pub/sub used to push notifications to connected clients.
Delivery is fire-and-forget: the persisted Notification row is the source of
truth and clients that miss a push fetch it on load.
"""

import inspect
import logging
from threading import Lock
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)

Handler = Callable[[dict], Union[Awaitable[None], None]]


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"


class RealtimeHub:
    """In-process subscription registry; one topic per connected user"""

    def __init__(self):
        self._subscribers: dict[str, list[Handler]] = {}
        self._lock = Lock()

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for a topic.

        Returns:
            Callable that removes the subscription (safe to call more than once)
        """
        with self._lock:
            self._subscribers.setdefault(topic, []).append(handler)
        logger.debug(f"🔌 Subscribed to {topic}")

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._subscribers.get(topic)
                if handlers and handler in handlers:
                    handlers.remove(handler)
                    if not handlers:
                        del self._subscribers[topic]
                    logger.debug(f"🔌 Unsubscribed from {topic}")

        return unsubscribe

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def is_connected(self, user_id: str) -> bool:
        return self.subscriber_count(user_topic(user_id)) > 0

    async def publish(self, topic: str, payload: dict[str, Any]) -> int:
        """Send payload to every handler of a topic; returns how many accepted it"""
        with self._lock:
            handlers = list(self._subscribers.get(topic, []))

        delivered = 0
        for handler in handlers:
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.debug(f"ℹ️ Realtime delivery to {topic} dropped: {e}")
        return delivered

    async def deliver(self, user_id: str, payload: dict[str, Any]) -> bool:
        """Best-effort push to one user; False when nobody received it"""
        return await self.publish(user_topic(user_id), payload) > 0


realtime_hub = RealtimeHub()
