"""
Per-user real-time event publishing.

Events go out on a Redis pub/sub channel per user ("user-<id>"); the WebSocket
endpoint relays that channel to connected clients. Delivery is fire-and-forget:
a client that is not listening simply misses the event, and a publish failure
is logged, never raised.
"""
import json
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

PLANT_NEEDS_WATER = "plant-needs-water"
SCHEDULE_WATERING_COMPLETED = "schedule-watering-completed"
WATERING_STARTED = "watering-started"
WATERING_STOPPED = "watering-stopped"


def user_channel(user_id: int) -> str:
    return f"user-{user_id}"


def encode_event(event: str, payload: dict) -> str:
    return json.dumps({"event": event, "data": payload}, default=str)


class EventNotifier(Protocol):
    async def publish(self, user_id: int, event: str, payload: dict) -> None: ...


class RedisEventNotifier:
    """Publishes events through any client exposing redis-py's async `publish` (ArqRedis included)."""

    def __init__(self, redis: Any):
        self._redis = redis

    async def publish(self, user_id: int, event: str, payload: dict) -> None:
        try:
            receivers = await self._redis.publish(user_channel(user_id), encode_event(event, payload))
            logger.debug("events: %s → user %d (%s receivers)", event, user_id, receivers)
        except Exception as exc:
            logger.warning("events: publish %s to user %d failed: %s", event, user_id, exc)


class NullEventNotifier:
    async def publish(self, user_id: int, event: str, payload: dict) -> None:
        logger.debug("events: dropping %s for user %d (no notifier configured)", event, user_id)
