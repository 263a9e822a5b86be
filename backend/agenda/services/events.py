"""
backend/agenda/services/events.py

Event emitter: pushes scheduling events to a Redis list for consumers
(notifications, calendar sync).

Event types:
- slots_generated
- booking_created / booking_cancelled / booking_done
- slot_status_changed
"""

import json
import time
import logging

from redis import Redis

from ..config import settings
from ..redis_client import get_redis

logger = logging.getLogger(__name__)


class EventEmitter:
    """
    Fire-and-forget event publisher.

    A committed booking operation is never undone because an event could not
    be delivered: failures are logged and dropped.
    """

    def __init__(self, redis: Redis | None, queue: str = "events:p2p"):
        self.redis = redis
        self.queue = queue

    def emit(self, event_type: str, payload: dict) -> None:
        event = {
            "type": event_type,
            **payload,
            "ts": int(time.time()),
        }
        if self.redis is None:
            logger.debug(f"Event {event_type} not emitted: no redis configured")
            return
        try:
            self.redis.rpush(self.queue, json.dumps(event, default=str))
            logger.info(f"Event emitted: {event_type} → {self.queue}")
        except Exception as e:
            logger.error(f"Failed to emit event {event_type}: {e}")


def get_event_emitter() -> EventEmitter:
    """Emitter bound to the configured Redis (no-op when REDIS_URL is unset)."""
    return EventEmitter(get_redis(), settings.events_queue)
