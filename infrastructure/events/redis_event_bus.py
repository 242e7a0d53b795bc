import json
import logging
import threading
from typing import Callable

import redis
from django.conf import settings
from django.utils import timezone

from .event_bus_interface import EventBus


logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class RedisEventBus(EventBus):
    """Redis pub/sub implementation of event bus."""

    def __init__(self, redis_url: str = None):
        infrastructure = getattr(settings, "INFRASTRUCTURE", {})
        self.redis_url = redis_url or infrastructure.get("EVENT_BUS_REDIS_URL") or DEFAULT_REDIS_URL
        if not isinstance(self.redis_url, str):
            self.redis_url = DEFAULT_REDIS_URL

        try:
            self.redis_client = redis.from_url(self.redis_url)
        except Exception as e:
            logger.error(f"Failed to connect to Redis at {self.redis_url}: {e}")
            self.redis_client = None

        self._subscribers = {}
        self._listening = False

    def publish(self, event_type: str, payload: dict):
        """Publish event to Redis channel."""
        if not self.redis_client:
            logger.warning(f"Redis client not available. Event {event_type} dropped.")
            return

        try:
            message = {"event_type": event_type, "occurred_at": timezone.now().isoformat(), "payload": payload}
            channel = f"events.{event_type}"
            self.redis_client.publish(channel, json.dumps(message, default=str))
            logger.info(f"Published event: {event_type}")
        except Exception as e:
            # Don't raise - event publishing should not break business logic
            logger.error(f"Failed to publish event {event_type}: {str(e)}")

    def subscribe(self, event_type: str, handler: Callable):
        """Subscribe to event channel."""
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.info(f"Registered handler for event: {event_type}")

    def start_listening(self):
        """Start listening to subscribed channels (background thread)."""
        if self._listening or not self.redis_client:
            return

        def listen():
            try:
                pubsub = self.redis_client.pubsub()
                channels = [f"events.{et}" for et in self._subscribers.keys()]

                if not channels:
                    return

                pubsub.subscribe(*channels)
                self._listening = True
                logger.info(f"EventBus listening on: {channels}")

                for message in pubsub.listen():
                    if message["type"] == "message":
                        self._handle_message(message)
            except Exception as e:
                logger.error(f"EventBus listener crashed: {e}")
                self._listening = False

        thread = threading.Thread(target=listen, daemon=True)
        thread.start()

    def _handle_message(self, message):
        """Dispatch the full envelope (event_type, occurred_at, payload) to handlers."""
        try:
            data = json.loads(message["data"])
            event_type = data["event_type"]

            for handler in self._subscribers.get(event_type, []):
                try:
                    handler(data)
                except Exception as e:
                    logger.error(f"Handler error for {event_type}: {str(e)}")
        except Exception as e:
            logger.error(f"Failed to process message: {str(e)}")
