import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from django.utils import timezone


logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for all marketplace domain events."""

    event_type: str
    occurred_at: datetime = field(default_factory=timezone.now)
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"event_type": self.event_type, "occurred_at": self.occurred_at.isoformat(), "payload": self.payload}

    def publish(self, event_bus) -> bool:
        """
        Publish through ``event_bus``.

        Publishing must not break business logic: failures are logged and
        reported as False.
        """
        try:
            event_bus.publish(self.event_type, self.payload)
            logger.debug(f"Published event: {self.to_dict()}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish {self.event_type}: {e}")
            return False
