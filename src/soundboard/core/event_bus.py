"""Event bus for the soundboard - publish/subscribe pattern."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class SessionStateEvent:
    """Event emitted when the speech session changes state."""

    timestamp: datetime
    old_state: str
    new_state: str


@dataclass
class SessionErrorEvent:
    """Event emitted when the speech session reports an error."""

    timestamp: datetime
    kind: str
    message: str
    fatal: bool


@dataclass
class TriggerMatchEvent:
    """Event emitted when a trigger phrase is found in a transcript."""

    timestamp: datetime
    trigger_id: int
    phrase: str
    transcript: str
    clip_id: Optional[int] = None  # None when suppressed by cooldown
    suppressed: bool = False


@dataclass
class DefaultResponseEvent:
    """Event emitted when the default response fallback plays a clip."""

    timestamp: datetime
    transcript: str
    clip_id: int


class EventBus:
    """Simple event bus for pub-sub communication between components.

    Subscribers run synchronously in the publisher's thread, in subscription
    order, so events from one producer are observed in the order published.
    """

    def __init__(self):
        """Initialize event bus."""
        self._subscribers: Dict[str, List[Callable]] = {}
        self._lock = threading.Lock()
        logger.debug("EventBus initialized")

    def subscribe(self, event_type: str, callback: Callable[[Any], None]):
        """Subscribe to an event type.

        Args:
            event_type: Type of event to subscribe to (e.g., 'transcript')
            callback: Function to call when event is published
        """
        with self._lock:
            if event_type not in self._subscribers:
                self._subscribers[event_type] = []

            self._subscribers[event_type].append(callback)
            logger.debug(
                f"Subscribed to '{event_type}' "
                f"(total subscribers: {len(self._subscribers[event_type])})"
            )

    def unsubscribe(self, event_type: str, callback: Callable[[Any], None]):
        """Unsubscribe from an event type.

        Args:
            event_type: Type of event to unsubscribe from
            callback: Callback function to remove
        """
        with self._lock:
            if event_type in self._subscribers:
                try:
                    self._subscribers[event_type].remove(callback)
                    logger.debug(f"Unsubscribed from '{event_type}'")
                except ValueError:
                    pass

    def publish(self, event_type: str, event_data: Any):
        """Publish an event to all subscribers.

        Args:
            event_type: Type of event to publish
            event_data: Event data to pass to subscribers
        """
        with self._lock:
            subscribers = self._subscribers.get(event_type, []).copy()

        if not subscribers:
            return

        logger.debug(f"Publishing '{event_type}' to {len(subscribers)} subscriber(s)")

        for callback in subscribers:
            self._safe_callback(callback, event_data, event_type)

    def _safe_callback(self, callback: Callable, event_data: Any, event_type: str):
        """Call subscriber callback with error handling.

        Args:
            callback: Subscriber callback function
            event_data: Event data
            event_type: Event type name (for logging)
        """
        try:
            callback(event_data)
        except Exception as e:
            logger.error(f"Error in subscriber callback for '{event_type}': {e}", exc_info=True)

    def get_subscriber_count(self, event_type: str) -> int:
        """Get number of subscribers for an event type."""
        with self._lock:
            return len(self._subscribers.get(event_type, []))
