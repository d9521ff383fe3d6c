"""In-process event bus for record and protocol notifications."""

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Match,
    NamedTuple,
    Pattern,
    Tuple,
)

if TYPE_CHECKING:  # To avoid circular import error
    from .profile import Profile

LOGGER = logging.getLogger(__name__)


class Event:
    """A topic such as `oob_wallet::record::out_of_band::...` and its payload."""

    def __init__(self, topic: str, payload: Any = None):
        """Create a new event."""
        self._topic = topic
        self._payload = payload

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def payload(self) -> Any:
        return self._payload

    def __eq__(self, other):
        return (
            isinstance(other, Event)
            and self._topic == other._topic
            and self._payload == other._payload
        )

    def __repr__(self):
        return f"<Event topic={self._topic}, payload={self._payload}>"

    def with_metadata(self, metadata: "EventMetadata") -> "EventWithMetadata":
        return EventWithMetadata(self.topic, self.payload, metadata)


class EventMetadata(NamedTuple):
    """The subscription pattern and match that routed an event."""

    pattern: Pattern
    match: Match[str]


class EventWithMetadata(Event):
    """An event as delivered to one subscriber."""

    def __init__(self, topic: str, payload: Any, metadata: EventMetadata):
        """Initialize event metadata."""
        super().__init__(topic, payload)
        self._metadata = metadata

    @property
    def metadata(self) -> EventMetadata:
        return self._metadata


class EventBus:
    """
    Delivers events to the subscribers whose pattern matches the topic.

    Subscribers are async callables taking the profile and the event.
    They run one after another; one that raises is logged and skipped.
    """

    def __init__(self):
        """Initialize Event Bus."""
        self.topic_patterns_to_subscribers: Dict[Pattern, List[Callable]] = {}

    async def notify(self, profile: "Profile", event: Event):
        LOGGER.debug("Notifying subscribers: %s", event)

        # snapshot first so subscribers may (un)subscribe while running
        deliveries = []
        for pattern, subscribers in self.topic_patterns_to_subscribers.items():
            match = pattern.match(event.topic)
            if match:
                delivered = event.with_metadata(EventMetadata(pattern, match))
                deliveries.extend((subscriber, delivered) for subscriber in subscribers)
        for subscriber, delivered in deliveries:
            try:
                await subscriber(profile, delivered)
            except Exception:
                LOGGER.exception("Event subscriber failed for %s", event.topic)

    def subscribe(self, pattern: Pattern, processor: Callable):
        LOGGER.debug("Subscribed: topic %s, processor %s", pattern, processor)
        self.topic_patterns_to_subscribers.setdefault(pattern, []).append(processor)

    def unsubscribe(self, pattern: Pattern, processor: Callable):
        """Remove a subscription; unknown subscriptions are ignored."""
        subscribers = self.topic_patterns_to_subscribers.get(pattern, [])
        if processor not in subscribers:
            return
        subscribers.remove(processor)
        if not subscribers:
            del self.topic_patterns_to_subscribers[pattern]
        LOGGER.debug("Unsubscribed: topic %s, processor %s", pattern, processor)


class MockEventBus(EventBus):
    """An EventBus that records events instead of dispatching them."""

    def __init__(self):
        """Initialize MockEventBus."""
        super().__init__()
        self.events: List[Tuple["Profile", Event]] = []

    async def notify(self, profile: "Profile", event: Event):
        self.events.append((profile, event))
