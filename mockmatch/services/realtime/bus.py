"""In-process publish/subscribe bus for realtime state changes.

Delivery is synchronous and local to the process. Each subscriber receives
its own deep copy of the published event, so a handler that mutates
``event.session.metadata`` (or anything else) cannot affect other
subscribers, later events or the stored rows the event was built from.
"""

import logging
from collections import defaultdict
from typing import Callable

from pydantic import BaseModel

from mockmatch.schemas.events import (
    MatchRequestCreatedEvent,
    SessionBroadcastEvent,
    SlotUpdateEvent,
)

logger = logging.getLogger(__name__)

SESSIONS_CHANNEL = "sessions:update"
SLOTS_CHANNEL = "slots:update"
MATCH_REQUESTS_CHANNEL = "match_requests:created"


class RealtimeBus:
    """Channel-keyed listener registry."""

    def __init__(self):
        self._listeners: dict[str, list[Callable]] = defaultdict(list)

    def subscribe(self, channel: str, listener: Callable) -> Callable[[], None]:
        """
        Register a listener on a channel.

        Returns:
            A callable that removes the listener again (safe to call twice)
        """
        self._listeners[channel].append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(channel, listener)

        return unsubscribe

    def unsubscribe(self, channel: str, listener: Callable) -> None:
        listeners = self._listeners.get(channel)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, ()))

    def publish(self, channel: str, event: BaseModel) -> int:
        """
        Deliver an event to every listener of a channel.

        Args:
            channel: Channel name
            event: Event model; never handed out directly

        Returns:
            Number of listeners that handled the event without raising
        """
        delivered = 0
        # Snapshot the list so listeners may unsubscribe while handling
        for listener in list(self._listeners.get(channel, ())):
            try:
                listener(event.model_copy(deep=True))
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Listener {listener!r} failed on channel {channel}: {e}", exc_info=True)
        return delivered

    def clear(self) -> None:
        self._listeners.clear()

    # Typed helpers

    def emit_session_update(self, event: SessionBroadcastEvent) -> int:
        return self.publish(SESSIONS_CHANNEL, event)

    def emit_slot_update(self, event: SlotUpdateEvent) -> int:
        return self.publish(SLOTS_CHANNEL, event)

    def emit_match_request_created(self, event: MatchRequestCreatedEvent) -> int:
        return self.publish(MATCH_REQUESTS_CHANNEL, event)

    def subscribe_to_session_updates(
        self, listener: Callable[[SessionBroadcastEvent], None]
    ) -> Callable[[], None]:
        return self.subscribe(SESSIONS_CHANNEL, listener)

    def subscribe_to_slot_updates(
        self, listener: Callable[[SlotUpdateEvent], None]
    ) -> Callable[[], None]:
        return self.subscribe(SLOTS_CHANNEL, listener)

    def subscribe_to_match_requests(
        self, listener: Callable[[MatchRequestCreatedEvent], None]
    ) -> Callable[[], None]:
        return self.subscribe(MATCH_REQUESTS_CHANNEL, listener)


realtime_bus = RealtimeBus()
