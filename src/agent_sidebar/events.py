"""Fan-out of sidebar events to connected clients.

The thread-list loader listens here for ``threads:load-older`` requests and
views listen for ``sidebar:updated`` to know when to fetch the view again.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, AsyncGenerator, Optional

logger = logging.getLogger(__name__)

EVENT_LOAD_OLDER = "threads:load-older"
EVENT_SIDEBAR_UPDATED = "sidebar:updated"

# Events a subscriber may fall behind by before it is dropped.
SUBSCRIBER_QUEUE_SIZE = 100


class SidebarEvents:
    """Coordinates events between the sidebar service and subscribers.

    Singleton pattern - use get_instance() to access.
    """

    _instance: Optional[SidebarEvents] = None

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE):
        self._queue_size = queue_size
        self._subscribers: list[asyncio.Queue] = []
        self._last_event: Optional[datetime] = None
        self._event_count = 0

    @classmethod
    def get_instance(cls) -> SidebarEvents:
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def subscribe(self) -> AsyncGenerator[dict, None]:
        """Subscribe to sidebar events.

        Yields:
            Event dictionaries with type, timestamp, and event data.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.append(queue)

        try:
            yield {
                "type": "heartbeat",
                "timestamp": datetime.now().isoformat(),
            }

            while True:
                event = await queue.get()
                yield event

        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

    async def publish(self, event_type: str, **data: Any) -> dict:
        """Send an event to all subscribers and return it."""

        self._last_event = datetime.now()
        self._event_count += 1

        event = {
            "type": event_type,
            "timestamp": self._last_event.isoformat(),
            "count": self._event_count,
            **data,
        }

        logger.info(f"Publishing {event_type} (#{self._event_count})")

        stalled = []
        for queue in self._subscribers:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                stalled.append(queue)

        if stalled:
            logger.warning(f"Dropping {len(stalled)} subscriber(s) that stopped reading")
            self._subscribers = [queue for queue in self._subscribers if queue not in stalled]

        return event

    def get_stats(self) -> dict:
        """Get coordinator statistics."""
        return {
            "subscribers": len(self._subscribers),
            "last_event": self._last_event.isoformat() if self._last_event else None,
            "event_count": self._event_count,
        }
