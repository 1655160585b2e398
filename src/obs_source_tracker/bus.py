"""Event Bus - fan-out of tracker notifications.

The tracker publishes from inside its own turn, so `publish` never awaits:
each subscriber owns a bounded queue and a slow subscriber only loses its
own oldest events.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_QUEUE_SIZE = 100


@dataclass
class EventDefinition(Generic[T]):
    """Typed event definition.

    Usage:
        SourceUpdated = Bus.define("source.updated", SourceUpdatedProps)
        bus.publish(SourceUpdated, SourceUpdatedProps(...))
    """

    type: str
    schema: type[T]


class Bus:
    """In-process pub/sub with per-subscriber bounded queues."""

    def __init__(self, max_queue_size: int = DEFAULT_QUEUE_SIZE):
        self.max_queue_size = max_queue_size
        self._subscribers: list[asyncio.Queue[dict[str, Any]]] = []

    @staticmethod
    def define(event_type: str, schema: type[T]) -> EventDefinition[T]:
        """Define a typed event.

        Args:
            event_type: Dot-separated event name (e.g., "source.updated")
            schema: Pydantic model for event properties
        """
        return EventDefinition(type=event_type, schema=schema)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event_def: EventDefinition[T], properties: T) -> None:
        """Deliver an event to every subscriber without blocking.

        Args:
            event_def: The event definition (created via Bus.define)
            properties: Event properties (must match the schema)
        """
        payload = {"type": event_def.type, "properties": properties.model_dump(mode="json")}

        for queue in list(self._subscribers):
            if queue.full():
                # Drop the oldest event for this subscriber only
                queue.get_nowait()
                logger.debug(f"Subscriber queue full, dropped oldest event before {event_def.type}")
            queue.put_nowait(payload)

    def subscribe(self) -> asyncio.Queue[dict[str, Any]]:
        """Register a subscriber queue. Pair with unsubscribe()."""
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[dict[str, Any]]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def stream(self) -> AsyncIterator[dict[str, Any]]:
        """Yield every published event until the consumer stops iterating.

        Usage:
            async for event in bus.stream():
                yield f"data: {json.dumps(event)}\\n\\n"
        """
        queue = self.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)

    def reset(self) -> None:
        """Drop all subscribers (for testing)."""
        self._subscribers = []
