"""
In-memory booking event fan-out.

An ``EventBus`` instance is created per application and handed to the
services that publish. Subscribers receive events through bounded anyio
memory streams.

Delivery semantics:
- Fire-and-forget, at-most-once, nothing is persisted
- A full subscriber buffer drops the event for that subscriber only
- Subscribers whose stream was closed are forgotten on the next publish
"""

from typing import Any

import structlog
from anyio import BrokenResourceError, ClosedResourceError, WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

BOOKING_CREATED = "booking-created"
BOOKING_CANCELLED = "booking-cancelled"

logger = structlog.get_logger(__name__)

_Subscriber = tuple[MemoryObjectSendStream[dict[str, Any]], MemoryObjectReceiveStream[dict[str, Any]]]


class EventBus:
    """Publish/subscribe channel keyed by event name."""

    def __init__(self, buffer_size: int = 10):
        self._buffer_size = buffer_size
        self._subscribers: dict[str, list[_Subscriber]] = {}

    def subscribe(self, event_name: str) -> MemoryObjectReceiveStream[dict[str, Any]]:
        """
        Register a new subscriber for an event name.

        Args:
            event_name: Event to listen for, e.g. ``booking-created``

        Returns:
            Receive stream yielding event payloads
        """
        send_stream, receive_stream = create_memory_object_stream[dict[str, Any]](
            max_buffer_size=self._buffer_size
        )
        self._subscribers.setdefault(event_name, []).append((send_stream, receive_stream))

        logger.debug(
            "event_subscriber_added",
            event_name=event_name,
            subscribers=len(self._subscribers[event_name]),
        )
        return receive_stream

    def publish(self, event_name: str, payload: dict[str, Any]) -> int:
        """
        Deliver a payload to every current subscriber of ``event_name``.

        Never blocks and never raises for subscriber problems.

        Returns:
            Number of subscribers the payload was handed to
        """
        subscribers = self._subscribers.get(event_name)
        if not subscribers:
            return 0

        delivered = 0
        dropped = 0
        for subscriber in list(subscribers):
            send_stream, _ = subscriber
            try:
                send_stream.send_nowait(payload)
                delivered += 1
            except WouldBlock:
                dropped += 1
            except (BrokenResourceError, ClosedResourceError):
                # Receiver went away; no redelivery
                subscribers.remove(subscriber)
                send_stream.close()

        if not subscribers:
            del self._subscribers[event_name]

        logger.info(
            "event_published",
            event_name=event_name,
            delivered=delivered,
            dropped=dropped,
        )
        return delivered

    async def unsubscribe(
        self, event_name: str, stream: MemoryObjectReceiveStream[dict[str, Any]]
    ) -> None:
        """Remove a subscriber and close its streams. Unknown streams are ignored."""
        subscribers = self._subscribers.get(event_name, [])
        for subscriber in subscribers:
            send_stream, receive_stream = subscriber
            if receive_stream is stream:
                await send_stream.aclose()
                await receive_stream.aclose()
                subscribers.remove(subscriber)
                break

        if event_name in self._subscribers and not self._subscribers[event_name]:
            del self._subscribers[event_name]

    def subscriber_count(self, event_name: str | None = None) -> int:
        """Count subscribers for one event name, or across all of them."""
        if event_name is not None:
            return len(self._subscribers.get(event_name, []))
        return sum(len(subscribers) for subscribers in self._subscribers.values())

    async def close(self) -> None:
        """Close every subscriber stream."""
        for subscribers in self._subscribers.values():
            for send_stream, receive_stream in subscribers:
                await send_stream.aclose()
                await receive_stream.aclose()
        self._subscribers.clear()
