"""In-process async event bus for sanction lifecycle events.

The lifecycle publishes ``sanction.*`` events; the SSE endpoint and the
default enactment path subscribe. Delivery is best effort: a full subscriber
queue drops the event for that subscriber only.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from sanctions.models.sanction import SanctionEventType

logger = logging.getLogger(__name__)

Envelope = dict[str, Any]


class EventBus:
    """Fan-out of lifecycle events to per-subscriber queues."""

    def __init__(self) -> None:
        self._queues: list[tuple[str | None, asyncio.Queue[Envelope]]] = []

    async def publish(self, event_type: SanctionEventType, data: dict[str, Any]) -> int:
        """Deliver to every matching subscriber; returns how many received it."""
        envelope: Envelope = {"type": event_type, "data": data}
        delivered = 0
        for wanted, queue in list(self._queues):
            if wanted is not None and wanted != event_type:
                continue
            try:
                queue.put_nowait(envelope)
            except asyncio.QueueFull:
                logger.warning("event_dropped type=%s reason=slow_subscriber", event_type)
                continue
            delivered += 1
        return delivered

    def subscribe(self, event_type: str | None = None, max_size: int = 100) -> Subscription:
        """Subscribe to one event type, or to everything when *event_type* is None.

        Use the returned Subscription as an async context manager.
        """
        return Subscription(self, asyncio.Queue(maxsize=max_size), event_type)

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def _attach(self, event_type: str | None, queue: asyncio.Queue[Envelope]) -> None:
        self._queues.append((event_type, queue))

    def _detach(self, event_type: str | None, queue: asyncio.Queue[Envelope]) -> None:
        with contextlib.suppress(ValueError):
            self._queues.remove((event_type, queue))


class Subscription:
    """A live subscription; attached on enter, detached on exit."""

    def __init__(
        self,
        bus: EventBus,
        queue: asyncio.Queue[Envelope],
        event_type: str | None,
    ) -> None:
        self._bus = bus
        self._queue = queue
        self._event_type = event_type

    async def __aenter__(self) -> Subscription:
        self._bus._attach(self._event_type, self._queue)
        return self

    async def __aexit__(self, *args: object) -> None:
        self._bus._detach(self._event_type, self._queue)

    async def get(self, timeout: float | None = None) -> Envelope | None:
        """Next event, or None if nothing arrives within *timeout* seconds."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except TimeoutError:
            return None
