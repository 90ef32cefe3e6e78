"""SSE stream of sanction lifecycle events, for enactment workers and dashboards."""

from __future__ import annotations

import json
import logging
from typing import get_args

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from sanctions.core.event_bus import EventBus
from sanctions.models.sanction import SanctionEventType

router = APIRouter(prefix="/api/sanctions/events", tags=["events"])
logger = logging.getLogger(__name__)

_HEARTBEAT_INTERVAL = 15  # seconds

ALLOWED_EVENT_TYPES: frozenset[str] = frozenset(get_args(SanctionEventType))


def _get_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


@router.get("/stream")
async def sse_stream(request: Request, event_type: str | None = None) -> StreamingResponse:
    """Server-Sent Events stream, optionally filtered to one event type.

    Errors:
        400: unknown event_type value
    """
    if event_type is not None and event_type not in ALLOWED_EVENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown event_type {event_type!r}. Valid values: {sorted(ALLOWED_EVENT_TYPES)}",
        )

    bus = _get_bus(request)

    async def generate():
        yield ": connected\n\n"
        async with bus.subscribe(event_type) as sub:
            while not await request.is_disconnected():
                event = await sub.get(timeout=_HEARTBEAT_INTERVAL)
                if event is None:
                    yield ": heartbeat\n\n"
                    continue
                yield f"event: {event['type']}\ndata: {json.dumps(event, default=str)}\n\n"

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/health")
async def events_health(request: Request) -> dict:
    return {"status": "ok", "subscribers": _get_bus(request).subscriber_count}
