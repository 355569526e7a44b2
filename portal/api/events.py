from __future__ import annotations

import asyncio
import json
import time
from typing import Optional

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from vault.StorageGate.models import Identity

from portal.auth import get_identity
from portal.services.events import is_visible

KEEPALIVE_SECONDS = 30.0


def create_router(event_bus, StorageGate) -> APIRouter:
    router = APIRouter()

    def visible_to(identity: Identity):
        settings = StorageGate.get_settings() if StorageGate.is_initialized() else None
        return lambda event: is_visible(event, identity, settings)

    @router.get("/api/events")
    async def api_events(identity: Identity = Depends(get_identity)):
        """SSE endpoint for file and backup events the caller may see."""
        visible = visible_to(identity)

        async def generate():
            queue = await event_bus.subscribe()
            try:
                yield {
                    "event": "system",
                    "data": json.dumps({"message": "Connected to event stream", "user": identity.username}),
                }

                while True:
                    try:
                        event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                        if not visible(event):
                            continue
                        yield {
                            "event": event["type"],
                            "data": json.dumps(event["data"], default=str),
                        }
                    except asyncio.TimeoutError:
                        yield {"event": "ping", "data": "{}"}

            except asyncio.CancelledError:
                pass
            finally:
                await event_bus.unsubscribe(queue)

        return EventSourceResponse(generate())

    @router.get("/api/events/recent")
    async def api_recent_events(
        count: int = 20,
        type: Optional[str] = None,
        identity: Identity = Depends(get_identity),
    ):
        """Recent events for clients that poll instead of streaming."""
        events = event_bus.get_recent(count, event_type=type, visible=visible_to(identity))
        return {"events": events, "timestamp": time.time()}

    return router


__all__ = ["create_router"]
