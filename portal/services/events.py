from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Set

from vault.StorageGate.models import Identity, Role, StorageSettings
from vault.StorageGate.security import can_access


class EventBus:
    """Pub/sub bus for file and backup events, fanned out to SSE clients."""

    def __init__(self, max_history: int = 100, queue_size: int = 256):
        self._queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()
        self._history: Deque[dict] = deque(maxlen=max_history)
        self._lock = asyncio.Lock()

    async def subscribe(self) -> asyncio.Queue:
        """Subscribe to events, returns a queue for receiving."""
        queue = asyncio.Queue(maxsize=self._queue_size)
        async with self._lock:
            self._subscribers.add(queue)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Unsubscribe from events."""
        async with self._lock:
            self._subscribers.discard(queue)

    async def publish(self, event_type: str, data: dict) -> None:
        """Publish an event to all subscribers."""
        event = {
            "type": event_type,
            "data": data,
            "timestamp": time.time(),
        }
        self._history.append(event)

        async with self._lock:
            for queue in self._subscribers:
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    pass  # Slow subscriber; drop

    def get_recent(
        self,
        count: int = 20,
        event_type: Optional[str] = None,
        visible: Optional[Callable[[dict], bool]] = None,
    ) -> list:
        """Get recent events from history, optionally of one type and filtered per caller."""
        events = [
            e for e in self._history
            if (event_type is None or e["type"] == event_type) and (visible is None or visible(e))
        ]
        return events[-count:] if count > 0 else []

    def subscriber_count(self) -> int:
        return len(self._subscribers)


BACKUP_EVENTS = frozenset({"backup_started", "backup_completed", "backup_failed"})


def storage_area(identity: Identity) -> str:
    """Which root an identity's relative paths are measured from."""
    return "public" if identity.role == Role.GUEST else "users"


def file_event_scope(identity: Identity, *paths: str) -> Dict[str, Any]:
    """Event fields that tie a file event to the paths it touched."""
    return {
        "user": identity.username,
        "area": storage_area(identity),
        "paths": list(paths),
    }


def is_visible(event: dict, identity: Identity, settings: Optional[StorageSettings]) -> bool:
    """
    Whether a subscriber may see an event.

    File events are shown only when every touched path passes the same
    ownership check a listing would apply; other per-user events only to
    their actor. Backup events are for administrators.
    """
    if identity.is_admin:
        return True

    event_type = event.get("type")
    if event_type == "system":
        return True
    if event_type in BACKUP_EVENTS:
        return False

    data = event.get("data", {})
    paths = data.get("paths")
    if paths is not None:
        if settings is None or data.get("area") != storage_area(identity):
            return False
        return all(can_access(identity, p, settings) for p in paths)

    return data.get("user") == identity.username


def build_emitter(event_bus: EventBus) -> Callable[..., Awaitable[None]]:
    async def emit_event(event_type: str, message: str, **kwargs) -> None:
        data = {"message": message, **kwargs}
        await event_bus.publish(event_type, data)

    return emit_event


def build_backup_bridge(
    event_bus: EventBus,
    loop: asyncio.AbstractEventLoop,
) -> Callable[[Dict[str, Any]], None]:
    """
    Forward backup lifecycle events, raised on the backup thread, onto the bus.
    """
    def on_backup_event(payload: Dict[str, Any]) -> None:
        if loop.is_closed():
            return
        data = {k: v for k, v in payload.items() if k != "event"}
        asyncio.run_coroutine_threadsafe(
            event_bus.publish(payload.get("event", "backup"), data), loop
        )

    return on_backup_event


__all__ = [
    "EventBus",
    "BACKUP_EVENTS",
    "storage_area",
    "file_event_scope",
    "is_visible",
    "build_emitter",
    "build_backup_bridge",
]
