"""
AuditGate - In-process record of security-relevant events.

Access denials and failed logins are appended to a bounded history that
the storage assistant reports as "suspicious activity".
"""

import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from vault.shared.gate import GateLogger, build_health_status

_log = GateLogger.get("AuditGate")

MAX_EVENTS = 500

ACCESS_DENIED = "access_denied"
LOGIN_FAILED = "login_failed"

SUSPICIOUS_KINDS = frozenset({ACCESS_DENIED, LOGIN_FAILED})

_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)
_lock = threading.Lock()


def record(kind: str, username: Optional[str], detail: str, **extra: Any) -> Dict[str, Any]:
    """Append an audit event."""
    event = {
        "kind": kind,
        "username": username,
        "detail": detail,
        "timestamp": time.time(),
        **extra,
    }
    with _lock:
        _events.append(event)
    _log.debug(f"{kind} ({username}): {detail}")
    return event


def get_suspicious_activity(limit: int = 50, username: Optional[str] = None) -> List[Dict[str, Any]]:
    """Most recent suspicious events, oldest first; only ``username``'s when given."""
    with _lock:
        matches = [
            e for e in _events
            if e["kind"] in SUSPICIOUS_KINDS and (username is None or e["username"] == username)
        ]
    if limit <= 0:
        return []
    return matches[-limit:]


def get_recent(limit: int = 50) -> List[Dict[str, Any]]:
    """Most recent events of any kind."""
    with _lock:
        return list(_events)[-limit:] if limit > 0 else []


def clear() -> None:
    with _lock:
        _events.clear()


def get_health_status() -> Dict[str, Any]:
    with _lock:
        count = len(_events)
    return build_health_status(
        gate_name="AuditGate",
        initialized=True,
        dependencies=[],
        checks={},
        details={"events": count, "capacity": MAX_EVENTS},
    )


__all__ = [
    "ACCESS_DENIED",
    "LOGIN_FAILED",
    "record",
    "get_suspicious_activity",
    "get_recent",
    "clear",
    "get_health_status",
]
