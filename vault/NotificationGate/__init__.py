"""
NotificationGate - Outbound notifications for Vault.

Email delivery is mocked: messages are logged and kept in a short
in-memory outbox so callers (and tests) can inspect what was sent.
"""

import time
from collections import deque
from typing import Any, Deque, Dict, List

from vault.shared.gate import GateLogger, build_health_status

_log = GateLogger.get("NotificationGate")

OUTBOX_SIZE = 50

_outbox: Deque[Dict[str, Any]] = deque(maxlen=OUTBOX_SIZE)


def send_email(recipient: str, subject: str, body: str) -> bool:
    """
    Deliver an email (mocked).

    Returns:
        True once the message is accepted
    """
    if not recipient:
        raise ValueError("Email recipient is required")

    _outbox.append({
        "recipient": recipient,
        "subject": subject,
        "body": body,
        "sent_at": time.time(),
    })
    _log.info(f"Email to {recipient}: {subject}")
    return True


def get_outbox() -> List[Dict[str, Any]]:
    return list(_outbox)


def clear_outbox() -> None:
    _outbox.clear()


def get_health_status() -> Dict[str, Any]:
    return build_health_status(
        gate_name="NotificationGate",
        initialized=True,
        dependencies=[],
        checks={},
        details={"transport": "mock", "queued": len(_outbox)},
    )


__all__ = ["send_email", "get_outbox", "clear_outbox", "get_health_status"]
