"""
ChatGate - Connection-scoped assistant conversations.

Each transport connection opens exactly one ChatSession, holds it for its
lifetime and closes it on disconnect. Sessions keep a bounded history that
is replayed to the reasoner on every message.

Usage:
    from vault import ChatGate

    session = ChatGate.open_session(connection_id, identity)
    try:
        reply = await ChatGate.process_message(session, "What changed this week?")
    finally:
        ChatGate.close_session(connection_id)
"""

import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from vault import Config
from vault.shared.gate import GateLogger, build_health_status
from vault.StorageGate.models import Identity
from vault.ToolGate import AgentLoop, AgentReply, create_agent_loop

_log = GateLogger.get("ChatGate")


class ChatSession:
    """Conversation state for one connection."""

    def __init__(self, session_id: str, identity: Identity, history_limit: int = 20):
        self.session_id = session_id
        self.identity = identity
        self.history_limit = history_limit
        self.created_at = time.time()
        self.last_active = self.created_at
        self._history: Deque[Dict[str, str]] = deque(maxlen=max(history_limit, 0))

    def add(self, role: str, content: str) -> None:
        self._history.append({"role": role, "content": content})
        self.last_active = time.time()

    @property
    def history(self) -> List[Dict[str, str]]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "username": self.identity.username,
            "messages": len(self._history),
            "created_at": self.created_at,
            "last_active": self.last_active,
        }


class SessionStore:
    """Live sessions keyed by connection id."""

    def __init__(self):
        self._sessions: Dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def open(self, session_id: str, identity: Identity, history_limit: Optional[int] = None) -> ChatSession:
        """Create a session; an existing session under the same id is replaced."""
        limit = history_limit if history_limit is not None else Config.get("CHAT_HISTORY_LIMIT", 20)
        session = ChatSession(session_id, identity, limit)
        with self._lock:
            self._sessions[session_id] = session
        _log.debug(f"Opened chat session {session_id} for {identity.username}")
        return session

    def get(self, session_id: str) -> Optional[ChatSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        """Evict a session. Returns False if it was not open."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session:
            _log.debug(f"Closed chat session {session_id}")
        return session is not None

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


_store = SessionStore()


def get_store() -> SessionStore:
    return _store


def open_session(session_id: str, identity: Identity, history_limit: Optional[int] = None) -> ChatSession:
    return _store.open(session_id, identity, history_limit)


def get_session(session_id: str) -> Optional[ChatSession]:
    return _store.get(session_id)


def close_session(session_id: str) -> bool:
    return _store.close(session_id)


async def process_message(
    session: ChatSession,
    message: str,
    loop: Optional[AgentLoop] = None,
) -> AgentReply:
    """
    Answer one user message within a session.

    The exchange is appended to the session history once the loop returns.
    """
    loop = loop or create_agent_loop()
    _log.info(f"Message from {session.identity.username} in {session.session_id}")

    reply = await loop.run(message, session.identity, session.history)

    session.add("user", message)
    session.add("assistant", reply.response)
    return reply


def get_health_status() -> Dict[str, Any]:
    return build_health_status(
        gate_name="ChatGate",
        initialized=True,
        dependencies=["ToolGate"],
        checks={},
        details={"active_sessions": _store.count()},
    )


__all__ = [
    "ChatSession",
    "SessionStore",
    "get_store",
    "open_session",
    "get_session",
    "close_session",
    "process_message",
    "get_health_status",
]
