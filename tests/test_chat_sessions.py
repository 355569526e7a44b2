"""
Tests for ChatGate connection-scoped sessions.
"""

import json
from unittest.mock import AsyncMock

import pytest

from vault import ChatGate
from vault.ToolGate import create_agent_loop


class TestSessionStore:
    """Tests for session bookkeeping."""

    def test_open_and_close(self, alice):
        session = ChatGate.open_session("conn-1", alice)

        assert ChatGate.get_session("conn-1") is session
        assert ChatGate.get_store().count() == 1

        assert ChatGate.close_session("conn-1") is True
        assert ChatGate.get_session("conn-1") is None
        assert ChatGate.get_store().count() == 0

    def test_close_unknown(self):
        assert ChatGate.close_session("never-opened") is False

    def test_sessions_are_independent(self, alice, bob):
        first = ChatGate.open_session("a", alice)
        second = ChatGate.open_session("b", bob)
        first.add("user", "hello")

        assert second.history == []
        assert second.identity.username == "BOB"

    def test_reopen_replaces(self, alice):
        old = ChatGate.open_session("conn", alice)
        old.add("user", "stale")
        new = ChatGate.open_session("conn", alice)

        assert new is not old
        assert new.history == []

    def test_history_is_bounded(self, alice):
        session = ChatGate.open_session("conn", alice, history_limit=4)
        for i in range(10):
            session.add("user", f"m{i}")

        assert [m["content"] for m in session.history] == ["m6", "m7", "m8", "m9"]

    def test_to_dict(self, alice):
        session = ChatGate.open_session("conn", alice)
        session.add("user", "x")
        data = session.to_dict()

        assert data["session_id"] == "conn"
        assert data["username"] == "ALICE"
        assert data["messages"] == 1


class TestProcessMessage:
    """Tests for message handling within a session."""

    @pytest.mark.asyncio
    async def test_history_recorded_and_replayed(self, storage, alice):
        reasoner = AsyncMock(side_effect=[
            json.dumps({"type": "final", "message": "first answer"}),
            json.dumps({"type": "final", "message": "second answer"}),
        ])
        loop = create_agent_loop(reasoner=reasoner, max_iterations=3)
        session = ChatGate.open_session("conn", alice)

        reply = await ChatGate.process_message(session, "first question", loop=loop)
        assert reply.response == "first answer"

        await ChatGate.process_message(session, "second question", loop=loop)

        assert [m["content"] for m in session.history] == [
            "first question", "first answer", "second question", "second answer",
        ]
        replayed = reasoner.await_args_list[1].args[0]
        assert [m["content"] for m in replayed[1:]] == ["first question", "first answer", "second question"]

    @pytest.mark.asyncio
    async def test_closed_session_history_is_gone(self, storage, alice):
        reasoner = AsyncMock(return_value=json.dumps({"type": "final", "message": "ok"}))
        loop = create_agent_loop(reasoner=reasoner, max_iterations=3)

        session = ChatGate.open_session("conn", alice)
        await ChatGate.process_message(session, "remember me", loop=loop)
        ChatGate.close_session("conn")

        fresh = ChatGate.open_session("conn", alice)
        await ChatGate.process_message(fresh, "anything?", loop=loop)

        last_call = reasoner.await_args_list[-1].args[0]
        assert all(m["content"] != "remember me" for m in last_call)

    def test_health(self):
        assert ChatGate.get_health_status()["healthy"] is True
