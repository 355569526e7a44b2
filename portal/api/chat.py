from __future__ import annotations

import json
import uuid
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from vault.shared.gate import GateLogger
from vault.StorageGate.models import Identity

from portal.auth import decode_access_token, extract_token, get_identity

_log = GateLogger.get("Portal")


class ChatRequest(BaseModel):
    message: str


def _reply_payload(reply) -> dict:
    return {
        "type": "reply",
        "message": reply.response,
        "iterations": reply.iterations,
        "completed": reply.completed,
        "tools": [r.tool for r in reply.tool_results],
    }


def _read_message(raw: str) -> str:
    """Accept either a bare string or {"message": "..."}."""
    try:
        data = json.loads(raw)
    except ValueError:
        return raw.strip()
    if isinstance(data, dict):
        return str(data.get("message", "")).strip()
    return raw.strip()


def create_router(ChatGate, loop_factory: Callable, emit_event: Optional[Callable] = None) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws/chat")
    async def chat_socket(websocket: WebSocket):
        """
        Assistant conversation bound to one connection.

        Protocol:
        - Client sends text, either raw or {"message": "..."}
        - Server answers {"type": "reply", "message": ...} per message
        - The session and its history are dropped on disconnect
        """
        identity = decode_access_token(extract_token(websocket))
        if identity is None:
            await websocket.close(code=4401, reason="Not authenticated")
            return

        await websocket.accept()
        session_id = uuid.uuid4().hex
        session = ChatGate.open_session(session_id, identity)

        await websocket.send_json({"type": "connected", "session_id": session_id})

        try:
            while True:
                message = _read_message(await websocket.receive_text())
                if not message:
                    await websocket.send_json({"type": "error", "message": "Empty message"})
                    continue

                reply = await ChatGate.process_message(session, message, loop=loop_factory())
                await websocket.send_json(_reply_payload(reply))

        except WebSocketDisconnect:
            _log.debug(f"Chat connection {session_id} disconnected")

        finally:
            ChatGate.close_session(session_id)

    @router.post("/api/chat")
    async def api_chat(data: ChatRequest, identity: Identity = Depends(get_identity)):
        """One-shot question; the session lives only for this request."""
        message = data.message.strip()
        if not message:
            raise HTTPException(status_code=400, detail="Empty message")

        session_id = f"http-{uuid.uuid4().hex}"
        session = ChatGate.open_session(session_id, identity)
        try:
            reply = await ChatGate.process_message(session, message, loop=loop_factory())
        finally:
            ChatGate.close_session(session_id)

        if emit_event:
            await emit_event(
                "chat",
                f"Assistant answered {identity.username}",
                user=identity.username,
                iterations=reply.iterations,
            )

        return {"success": True, **_reply_payload(reply)}

    return router


__all__ = ["create_router", "ChatRequest"]
