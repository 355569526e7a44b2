"""
Vault portal application.

Builds the FastAPI app: session middleware, the vault routers, the SSE
event bus and the storage error mapping.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vault import ChatGate
from vault.shared.errors import StorageError
from vault.shared.gate import GateLogger
from vault.StorageGate import StorageGate
from vault.ToolGate import create_agent_loop

from portal import lifecycle
from portal.api import admin, auth, chat, events, files, health
from portal.middleware.auth import AuthMiddleware
from portal.services.events import EventBus, build_emitter

_log = GateLogger.get("Portal")

# StorageError.code -> HTTP status
ERROR_STATUS = {
    "access_denied": 403,
    "not_found": 404,
    "conflict": 409,
    "unsupported_type": 415,
    "internal": 500,
}

origins = [
    "http://localhost:3000",
    "http://localhost:5173",
]


def create_app(reasoner=None, event_bus: Optional[EventBus] = None) -> FastAPI:
    """
    Create the portal application.

    Args:
        reasoner: Async callable used by the assistant loop
            (default: the configured LLM endpoint)
        event_bus: Bus for SSE events (default: a fresh one)
    """
    event_bus = event_bus or EventBus()
    emit_event = build_emitter(event_bus)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await lifecycle.startup(emit_event, event_bus)
        yield
        await lifecycle.shutdown()

    app = FastAPI(title="Vault", lifespan=lifespan)
    app.state.event_bus = event_bus

    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        status = ERROR_STATUS.get(exc.code, 500)
        if status >= 500:
            _log.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status, content=exc.to_dict())

    def loop_factory():
        return create_agent_loop(reasoner=reasoner, emit_event=emit_event)

    app.include_router(health.create_router())
    app.include_router(auth.create_router(StorageGate, emit_event))
    app.include_router(files.create_router(StorageGate, emit_event))
    app.include_router(admin.create_router(StorageGate))
    app.include_router(chat.create_router(ChatGate, loop_factory, emit_event))
    app.include_router(events.create_router(event_bus, StorageGate))

    return app


__all__ = ["create_app", "ERROR_STATUS"]
