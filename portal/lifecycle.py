from __future__ import annotations

import asyncio
from typing import Callable, Optional

from vault import ChatGate, Config, ToolGate
from vault.shared.gate import GateLogger
from vault.StorageGate import StorageGate

from portal.services.events import EventBus, build_backup_bridge

# Lifecycle logger
_log = GateLogger.get("Lifecycle")

_backup_bridge: Optional[Callable] = None

MIN_SECRET_LENGTH = 16


def check_config() -> None:
    """
    Log configuration problems and refuse to serve without a signing secret.

    Raises:
        RuntimeError: if JWT_SECRET is unset or shorter than MIN_SECRET_LENGTH
    """
    _, errors = Config.validate()
    for error in errors:
        _log.warning(f"Config: {error}")

    secret = Config.get("JWT_SECRET") or ""
    if len(secret) < MIN_SECRET_LENGTH:
        _log.error("JWT_SECRET is not configured - refusing to start")
        raise RuntimeError(f"JWT_SECRET must be set to at least {MIN_SECRET_LENGTH} characters")


async def startup(emit_event, event_bus: EventBus):
    """Initialize subsystems on server startup."""
    global _backup_bridge

    GateLogger.set_level(Config.get("LOG_LEVEL", "INFO"))
    check_config()

    # Tests and embedders may initialize storage with their own roots first
    if not StorageGate.is_initialized():
        if not StorageGate.initialize():
            _log.error("StorageGate failed to initialize - file routes will error")

    ToolGate.initialize()

    if StorageGate.is_initialized():
        _backup_bridge = build_backup_bridge(event_bus, asyncio.get_running_loop())
        StorageGate.get_backup_manager().add_listener(_backup_bridge)

    await emit_event("system", "Vault portal started")
    _log.info("Portal startup complete")


async def shutdown():
    """Cleanup on server shutdown."""
    global _backup_bridge

    if _backup_bridge is not None:
        try:
            StorageGate.get_backup_manager().remove_listener(_backup_bridge)
        except RuntimeError as e:
            _log.error(f"Backup listener detach failed: {e}")
        _backup_bridge = None

    open_sessions = ChatGate.get_store().count()
    ChatGate.get_store().clear()
    _log.info(f"Portal shut down ({open_sessions} chat sessions dropped)")


__all__ = ["startup", "shutdown", "check_config", "MIN_SECRET_LENGTH"]
