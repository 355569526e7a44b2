"""
ToolGate handlers.

One function per registered tool. Each receives the caller's identity
first; errors propagate to the orchestrator, which reports them as failed
tool results.
"""

from __future__ import annotations

from typing import Any, Dict, List

from vault import AuditGate, DocumentGate, LLMGate
from vault.StorageGate import StorageGate
from vault.StorageGate.models import Identity, Role
from vault.StorageGate.security import can_access
from vault.StorageGate.usage import get_recent_files as scan_recent_files


def get_disk_usage(identity: Identity) -> Dict[str, int]:
    return StorageGate.get_disk_usage()


def get_recent_files(identity: Identity, days: float = 7) -> List[Dict[str, Any]]:
    """Recent files the caller could open."""
    settings = StorageGate.get_settings()

    if identity.role == Role.GUEST:
        files = scan_recent_files(settings.public_root, days)
    else:
        files = [
            f for f in StorageGate.get_recent_files(days)
            if can_access(identity, f.path, settings)
        ]

    return [f.to_dict() for f in files]


def create_incremental_backup(identity: Identity) -> Dict[str, Any]:
    started = StorageGate.create_backup(incremental=True)
    if started:
        return {"started": True, "message": "Incremental backup started"}
    return {"started": False, "message": "A backup is already in progress"}


def get_suspicious_activity(identity: Identity, limit: int = 20) -> List[Dict[str, Any]]:
    """Administrators see every event; anyone else only their own."""
    if identity.is_admin:
        return AuditGate.get_suspicious_activity(limit)
    return AuditGate.get_suspicious_activity(limit, username=identity.username)


def list_documents_by_name(identity: Identity, name: str) -> List[str]:
    return StorageGate.find_documents(identity, name)


async def summarize_document(identity: Identity, file_path: str) -> Dict[str, Any]:
    """Extract a document's text and ask the reasoning service for a summary."""
    path = StorageGate.resolve(identity, file_path, "summarize")
    text = DocumentGate.extract_text(path)
    summary = await LLMGate.summarize_text(text)
    return {"file_path": file_path, "summary": summary}
