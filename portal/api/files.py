from __future__ import annotations

import os
import shutil
import tempfile
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from vault import AuditGate
from vault.shared.errors import AccessDenied
from vault.StorageGate.models import Identity

from portal.auth import get_identity
from portal.services.events import file_event_scope

MAX_UPLOAD_FILES = 10


class MkdirRequest(BaseModel):
    """Model for creating a folder."""
    path: str = ""
    name: str


class RenameRequest(BaseModel):
    """Model for renaming an item."""
    path: str
    new_name: str


class MoveRequest(BaseModel):
    """Model for moving an item into another folder."""
    source: str
    destination: str = ""


def reject_parent_refs(identity: Identity, *paths: Optional[str]) -> None:
    """Refuse any path carrying a literal '..' segment before it reaches storage."""
    for path in paths:
        if not path:
            continue
        segments = path.replace("\\", "/").split("/")
        if ".." in segments:
            AuditGate.record(
                AuditGate.ACCESS_DENIED,
                identity.username,
                f"parent reference in {path!r}",
                role=identity.role.value,
            )
            raise AccessDenied("Parent directory references are not allowed")


def _join(folder: str, name: str) -> str:
    return f"{folder.rstrip('/')}/{name}" if folder else name


def parent_of(path: str) -> Optional[str]:
    """UI navigation target one level up; None at the root."""
    segments = [s for s in path.replace("\\", "/").split("/") if s]
    if not segments:
        return None
    return "/".join(segments[:-1])


def create_router(StorageGate, emit_event) -> APIRouter:
    router = APIRouter()

    @router.get("/api/files/list")
    async def api_list(
        path: str = "",
        sort: Literal["name", "date"] = "name",
        order: Literal["asc", "desc"] = "asc",
        identity: Identity = Depends(get_identity),
    ):
        """List a folder; a missing folder lists as empty."""
        reject_parent_refs(identity, path)
        entries = StorageGate.list_dir(identity, path, sort_by=sort, order=order)
        return {
            "success": True,
            "path": path,
            "parent_path": parent_of(path),
            "items": [e.to_dict() for e in entries],
        }

    @router.post("/api/files/mkdir")
    async def api_mkdir(data: MkdirRequest, identity: Identity = Depends(get_identity)):
        """Create a folder (idempotent)."""
        reject_parent_refs(identity, data.path, data.name)
        folder = StorageGate.create_folder(identity, data.path, data.name)
        await emit_event("files", f"Folder created: {folder}", operation="mkdir", **file_event_scope(identity, folder))
        return {"success": True, "path": folder}

    @router.post("/api/files/upload")
    async def api_upload(
        path: str = Form(""),
        files: List[UploadFile] = File(...),
        identity: Identity = Depends(get_identity),
    ):
        """Receive up to MAX_UPLOAD_FILES files into a folder."""
        reject_parent_refs(identity, path)
        if len(files) > MAX_UPLOAD_FILES:
            raise HTTPException(status_code=400, detail=f"At most {MAX_UPLOAD_FILES} files per upload")

        uploaded = []
        with tempfile.TemporaryDirectory(prefix="vault-upload-") as spool_dir:
            for upload in files:
                fd, temp_path = tempfile.mkstemp(dir=spool_dir)
                with os.fdopen(fd, "wb") as out:
                    shutil.copyfileobj(upload.file, out)
                await upload.close()

                final_name = StorageGate.upload(identity, path, upload.filename or "", temp_path)
                uploaded.append({"original_name": upload.filename, "name": final_name})

        await emit_event(
            "files",
            f"{len(uploaded)} file(s) uploaded",
            operation="upload",
            **file_event_scope(identity, path, *(_join(path, f["name"]) for f in uploaded)),
        )
        return {"success": True, "files": uploaded}

    @router.get("/api/files/download")
    async def api_download(path: str = Query(...), identity: Identity = Depends(get_identity)):
        """Stream a stored file."""
        reject_parent_refs(identity, path)
        target = StorageGate.download(identity, path)
        return FileResponse(target, filename=os.path.basename(target))

    @router.delete("/api/files/delete")
    async def api_delete(path: str = Query(...), identity: Identity = Depends(get_identity)):
        """Delete a file or folder recursively."""
        reject_parent_refs(identity, path)
        StorageGate.delete(identity, path)
        await emit_event("files", f"Deleted: {path}", operation="delete", **file_event_scope(identity, path))
        return {"success": True, "path": path}

    @router.post("/api/files/rename")
    async def api_rename(data: RenameRequest, identity: Identity = Depends(get_identity)):
        """Rename an item within its folder."""
        reject_parent_refs(identity, data.path, data.new_name)
        new_path = StorageGate.rename(identity, data.path, data.new_name)
        await emit_event(
            "files",
            f"Renamed: {data.path} -> {new_path}",
            operation="rename",
            **file_event_scope(identity, data.path, new_path),
        )
        return {"success": True, "path": new_path}

    @router.post("/api/files/move")
    async def api_move(data: MoveRequest, identity: Identity = Depends(get_identity)):
        """Move an item into another folder."""
        reject_parent_refs(identity, data.source, data.destination)
        new_path = StorageGate.move(identity, data.source, data.destination)
        await emit_event(
            "files",
            f"Moved: {data.source} -> {new_path}",
            operation="move",
            **file_event_scope(identity, data.source, new_path),
        )
        return {"success": True, "path": new_path}

    return router


__all__ = ["create_router", "reject_parent_refs", "parent_of"]
