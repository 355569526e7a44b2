from __future__ import annotations

import os

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, JSONResponse

from vault.StorageGate.models import Identity

from portal.auth import require_admin


def create_router(StorageGate) -> APIRouter:
    router = APIRouter()

    @router.get("/api/admin/stats")
    async def api_stats(identity: Identity = Depends(require_admin)):
        """Global usage with quota figures."""
        return {"success": True, "stats": StorageGate.get_dashboard_stats()}

    @router.post("/api/admin/backup")
    async def api_start_backup(incremental: bool = False, identity: Identity = Depends(require_admin)):
        """Start a backup; 409 while another is running."""
        started = StorageGate.create_backup(incremental=incremental)
        kind = "incremental" if incremental else "full"

        if not started:
            return JSONResponse(
                status_code=409,
                content={"success": False, "started": False, "detail": "A backup is already in progress"},
            )

        return JSONResponse(
            status_code=202,
            content={"success": True, "started": True, "kind": kind},
        )

    @router.get("/api/admin/backup")
    async def api_backup_status(identity: Identity = Depends(require_admin)):
        """Current backup state."""
        return {"success": True, **StorageGate.get_backup_status()}

    @router.get("/api/admin/backup/latest")
    async def api_latest_backup(identity: Identity = Depends(require_admin)):
        """Download the newest archive."""
        latest = StorageGate.get_latest_backup_path()
        if not latest:
            raise HTTPException(status_code=404, detail="No backups available")
        return FileResponse(latest, filename=os.path.basename(latest), media_type="application/zip")

    return router


__all__ = ["create_router"]
