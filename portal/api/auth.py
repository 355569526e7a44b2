from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from vault import AuditGate, Config
from vault.StorageGate.models import Identity, Role

from portal.auth import COOKIE_NAME, authenticate, create_access_token, get_identity


class LoginRequest(BaseModel):
    username: str
    password: str


def create_router(StorageGate, emit_event) -> APIRouter:
    router = APIRouter()

    @router.post("/auth/login")
    async def login(data: LoginRequest, response: Response):
        """Verify credentials and set the session cookie."""
        account = authenticate(data.username, data.password)
        if account is None:
            AuditGate.record(AuditGate.LOGIN_FAILED, data.username, "invalid credentials")
            raise HTTPException(status_code=401, detail="Invalid username or password")

        identity = Identity(username=account.username, role=account.role)
        if identity.role != Role.GUEST:
            StorageGate.ensure_user_home(identity.username)

        token = create_access_token(identity)
        response.set_cookie(
            COOKIE_NAME,
            token,
            httponly=True,
            samesite="lax",
            max_age=Config.get("JWT_EXPIRE_MINUTES", 720) * 60,
        )

        await emit_event("auth", f"{identity.username} logged in", user=identity.username)
        return {"success": True, "user": account.public_dict(), "token": token}

    @router.post("/auth/logout")
    async def logout(response: Response):
        """Clear the session cookie."""
        response.delete_cookie(COOKIE_NAME)
        return {"success": True}

    @router.get("/api/auth/me")
    async def me(identity: Identity = Depends(get_identity)):
        """Current session identity."""
        return {"username": identity.username, "role": identity.role.value}

    return router


__all__ = ["create_router", "LoginRequest"]
