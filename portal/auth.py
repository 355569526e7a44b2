"""
Session tokens for the portal.

HS256 JWTs carrying the username and role, delivered as an httpOnly
cookie or a Bearer header.
"""

from __future__ import annotations

import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, WebSocket
from jose import JWTError, jwt

from vault import Config
from vault.shared.gate import GateLogger
from vault.StorageGate import StorageGate
from vault.StorageGate.models import Identity, Role, UserAccount

_log = GateLogger.get("Portal")

ALGORITHM = "HS256"
COOKIE_NAME = "jwt"


def _secret() -> str:
    secret = Config.get("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET is not configured")
    return secret


def create_access_token(identity: Identity, expires_minutes: Optional[int] = None) -> str:
    """Issue a signed token for an authenticated identity."""
    minutes = expires_minutes or Config.get("JWT_EXPIRE_MINUTES", 720)
    payload = {
        "sub": identity.username,
        "role": identity.role.value,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, _secret(), algorithm=ALGORITHM)


def decode_access_token(token: Optional[str]) -> Optional[Identity]:
    """Verify a token; None if it is missing, expired or forged."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, _secret(), algorithms=[ALGORITHM])
        username = payload.get("sub")
        if not username:
            return None
        return Identity(username=username, role=Role.parse(payload.get("role", "user")))
    except (JWTError, ValueError) as e:
        _log.debug(f"Rejected token: {e}")
        return None


def authenticate(username: str, password: str) -> Optional[UserAccount]:
    """Check credentials against the configured accounts."""
    account = StorageGate.get_account(username)
    if account is None:
        # Usernames are conventionally upper-case
        account = StorageGate.get_account((username or "").upper())

    if account is None or not account.password:
        return None

    if not hmac.compare_digest(account.password.encode(), (password or "").encode()):
        return None

    return account


def extract_token(connection: Request | WebSocket) -> Optional[str]:
    """Token from the session cookie, a Bearer header, or a ``token`` query param."""
    token = connection.cookies.get(COOKIE_NAME)
    if token:
        return token

    header = connection.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()

    return connection.query_params.get("token")


def get_identity(request: Request) -> Identity:
    """Dependency: identity placed on the request by AuthMiddleware."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        identity = decode_access_token(extract_token(request))
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return identity


def require_admin(request: Request) -> Identity:
    """Dependency: administrator only."""
    identity = get_identity(request)
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Administrator access required")
    return identity


__all__ = [
    "ALGORITHM",
    "COOKIE_NAME",
    "create_access_token",
    "decode_access_token",
    "authenticate",
    "extract_token",
    "get_identity",
    "require_admin",
]
