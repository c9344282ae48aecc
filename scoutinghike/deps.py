from __future__ import annotations

import time
import uuid
from typing import Any, Dict, AsyncGenerator

import httpx
import jwt
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .core.session import SessionStore, VolunteerSession, get_session_store
from .db import get_session
from .models import Volunteer, utcnow

settings = get_settings()

SESSION_HEADER = "X-Volunteer-Session"

# simple in-memory JWKS cache
_JWKS: Dict[str, Any] | None = None
_JWKS_TS: float = 0.0
_JWKS_TTL: int = 3600  # seconds

async def fetch_jwks() -> Dict[str, Any]:
    global _JWKS, _JWKS_TS
    now = time.time()
    if _JWKS is None or (now - _JWKS_TS) > _JWKS_TTL:
        async with httpx.AsyncClient() as client:
            r = await client.get(settings.auth_jwks_url, timeout=5.0)
            r.raise_for_status()
            _JWKS = r.json()
            _JWKS_TS = now
    return _JWKS

async def get_signing_key(kid: str | None = None):
    from jwt.algorithms import RSAAlgorithm
    jwks = await fetch_jwks()
    keys = jwks["keys"]
    key = next((k for k in keys if kid and k.get("kid") == kid), keys[0])
    return RSAAlgorithm.from_jwk(key)

async def get_claims(authorization: str | None = Header(default=None)) -> Dict[str, Any]:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        kid = jwt.get_unverified_header(token).get("kid")
        key = await get_signing_key(kid)
        payload = jwt.decode(token, key=key, algorithms=["RS256"], options={"verify_aud": False})
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if "sub" not in payload or "role" not in payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return payload

async def get_organiser(claims: Dict[str, Any] = Depends(get_claims)) -> Dict[str, Any]:
    if claims.get("role") != settings.organiser_role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organiser role required")
    try:
        claims["sub_uuid"] = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return claims

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session

def get_store() -> SessionStore:
    return get_session_store()

async def get_session_credential(
    x_volunteer_session: str | None = Header(default=None, alias=SESSION_HEADER),
) -> str:
    if not x_volunteer_session:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return x_volunteer_session

async def get_volunteer_session(
    credential: str = Depends(get_session_credential),
    store: SessionStore = Depends(get_store),
    db: AsyncSession = Depends(get_db),
) -> VolunteerSession:
    session = store.load(credential)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    # a revoked code deletes the volunteer, which ends the session
    volunteer = await db.get(Volunteer, session.id)
    if volunteer is None or volunteer.event_id != session.event_id:
        store.clear(credential)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session revoked")
    volunteer.last_activity = utcnow()
    await db.commit()
    return session
