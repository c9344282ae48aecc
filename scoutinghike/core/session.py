"""Volunteer sessions.

A redeemed access code yields a `VolunteerSession`: an immutable value scoped
to one event. Clients keep its JSON blob under `SESSION_KEY` and present the
credential returned by the configured `SessionStore` on every volunteer call.
"""
from __future__ import annotations
import secrets
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from pydantic import BaseModel, ConfigDict

from .config import get_settings

SESSION_KEY = "volunteerSession"
SESSION_AUD = "volunteer-session"
SESSION_ISS = "scoutinghike"

def _now() -> datetime:
    return datetime.now(timezone.utc)

class VolunteerSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    name: str
    event_id: uuid.UUID
    event_name: str
    timestamp: datetime

    def to_blob(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_blob(cls, blob: str | None) -> VolunteerSession | None:
        # absent blob means "not logged in"
        if not blob:
            return None
        return cls.model_validate_json(blob)

class SessionStore(ABC):
    @abstractmethod
    def save(self, session: VolunteerSession) -> str:
        """Persist the session and return the credential the client presents."""

    @abstractmethod
    def load(self, credential: str) -> VolunteerSession | None:
        ...

    @abstractmethod
    def clear(self, credential: str) -> None:
        ...

class MemorySessionStore(SessionStore):
    def __init__(self):
        self._sessions: Dict[str, VolunteerSession] = {}

    def save(self, session: VolunteerSession) -> str:
        credential = secrets.token_urlsafe(32)
        self._sessions[credential] = session
        return credential

    def load(self, credential: str) -> VolunteerSession | None:
        return self._sessions.get(credential)

    def clear(self, credential: str) -> None:
        self._sessions.pop(credential, None)

class SignedSessionStore(SessionStore):
    """Stateless store: the credential is a signed token carrying the session."""

    def __init__(self, secret: str, ttl_hours: int):
        self._secret = secret
        self._ttl = timedelta(hours=ttl_hours)

    def save(self, session: VolunteerSession) -> str:
        now = _now()
        payload: Dict[str, Any] = {
            "aud": SESSION_AUD,
            "iss": SESSION_ISS,
            "jti": secrets.token_urlsafe(16),
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
            "sub": str(session.id),
            "session": session.model_dump(mode="json"),
        }
        return jwt.encode(payload, self._secret, algorithm="HS256")

    def load(self, credential: str) -> VolunteerSession | None:
        try:
            payload = jwt.decode(
                credential,
                self._secret,
                algorithms=["HS256"],
                audience=SESSION_AUD,
                issuer=SESSION_ISS,
                options={"require": ["exp", "aud", "iss", "sub"]},
            )
        except jwt.PyJWTError:
            return None
        data = payload.get("session")
        if not isinstance(data, dict) or data.get("id") != payload["sub"]:
            return None
        return VolunteerSession.model_validate(data)

    def clear(self, credential: str) -> None:
        # nothing is held server-side; the client drops its blob
        return None

_store: SessionStore | None = None

def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        settings = get_settings()
        if settings.session_backend == "memory":
            _store = MemorySessionStore()
        else:
            _store = SignedSessionStore(settings.session_secret_effective, settings.session_ttl_hours)
    return _store
