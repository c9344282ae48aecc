from __future__ import annotations
import logging
import secrets
import string
import uuid
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.errors import DuplicateName, InvalidCode, InvalidName, NotFound, StoreError
from ..models import Event, Volunteer, VolunteerCode, utcnow

settings = get_settings()
logger = logging.getLogger(__name__)

# base-36: digits + lowercase letters, stored and compared upper-case
CODE_ALPHABET = string.digits + string.ascii_lowercase
MAX_DRAWS = 10

def normalize_code(raw: str) -> str:
    return raw.strip().upper()

def new_access_code(length: int | None = None) -> str:
    n = length or settings.code_length
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(n)).upper()

async def _draw_free_code(db: AsyncSession) -> str:
    for _ in range(MAX_DRAWS):
        candidate = new_access_code()
        taken = (await db.execute(
            select(VolunteerCode.id).where(VolunteerCode.access_code == candidate)
        )).first()
        if not taken:
            return candidate
    raise StoreError("Kon geen vrije toegangscode genereren")

async def _live_code_for_name(db: AsyncSession, event_id: uuid.UUID, name: str, now: datetime) -> VolunteerCode | None:
    return (await db.execute(
        select(VolunteerCode).where(
            VolunteerCode.event_id == event_id,
            VolunteerCode.volunteer_name == name,
            VolunteerCode.used.is_(False),
            VolunteerCode.expires_at >= now,
        )
    )).scalars().first()

async def generate_code(
    db: AsyncSession,
    *,
    event_id: uuid.UUID,
    volunteer_name: str,
    now: datetime | None = None,
) -> VolunteerCode:
    """Issue a single-use access code bound to a volunteer name.

    At most one live (unused, unexpired) code exists per name and event.
    """
    name = (volunteer_name or "").strip()
    if not name:
        raise InvalidName()
    now = now or utcnow()

    if await db.get(Event, event_id) is None:
        raise NotFound("Evenement niet gevonden")

    # an expired unused code for the same name must not block a new one
    await db.execute(
        delete(VolunteerCode)
        .where(
            VolunteerCode.event_id == event_id,
            VolunteerCode.volunteer_name == name,
            VolunteerCode.used.is_(False),
            VolunteerCode.expires_at < now,
        )
        .execution_options(synchronize_session=False)
    )
    if await _live_code_for_name(db, event_id, name, now):
        await db.rollback()
        raise DuplicateName(name)

    code = VolunteerCode(
        event_id=event_id,
        volunteer_name=name,
        access_code=await _draw_free_code(db),
        created_at=now,
        expires_at=now + timedelta(minutes=settings.code_ttl_minutes),
        used=False,
    )
    db.add(code)
    try:
        await db.commit()
    except IntegrityError as e:
        # lost a race: either the name got a live code or the code string was taken
        await db.rollback()
        if await _live_code_for_name(db, event_id, name, now):
            raise DuplicateName(name) from e
        raise StoreError(str(e.orig)) from e
    await db.refresh(code)
    logger.info("issued code %s for %r (event %s)", code.access_code, name, event_id)
    return code

async def list_codes(
    db: AsyncSession,
    *,
    event_id: uuid.UUID,
    now: datetime | None = None,
) -> list[VolunteerCode]:
    """All codes of an event, newest first. Expired unused codes are pruned first."""
    now = now or utcnow()
    res = await db.execute(
        delete(VolunteerCode)
        .where(
            VolunteerCode.event_id == event_id,
            VolunteerCode.used.is_(False),
            VolunteerCode.expires_at < now,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if res.rowcount:
        logger.info("pruned %d expired code(s) for event %s", res.rowcount, event_id)
    rows = (await db.execute(
        select(VolunteerCode)
        .where(VolunteerCode.event_id == event_id)
        .order_by(VolunteerCode.created_at.desc())
    )).scalars().all()
    return list(rows)

async def get_code(db: AsyncSession, *, event_id: uuid.UUID, code: str) -> VolunteerCode | None:
    return (await db.execute(
        select(VolunteerCode).where(
            VolunteerCode.event_id == event_id,
            VolunteerCode.access_code == normalize_code(code),
        )
    )).scalar_one_or_none()

async def revoke_code(db: AsyncSession, *, event_id: uuid.UUID, code: str) -> VolunteerCode:
    """Delete a code; a used code also takes the volunteer it created with it."""
    obj = await get_code(db, event_id=event_id, code=code)
    if obj is None:
        raise InvalidCode()

    volunteer_id = obj.volunteer_id
    await db.delete(obj)
    if obj.used and volunteer_id is not None:
        await db.execute(
            delete(Volunteer)
            .where(Volunteer.id == volunteer_id)
            .execution_options(synchronize_session=False)
        )
    await db.commit()
    logger.info("revoked code %s (event %s, used=%s)", obj.access_code, event_id, obj.used)
    return obj

async def sweep_expired_codes(db: AsyncSession, *, now: datetime | None = None) -> int:
    """Delete every expired unused code, across events. Returns the count."""
    now = now or utcnow()
    res = await db.execute(
        delete(VolunteerCode)
        .where(VolunteerCode.used.is_(False), VolunteerCode.expires_at < now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return res.rowcount or 0
