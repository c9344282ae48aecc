from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import CodeAlreadyUsed, CodeExpired, EventNotFoundOrInactive, InvalidCode
from ..core.session import SessionStore, VolunteerSession
from ..models import Event, Volunteer, VolunteerCode, as_utc, utcnow
from .codes import normalize_code

logger = logging.getLogger(__name__)

async def redeem_code(
    db: AsyncSession,
    *,
    raw_code: str,
    now: datetime | None = None,
) -> Tuple[Volunteer, Event]:
    """Turn an access code into a Volunteer, exactly once.

    Validation happens before any write. The volunteer insert and the
    used-flag flip share one transaction, and the flip only succeeds while
    the code is still unused, so concurrent redemptions cannot both win.
    """
    now = now or utcnow()
    code = (await db.execute(
        select(VolunteerCode).where(VolunteerCode.access_code == normalize_code(raw_code))
    )).scalar_one_or_none()
    if code is None:
        raise InvalidCode()
    if now > as_utc(code.expires_at):
        raise CodeExpired()
    if code.used:
        raise CodeAlreadyUsed()

    event = (await db.execute(
        select(Event).where(Event.id == code.event_id, Event.is_active.is_(True))
    )).scalar_one_or_none()
    if event is None:
        raise EventNotFoundOrInactive()

    volunteer = Volunteer(
        id=uuid.uuid4(),
        name=code.volunteer_name,
        event_id=event.id,
        login_timestamp=now,
    )
    db.add(volunteer)
    await db.flush()

    res = await db.execute(
        update(VolunteerCode)
        .where(VolunteerCode.id == code.id, VolunteerCode.used.is_(False))
        .values(used=True, used_at=now, volunteer_id=volunteer.id)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        await db.rollback()
        logger.warning("code %s redeemed concurrently", code.access_code)
        raise CodeAlreadyUsed()
    await db.commit()
    await db.refresh(code)
    await db.refresh(volunteer)
    logger.info("volunteer %s (%r) joined event %s", volunteer.id, volunteer.name, event.id)
    return volunteer, event

def open_session(store: SessionStore, *, volunteer: Volunteer, event: Event, now: datetime | None = None) -> Tuple[VolunteerSession, str]:
    session = VolunteerSession(
        id=volunteer.id,
        name=volunteer.name,
        event_id=event.id,
        event_name=event.name,
        timestamp=now or utcnow(),
    )
    return session, store.save(session)
