from __future__ import annotations
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import Forbidden, NotFound
from ..models import Event, Post

async def get_owned_event(db: AsyncSession, *, event_id: uuid.UUID, organiser_id: uuid.UUID) -> Event:
    e = await db.get(Event, event_id)
    if not e:
        raise NotFound("Evenement niet gevonden")
    if e.creator_id != organiser_id:
        raise Forbidden("Dit evenement is niet van jou")
    return e

async def get_owned_post(db: AsyncSession, *, post_id: uuid.UUID, organiser_id: uuid.UUID) -> Post:
    p = await db.get(Post, post_id)
    if not p:
        raise NotFound("Post niet gevonden")
    await get_owned_event(db, event_id=p.event_id, organiser_id=organiser_id)
    return p
