from __future__ import annotations

import logging
import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..core.notify import notify
from ..deps import get_db, get_organiser
from ..models import Event, Post, PostVolunteer, Volunteer, WalkingGroup
from ..schemas import (
    CheckpointRead, CodeRead, EventCreate, EventOverview, EventRead, EventUpdate,
    PostWithVolunteers, VolunteerRead, WalkingGroupRead,
)
from ..services.checkpoints import list_for_event
from ..services.codes import list_codes
from ..services.events import get_owned_event

router = APIRouter(prefix="/events", tags=["events"])
logger = logging.getLogger(__name__)

@router.get("", response_model=list[EventRead])
async def list_events(claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    rows = (await db.execute(
        select(Event).where(Event.creator_id == claims["sub_uuid"]).order_by(Event.date.desc())
    )).scalars().all()
    return [EventRead.model_validate(e) for e in rows]

@router.post("", response_model=EventRead, status_code=201)
async def create_event(payload: EventCreate, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    e = Event(
        name=payload.name,
        description=payload.description,
        date=payload.date,
        creator_id=claims["sub_uuid"],
        is_active=True,
    )
    db.add(e)
    await db.commit()
    await db.refresh(e)
    await notify("Evenement aangemaakt!", "Je nieuwe wandeltocht is succesvol aangemaakt.")
    return EventRead.model_validate(e)

@router.get("/{event_id}", response_model=EventRead)
async def get_event(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    e = await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    return EventRead.model_validate(e)

@router.patch("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: uuid.UUID,
    payload: EventUpdate,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    e = await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    if payload.name is not None: e.name = payload.name
    if payload.description is not None: e.description = payload.description
    if payload.date is not None: e.date = payload.date
    if payload.is_active is not None: e.is_active = payload.is_active
    await db.commit()
    await db.refresh(e)
    return EventRead.model_validate(e)

@router.delete("/{event_id}", status_code=204)
async def delete_event(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    e = await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    await db.delete(e)
    await db.commit()
    logger.info("event %s deleted", event_id)
    await notify("Evenement verwijderd", f"{e.name} is verwijderd.")

@router.get("/{event_id}/overview", response_model=EventOverview)
async def event_overview(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    """Everything the organiser's event screen shows, in one round-trip."""
    e = await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])

    posts = (await db.execute(
        select(Post).where(Post.event_id == event_id).order_by(Post.order_number.asc())
    )).scalars().all()
    assigned = (await db.execute(
        select(PostVolunteer.post_id, Volunteer)
        .join(Volunteer, Volunteer.id == PostVolunteer.volunteer_id)
        .where(PostVolunteer.post_id.in_([p.id for p in posts]))
    )).all()
    by_post: dict[uuid.UUID, list[VolunteerRead]] = {}
    for post_id, v in assigned:
        by_post.setdefault(post_id, []).append(VolunteerRead.model_validate(v))

    groups = (await db.execute(
        select(WalkingGroup).where(WalkingGroup.event_id == event_id).order_by(WalkingGroup.name.asc())
    )).scalars().all()
    checkpoints = await list_for_event(db, event_id=event_id)
    codes = await list_codes(db, event_id=event_id)

    return EventOverview(
        event=EventRead.model_validate(e),
        posts=[
            PostWithVolunteers.model_validate(p).model_copy(update={"volunteers": by_post.get(p.id, [])})
            for p in posts
        ],
        walking_groups=[WalkingGroupRead.model_validate(g) for g in groups],
        checkpoints=[CheckpointRead.from_row(*row) for row in checkpoints],
        codes=[CodeRead.model_validate(c) for c in codes],
    )
