from __future__ import annotations

import uuid
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..core.errors import NotFound
from ..core.notify import notify
from ..core.redis import allow_request
from ..core.session import SessionStore, VolunteerSession
from ..deps import get_db, get_organiser, get_session_credential, get_store, get_volunteer_session
from ..models import Event, Post, PostVolunteer, Volunteer, WalkingGroup
from ..schemas import (
    CheckpointRead, EventRead, EventSummary, PostRead, RedeemRequest, RedeemResponse,
    VolunteerCheckpointCreate, VolunteerMe, VolunteerRead, WalkingGroupRead,
)
from ..services.checkpoints import list_for_post, register_checkpoint
from ..services.events import get_owned_event
from ..services.redemption import open_session, redeem_code
from .checkpoints import announce_checkpoint

router = APIRouter(tags=["volunteers"])

async def _assigned_post(db: AsyncSession, volunteer_id: uuid.UUID) -> Post | None:
    return (await db.execute(
        select(Post).join(PostVolunteer, PostVolunteer.post_id == Post.id)
        .where(PostVolunteer.volunteer_id == volunteer_id)
    )).scalar_one_or_none()

async def _require_post(db: AsyncSession, session: VolunteerSession) -> Post:
    post = await _assigned_post(db, session.id)
    if post is None:
        raise NotFound("Je bent nog niet toegewezen aan een post. Vraag de organisator om je toe te wijzen.")
    return post

# --- organiser: who redeemed a code for this event
@router.get("/events/{event_id}/volunteers", response_model=list[VolunteerRead])
async def list_event_volunteers(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    rows = (await db.execute(
        select(Volunteer).where(Volunteer.event_id == event_id).order_by(Volunteer.name.asc())
    )).scalars().all()
    return [VolunteerRead.model_validate(v) for v in rows]

# --- public: redeem an access code
@router.post("/volunteers/redeem", response_model=RedeemResponse, status_code=201)
async def redeem(
    payload: RedeemRequest,
    request: Request,
    store: SessionStore = Depends(get_store),
    db: AsyncSession = Depends(get_db),
):
    ip = request.client.host if request.client else "unknown"
    if not await allow_request(ip, "volunteers.redeem"):
        raise HTTPException(status_code=429, detail="Too many requests")

    volunteer, event = await redeem_code(db, raw_code=payload.access_code)
    session, token = open_session(store, volunteer=volunteer, event=event)
    await notify("Inloggen gelukt!", f"Je bent ingelogd voor evenement: {event.name}")
    return RedeemResponse(
        volunteer=VolunteerRead.model_validate(volunteer),
        event=EventSummary.model_validate(event),
        session=session,
        session_token=token,
    )

@router.get("/volunteers/me", response_model=VolunteerMe)
async def me(session: VolunteerSession = Depends(get_volunteer_session), db: AsyncSession = Depends(get_db)):
    event = await db.get(Event, session.event_id)
    if event is None:
        raise NotFound("Evenement niet gevonden")
    post = await _assigned_post(db, session.id)
    return VolunteerMe(
        session=session,
        event=EventRead.model_validate(event),
        post=PostRead.model_validate(post) if post else None,
    )

@router.post("/volunteers/logout", status_code=204)
async def logout(
    credential: str = Depends(get_session_credential),
    store: SessionStore = Depends(get_store),
):
    store.clear(credential)

@router.get("/volunteers/me/groups", response_model=list[WalkingGroupRead])
async def my_groups(session: VolunteerSession = Depends(get_volunteer_session), db: AsyncSession = Depends(get_db)):
    rows = (await db.execute(
        select(WalkingGroup).where(WalkingGroup.event_id == session.event_id).order_by(WalkingGroup.name.asc())
    )).scalars().all()
    return [WalkingGroupRead.model_validate(g) for g in rows]

@router.get("/volunteers/me/checkpoints", response_model=list[CheckpointRead])
async def my_post_checkpoints(session: VolunteerSession = Depends(get_volunteer_session), db: AsyncSession = Depends(get_db)):
    post = await _require_post(db, session)
    return [CheckpointRead.from_row(*row) for row in await list_for_post(db, post_id=post.id)]

@router.post("/volunteers/me/checkpoints", response_model=CheckpointRead, status_code=201)
async def register_at_my_post(
    payload: VolunteerCheckpointCreate,
    session: VolunteerSession = Depends(get_volunteer_session),
    db: AsyncSession = Depends(get_db),
):
    post = await _require_post(db, session)
    cp = await register_checkpoint(
        db,
        walking_group_id=payload.walking_group_id,
        post_id=post.id,
        checked_by=session.id,
        notes=payload.notes,
    )
    await announce_checkpoint(cp)
    await notify("Groep geregistreerd", "De loopgroep is succesvol geregistreerd bij deze post.")
    return CheckpointRead.from_row(cp, post_name=post.name)
