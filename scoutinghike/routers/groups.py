from __future__ import annotations

import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..core.errors import NotFound
from ..core.notify import notify
from ..deps import get_db, get_organiser
from ..models import WalkingGroup, utcnow
from ..schemas import WalkingGroupCreate, WalkingGroupRead, WalkingGroupUpdate
from ..services.events import get_owned_event

router = APIRouter(tags=["walking-groups"])

async def _get_owned_group(db: AsyncSession, claims, group_id: uuid.UUID) -> WalkingGroup:
    g = await db.get(WalkingGroup, group_id)
    if not g:
        raise NotFound("Loopgroep niet gevonden")
    await get_owned_event(db, event_id=g.event_id, organiser_id=claims["sub_uuid"])
    return g

@router.get("/events/{event_id}/groups", response_model=list[WalkingGroupRead])
async def list_groups(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    rows = (await db.execute(
        select(WalkingGroup).where(WalkingGroup.event_id == event_id).order_by(WalkingGroup.name.asc())
    )).scalars().all()
    return [WalkingGroupRead.model_validate(g) for g in rows]

@router.post("/events/{event_id}/groups", response_model=WalkingGroupRead, status_code=201)
async def create_group(
    event_id: uuid.UUID,
    payload: WalkingGroupCreate,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    g = WalkingGroup(
        event_id=event_id,
        name=payload.name,
        description=payload.description,
        start_time=payload.start_time or utcnow(),
        members=list(payload.members),
    )
    db.add(g)
    await db.commit()
    await db.refresh(g)
    await notify("Loopgroep toegevoegd", "De nieuwe loopgroep is succesvol toegevoegd.")
    return WalkingGroupRead.model_validate(g)

@router.patch("/groups/{group_id}", response_model=WalkingGroupRead)
async def update_group(
    group_id: uuid.UUID,
    payload: WalkingGroupUpdate,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    g = await _get_owned_group(db, claims, group_id)
    if payload.name is not None: g.name = payload.name
    if payload.description is not None: g.description = payload.description
    if payload.start_time is not None: g.start_time = payload.start_time
    if payload.members is not None: g.members = list(payload.members)
    await db.commit()
    await db.refresh(g)
    return WalkingGroupRead.model_validate(g)

@router.delete("/groups/{group_id}", status_code=204)
async def delete_group(group_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    g = await _get_owned_group(db, claims, group_id)
    await db.delete(g)
    await db.commit()
    await notify("Loopgroep verwijderd", "De loopgroep is succesvol verwijderd.")
