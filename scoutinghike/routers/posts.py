from __future__ import annotations

import logging
import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from ..core.errors import AlreadyAssigned, InvalidReference, NotFound
from ..core.notify import notify
from ..deps import get_db, get_organiser
from ..models import Post, PostVolunteer, Volunteer
from ..schemas import AssignVolunteer, PostCreate, PostRead, PostUpdate, VolunteerRead
from ..services.events import get_owned_event, get_owned_post

router = APIRouter(tags=["posts"])
logger = logging.getLogger(__name__)

@router.get("/events/{event_id}/posts", response_model=list[PostRead])
async def list_posts(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    rows = (await db.execute(
        select(Post).where(Post.event_id == event_id).order_by(Post.order_number.asc())
    )).scalars().all()
    return [PostRead.model_validate(p) for p in rows]

@router.post("/events/{event_id}/posts", response_model=PostRead, status_code=201)
async def create_post(
    event_id: uuid.UUID,
    payload: PostCreate,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    order_number = payload.order_number
    if order_number is None:
        # next position along the route
        max_order = (await db.execute(
            select(func.max(Post.order_number)).where(Post.event_id == event_id)
        )).scalar_one()
        order_number = (max_order or 0) + 1

    p = Post(
        event_id=event_id,
        name=payload.name,
        description=payload.description,
        location=payload.location,
        order_number=order_number,
    )
    db.add(p)
    await db.commit()
    await db.refresh(p)
    await notify("Post toegevoegd", "De nieuwe post is succesvol toegevoegd.")
    return PostRead.model_validate(p)

@router.patch("/posts/{post_id}", response_model=PostRead)
async def update_post(
    post_id: uuid.UUID,
    payload: PostUpdate,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    p = await get_owned_post(db, post_id=post_id, organiser_id=claims["sub_uuid"])
    if payload.name is not None: p.name = payload.name
    if payload.description is not None: p.description = payload.description
    if payload.location is not None: p.location = payload.location
    if payload.order_number is not None: p.order_number = payload.order_number
    await db.commit()
    await db.refresh(p)
    await notify("Post bijgewerkt", "De post is succesvol bijgewerkt.")
    return PostRead.model_validate(p)

@router.delete("/posts/{post_id}", status_code=204)
async def delete_post(post_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    p = await get_owned_post(db, post_id=post_id, organiser_id=claims["sub_uuid"])
    await db.delete(p)
    await db.commit()
    await notify("Post verwijderd", "De post is succesvol verwijderd.")

# --- volunteer assignment: one post per volunteer
@router.get("/posts/{post_id}/volunteers", response_model=list[VolunteerRead])
async def list_post_volunteers(post_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    await get_owned_post(db, post_id=post_id, organiser_id=claims["sub_uuid"])
    rows = (await db.execute(
        select(Volunteer)
        .join(PostVolunteer, PostVolunteer.volunteer_id == Volunteer.id)
        .where(PostVolunteer.post_id == post_id)
        .order_by(Volunteer.name.asc())
    )).scalars().all()
    return [VolunteerRead.model_validate(v) for v in rows]

@router.post("/posts/{post_id}/volunteers", response_model=VolunteerRead, status_code=201)
async def assign_volunteer(
    post_id: uuid.UUID,
    payload: AssignVolunteer,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    p = await get_owned_post(db, post_id=post_id, organiser_id=claims["sub_uuid"])
    v = await db.get(Volunteer, payload.volunteer_id)
    if not v:
        raise NotFound("Vrijwilliger niet gevonden")
    if v.event_id != p.event_id:
        raise InvalidReference("Vrijwilliger hoort niet bij dit evenement")

    existing = (await db.execute(
        select(PostVolunteer.id).where(PostVolunteer.volunteer_id == v.id)
    )).first()
    if existing:
        raise AlreadyAssigned()

    db.add(PostVolunteer(post_id=p.id, volunteer_id=v.id))
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise AlreadyAssigned() from e
    logger.info("volunteer %s assigned to post %s", v.id, p.id)
    await notify("Vrijwilliger toegewezen", f"{v.name} is toegewezen aan {p.name}.")
    return VolunteerRead.model_validate(v)

@router.delete("/posts/{post_id}/volunteers/{volunteer_id}", status_code=204)
async def unassign_volunteer(
    post_id: uuid.UUID,
    volunteer_id: uuid.UUID,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    p = await get_owned_post(db, post_id=post_id, organiser_id=claims["sub_uuid"])
    pv = (await db.execute(
        select(PostVolunteer).where(PostVolunteer.post_id == post_id, PostVolunteer.volunteer_id == volunteer_id)
    )).scalar_one_or_none()
    if not pv:
        raise NotFound("Toewijzing niet gevonden")
    await db.delete(pv)
    await db.commit()
    await notify("Vrijwilliger verwijderd", f"De vrijwilliger is niet meer toegewezen aan {p.name}.")
