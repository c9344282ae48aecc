from __future__ import annotations

import logging
import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.errors import NotFound
from ..core.nats import publish_checkpoint
from ..core.notify import notify
from ..deps import get_db, get_organiser
from ..models import Checkpoint, Post
from ..schemas import CheckpointCreate, CheckpointRead
from ..services.checkpoints import list_for_event, list_for_post, register_checkpoint
from ..services.events import get_owned_event, get_owned_post

router = APIRouter(tags=["checkpoints"])
settings = get_settings()
logger = logging.getLogger(__name__)

async def announce_checkpoint(cp: Checkpoint) -> None:
    """Fan a fresh checkpoint out to live dashboards; failures only get logged."""
    if not settings.use_nats:
        return
    try:
        await publish_checkpoint({
            "checkpoint_id": str(cp.id),
            "walking_group_id": str(cp.walking_group_id),
            "post_id": str(cp.post_id),
            "checked_by": str(cp.checked_by),
            "checked_at": cp.checked_at.isoformat(),
            "idempotency_key": f"{cp.walking_group_id}:{cp.post_id}",
        })
    except Exception as e:
        logger.warning("checkpoint %s not published: %s", cp.id, e)

# --- organiser registers on behalf of any post of the event
@router.post("/events/{event_id}/checkpoints", response_model=CheckpointRead, status_code=201)
async def organiser_register(
    event_id: uuid.UUID,
    payload: CheckpointCreate,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    post = await db.get(Post, payload.post_id)
    if not post or post.event_id != event_id:
        raise NotFound("Post niet gevonden")

    cp = await register_checkpoint(
        db,
        walking_group_id=payload.walking_group_id,
        post_id=payload.post_id,
        checked_by=claims["sub_uuid"],
        notes=payload.notes,
    )
    await announce_checkpoint(cp)
    await notify("Groep geregistreerd", "De loopgroep is succesvol geregistreerd bij deze post.")
    return CheckpointRead.from_row(cp)

@router.get("/events/{event_id}/checkpoints", response_model=list[CheckpointRead])
async def event_checkpoints(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    return [CheckpointRead.from_row(*row) for row in await list_for_event(db, event_id=event_id)]

@router.get("/posts/{post_id}/checkpoints", response_model=list[CheckpointRead])
async def post_checkpoints(post_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    await get_owned_post(db, post_id=post_id, organiser_id=claims["sub_uuid"])
    return [CheckpointRead.from_row(*row) for row in await list_for_post(db, post_id=post_id)]

@router.delete("/checkpoints/{checkpoint_id}", status_code=204)
async def delete_checkpoint(checkpoint_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    cp = await db.get(Checkpoint, checkpoint_id)
    if not cp:
        raise NotFound("Checkpoint niet gevonden")
    await get_owned_post(db, post_id=cp.post_id, organiser_id=claims["sub_uuid"])
    await db.delete(cp)
    await db.commit()
    await notify("Checkpoint verwijderd", "Het checkpoint is succesvol verwijderd.")
