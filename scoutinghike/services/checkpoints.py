from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import DuplicateCheckpoint, InvalidReference, NotFound, StoreError
from ..models import Checkpoint, Post, WalkingGroup, utcnow

logger = logging.getLogger(__name__)

CheckpointRow = Tuple[Checkpoint, str, str]  # checkpoint, group name, post name

async def _checkpoint_exists(db: AsyncSession, walking_group_id: uuid.UUID, post_id: uuid.UUID) -> bool:
    row = (await db.execute(
        select(Checkpoint.id).where(
            Checkpoint.walking_group_id == walking_group_id, Checkpoint.post_id == post_id
        )
    )).first()
    return row is not None

async def register_checkpoint(
    db: AsyncSession,
    *,
    walking_group_id: uuid.UUID,
    post_id: uuid.UUID,
    checked_by: uuid.UUID,
    notes: str | None = None,
    now: datetime | None = None,
) -> Checkpoint:
    """Record that a walking group passed a post. One record per (group, post)."""
    group = await db.get(WalkingGroup, walking_group_id)
    if group is None:
        raise NotFound("Loopgroep niet gevonden")
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFound("Post niet gevonden")
    if group.event_id != post.event_id:
        raise InvalidReference("Loopgroep en post horen niet bij hetzelfde evenement")

    if await _checkpoint_exists(db, walking_group_id, post_id):
        raise DuplicateCheckpoint()

    cp = Checkpoint(
        walking_group_id=walking_group_id,
        post_id=post_id,
        checked_by=checked_by,
        checked_at=now or utcnow(),
        notes=notes or None,
    )
    db.add(cp)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        # another device got there first, or the group/post vanished meanwhile
        if await _checkpoint_exists(db, walking_group_id, post_id):
            raise DuplicateCheckpoint() from e
        raise StoreError(str(e.orig)) from e
    await db.refresh(cp)
    logger.info("group %r passed post %r", group.name, post.name)
    return cp

def _joined():
    return (
        select(Checkpoint, WalkingGroup.name, Post.name)
        .join(WalkingGroup, WalkingGroup.id == Checkpoint.walking_group_id)
        .join(Post, Post.id == Checkpoint.post_id)
    )

async def list_for_post(db: AsyncSession, *, post_id: uuid.UUID) -> List[CheckpointRow]:
    rows = await db.execute(_joined().where(Checkpoint.post_id == post_id).order_by(Checkpoint.checked_at.desc()))
    return [(cp, g, p) for cp, g, p in rows.all()]

async def list_for_event(db: AsyncSession, *, event_id: uuid.UUID) -> List[CheckpointRow]:
    rows = await db.execute(_joined().where(Post.event_id == event_id).order_by(Checkpoint.checked_at.desc()))
    return [(cp, g, p) for cp, g, p in rows.all()]
