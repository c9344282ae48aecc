from __future__ import annotations

import uuid
import datetime as dt
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, declarative_base, relationship
from sqlalchemy.types import DateTime, Integer

Base = declarative_base()

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Event(Base):
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    creator_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_events_creator", "creator_id"),
    )

    posts: Mapped[list["Post"]] = relationship(
        "Post", back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )
    walking_groups: Mapped[list["WalkingGroup"]] = relationship(
        "WalkingGroup", back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )

class Post(Base):
    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(255))
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_posts_event_order", "event_id", "order_number"),
    )

    event: Mapped[Event] = relationship("Event", back_populates="posts")

class WalkingGroup(Base):
    __tablename__ = "walking_groups"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    members: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    __table_args__ = (
        Index("ix_groups_event", "event_id"),
    )

    event: Mapped[Event] = relationship("Event", back_populates="walking_groups")

class Volunteer(Base):
    __tablename__ = "volunteers"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    login_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_activity: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_volunteers_event", "event_id"),
    )

class VolunteerCode(Base):
    __tablename__ = "volunteer_codes"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    volunteer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    access_code: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # volunteer created by redeeming this code
    volunteer_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("volunteers.id", ondelete="SET NULL"))

    __table_args__ = (
        UniqueConstraint("access_code", name="uq_volunteer_codes_code"),
        Index("ix_codes_event_created", "event_id", "created_at"),
    )

# one live (unused) code per name within an event
Index(
    "uq_volunteer_codes_live_name",
    VolunteerCode.event_id,
    VolunteerCode.volunteer_name,
    unique=True,
    postgresql_where=VolunteerCode.used.is_(False),
    sqlite_where=VolunteerCode.used.is_(False),
)

class PostVolunteer(Base):
    __tablename__ = "post_volunteers"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    volunteer_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("volunteers.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("volunteer_id", name="uq_post_volunteer_one_post"),
        Index("ix_post_volunteers_post", "post_id"),
    )

    post: Mapped[Post] = relationship("Post")
    volunteer: Mapped[Volunteer] = relationship("Volunteer")

class Checkpoint(Base):
    __tablename__ = "checkpoints"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    walking_group_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("walking_groups.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    checked_by: Mapped[uuid.UUID] = mapped_column(nullable=False)  # volunteer or organiser id
    checked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("walking_group_id", "post_id", name="uq_checkpoint_group_post"),
        Index("ix_checkpoints_post_checked", "post_id", "checked_at"),
    )

    walking_group: Mapped[WalkingGroup] = relationship("WalkingGroup")
    post: Mapped[Post] = relationship("Post")

def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back naive; everything is stored in UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
