from __future__ import annotations
import datetime as dt
from typing import Annotated
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from .core.notify import Notification
from .core.session import VolunteerSession

Str255     = Annotated[str, Field(min_length=1, max_length=255)]
OptStr255  = Annotated[str | None, Field(max_length=255)]
PosInt     = Annotated[int, Field(gt=0)]

class ORMRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

# ---- Events ----
class EventCreate(BaseModel):
    name: Str255
    description: str | None = None
    date: dt.date

class EventUpdate(BaseModel):
    name: Str255 | None = None
    description: str | None = None
    date: dt.date | None = None
    is_active: bool | None = None

class EventRead(ORMRead):
    id: UUID
    name: str
    description: str | None
    date: dt.date
    creator_id: UUID
    is_active: bool
    created_at: datetime

class EventSummary(ORMRead):
    id: UUID
    name: str

# ---- Posts ----
class PostCreate(BaseModel):
    name: Str255
    description: str | None = None
    location: OptStr255 = None
    order_number: PosInt | None = None

class PostUpdate(BaseModel):
    name: Str255 | None = None
    description: str | None = None
    location: OptStr255 = None
    order_number: PosInt | None = None

class PostRead(ORMRead):
    id: UUID
    event_id: UUID
    name: str
    description: str | None
    location: str | None
    order_number: int

class AssignVolunteer(BaseModel):
    volunteer_id: UUID

# ---- Walking groups ----
class WalkingGroupCreate(BaseModel):
    name: Str255
    description: str | None = None
    start_time: datetime | None = None
    members: list[Str255] = Field(default_factory=list)

class WalkingGroupUpdate(BaseModel):
    name: Str255 | None = None
    description: str | None = None
    start_time: datetime | None = None
    members: list[Str255] | None = None

class WalkingGroupRead(ORMRead):
    id: UUID
    event_id: UUID
    name: str
    description: str | None
    start_time: datetime | None
    members: list[str]

# ---- Volunteers & codes ----
class VolunteerRead(ORMRead):
    id: UUID
    name: str
    event_id: UUID
    login_timestamp: datetime
    last_activity: datetime | None = None

class CodeCreate(BaseModel):
    volunteer_name: str = Field(max_length=255)

class CodeRead(ORMRead):
    id: UUID
    event_id: UUID
    volunteer_name: str
    access_code: str
    created_at: datetime
    expires_at: datetime
    used: bool
    used_at: datetime | None
    volunteer_id: UUID | None = None

class RedeemRequest(BaseModel):
    access_code: Annotated[str, Field(min_length=1, max_length=16)]

class RedeemResponse(BaseModel):
    volunteer: VolunteerRead
    event: EventSummary
    session: VolunteerSession
    session_token: str

class VolunteerMe(BaseModel):
    session: VolunteerSession
    event: EventRead
    post: PostRead | None = None

# ---- Checkpoints ----
class CheckpointCreate(BaseModel):
    walking_group_id: UUID
    post_id: UUID
    notes: str | None = None

class VolunteerCheckpointCreate(BaseModel):
    walking_group_id: UUID
    notes: str | None = None

class CheckpointRead(BaseModel):
    id: UUID
    walking_group_id: UUID
    post_id: UUID
    checked_by: UUID
    checked_at: datetime
    notes: str | None = None
    walking_group_name: str | None = None
    post_name: str | None = None

    @classmethod
    def from_row(cls, cp, group_name: str | None = None, post_name: str | None = None) -> CheckpointRead:
        return cls(
            id=cp.id, walking_group_id=cp.walking_group_id, post_id=cp.post_id,
            checked_by=cp.checked_by, checked_at=cp.checked_at, notes=cp.notes,
            walking_group_name=group_name, post_name=post_name,
        )

# ---- Overview ----
class PostWithVolunteers(PostRead):
    volunteers: list[VolunteerRead] = Field(default_factory=list)

class EventOverview(BaseModel):
    event: EventRead
    posts: list[PostWithVolunteers]
    walking_groups: list[WalkingGroupRead]
    checkpoints: list[CheckpointRead]
    codes: list[CodeRead]

class ErrorResponse(BaseModel):
    detail: str
    error: str
    notification: Notification
