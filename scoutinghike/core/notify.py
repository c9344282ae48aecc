from __future__ import annotations
import logging
from enum import Enum

from pydantic import BaseModel

from .config import get_settings
from .nats import publish

logger = logging.getLogger(__name__)
settings = get_settings()

class NotificationKind(str, Enum):
    NORMAL = "normal"
    DESTRUCTIVE = "destructive"

class Notification(BaseModel):
    title: str
    description: str
    kind: NotificationKind = NotificationKind.NORMAL

async def notify(title: str, description: str, kind: NotificationKind = NotificationKind.NORMAL) -> Notification:
    """Report an outcome to the user-facing channel.

    Always logged; fanned out over NATS when enabled. Delivery failures never
    fail the operation that triggered the notification.
    """
    n = Notification(title=title, description=description, kind=kind)
    level = logging.WARNING if kind == NotificationKind.DESTRUCTIVE else logging.INFO
    logger.log(level, "%s: %s", title, description)
    if settings.use_nats:
        try:
            await publish(settings.nats_subject_notify, n.model_dump(mode="json"))
        except Exception as e:
            logger.warning("notification not published: %s", e)
    return n
