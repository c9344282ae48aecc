from __future__ import annotations
import json
import logging
from typing import Sequence
from nats.aio.client import Client as NATS
from .config import get_settings

_settings = get_settings()
_nats = NATS()
logger = logging.getLogger(__name__)

async def nats_connect():
    if not _nats.is_connected:
        servers: Sequence[str] = [u.strip() for u in _settings.nats_urls.split(",") if u.strip()]
        await _nats.connect(servers=servers)

async def nats_close():
    try:
        if _nats.is_connected:
            await _nats.drain()
    except Exception as e:
        logger.warning("NATS drain failed: %s", e)

async def publish(subject: str, evt: dict):
    await nats_connect()
    await _nats.publish(subject, json.dumps(evt, default=str).encode("utf-8"))

async def publish_checkpoint(evt: dict):
    """
    evt = {
      "checkpoint_id": str,
      "walking_group_id": str,
      "post_id": str,
      "checked_by": str,
      "checked_at": iso8601,
      "idempotency_key": "walking_group_id:post_id"
    }
    """
    await publish(_settings.nats_subject_checkpoint, evt)
