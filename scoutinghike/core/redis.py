from __future__ import annotations
import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from .config import get_settings

_settings = get_settings()
_r: redis.Redis | None = None
logger = logging.getLogger(__name__)

def get_redis() -> redis.Redis:
    global _r
    if _r is None:
        _r = redis.from_url(_settings.redis_url, decode_responses=True)
    return _r

async def ping_redis() -> bool:
    try:
        r = get_redis()
        pong = await r.ping()
        return bool(pong)
    except Exception as e:
        logger.warning("Redis unreachable: %s", e)
        return False

# ---- Fixed-window rate limit per client/route ----
async def allow_request(client_key: str, route_key: str) -> bool:
    """
    Fixed window: increment a counter key; allow if <= max.
    Access codes are short, so redemption attempts are throttled per client.
    """
    if not _settings.rl_enabled:
        return True
    r = get_redis()
    key = f"rl:{route_key}:{client_key}"
    pipe = r.pipeline()
    pipe.incr(key)
    pipe.expire(key, _settings.rl_window_seconds)
    try:
        count, _ = await pipe.execute()
    except RedisError as e:
        # fail open
        logger.warning("rate limit skipped, Redis unreachable: %s", e)
        return True
    return int(count) <= _settings.rl_max_reqs
