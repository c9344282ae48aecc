from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.exc import SQLAlchemyError

from .db import init_db, async_session_maker
from .core.config import get_settings
from .core.errors import HikeError, StoreError
from .core.logs import configure_logging
from .core.nats import nats_connect, nats_close
from .core.notify import NotificationKind, notify
from .core.redis import ping_redis
from .schemas import ErrorResponse
from .routers import events, posts, groups, codes, volunteers, checkpoints
from .services.codes import sweep_expired_codes

configure_logging()
settings = get_settings()
logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()

async def sweep_codes_job():
    try:
        async with async_session_maker() as db:
            n = await sweep_expired_codes(db)
        if n:
            logger.info("sweeper removed %d expired code(s)", n)
    except SQLAlchemyError as e:
        logger.error("code sweep failed: %s", e)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    # infra is optional; the service runs without it
    if settings.use_nats:
        try:
            await nats_connect()
        except Exception as e:
            logger.warning("NATS unavailable: %s", e)
    if settings.rl_enabled and not await ping_redis():
        logger.warning("rate limiting enabled but Redis is unreachable")

    if settings.enable_code_sweeper:
        scheduler.add_job(sweep_codes_job, "interval", seconds=settings.code_sweep_interval_sec,
                          id="sweep_expired_codes", replace_existing=True)
        scheduler.start()
        logger.info("code sweeper every %ss", settings.code_sweep_interval_sec)

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await nats_close()

app = FastAPI(title="scoutinghike", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# every HikeError is rendered by _error_response below
ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (403, 404, 409, 410, 422, 503)}

app.include_router(events.router, responses=ERROR_RESPONSES)
app.include_router(posts.router, responses=ERROR_RESPONSES)
app.include_router(groups.router, responses=ERROR_RESPONSES)
app.include_router(codes.router, responses=ERROR_RESPONSES)
app.include_router(volunteers.router, responses=ERROR_RESPONSES)
app.include_router(checkpoints.router, responses=ERROR_RESPONSES)

async def _error_response(exc: HikeError) -> JSONResponse:
    n = await notify(exc.title, exc.description, NotificationKind.DESTRUCTIVE)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.description, "error": exc.code, "notification": n.model_dump(mode="json")},
    )

@app.exception_handler(HikeError)
async def hike_error_handler(request: Request, exc: HikeError):
    return await _error_response(exc)

@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("store error on %s %s: %s", request.method, request.url.path, exc)
    orig = getattr(exc, "orig", None)
    return await _error_response(StoreError(str(orig or exc)))

@app.get("/health")
async def health():
    return {"status": "ok", "service": "scoutinghike"}

Instrumentator().instrument(app).expose(app)
