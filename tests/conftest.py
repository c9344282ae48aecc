import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTH_JWKS_URL", "http://auth.test/.well-known/jwks.json")
os.environ["RL_ENABLED"] = "false"
os.environ["USE_NATS"] = "false"
os.environ["ENABLE_CODE_SWEEPER"] = "false"
os.environ["SESSION_BACKEND"] = "signed"
os.environ["SESSION_SECRET"] = "test-session-secret"

import datetime as dt
import uuid
from datetime import datetime, timezone

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scoutinghike.db import enable_sqlite_foreign_keys
from scoutinghike.deps import get_claims, get_db
from scoutinghike.main import app
from scoutinghike.models import Base, Event, Post, WalkingGroup

T0 = datetime(2026, 5, 16, 9, 0, tzinfo=timezone.utc)
ORGANISER_ID = uuid.UUID("6f1c0a52-8d55-4a1e-9a57-1f0c3e1f9a01")


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hike.db'}")
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def event(db):
    e = Event(name="Nachtwandeling", date=dt.date(2026, 5, 16), creator_id=ORGANISER_ID, is_active=True)
    db.add(e)
    await db.commit()
    return e


@pytest.fixture
async def posts(db, event):
    p1 = Post(event_id=event.id, name="Post 1", location="Bosrand", order_number=1)
    p2 = Post(event_id=event.id, name="Post 2", location="Heide", order_number=2)
    db.add_all([p1, p2])
    await db.commit()
    return p1, p2


@pytest.fixture
async def alpha(db, event):
    g = WalkingGroup(event_id=event.id, name="Alpha", start_time=T0, members=["Sanne", "Daan"])
    db.add(g)
    await db.commit()
    return g


@pytest.fixture
def claims():
    return {"sub": str(ORGANISER_ID), "role": "organiser"}


@pytest.fixture
async def client(session_maker, claims):
    async def _get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_claims] = lambda: dict(claims)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
