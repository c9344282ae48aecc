from __future__ import annotations
from typing import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .core.config import get_settings
from .models import Base

settings = get_settings()

def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite leaves ON DELETE CASCADE unenforced unless asked per connection."""
    @event.listens_for(engine.sync_engine, "connect")
    def _fk_pragma(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

engine = create_async_engine(settings.database_url, echo=False, future=True)
if engine.dialect.name == "sqlite":
    enable_sqlite_foreign_keys(engine)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
