from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from core.config import settings

# Table definitions must be imported before create_all
import backend.models  # noqa: F401

engine = create_async_engine(settings.DATABASE_URL, echo=False)


async def init_db(db_engine: AsyncEngine = None):
    async with (db_engine or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def get_session_factory(db_engine: AsyncEngine = None) -> async_sessionmaker:
    return async_sessionmaker(db_engine or engine, class_=AsyncSession, expire_on_commit=False)
