"""Async SQLAlchemy engine, session factory and FastAPI dependencies."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from tpv_api.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with async_session() as session:
        yield session


def get_session_factory() -> async_sessionmaker:
    """Session factory for work that outlives the request (background sync)."""
    return async_session
