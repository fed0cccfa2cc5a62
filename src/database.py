from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import DATABASE_URL
from analytics.models import metadata as links_metadata  # links and clicks tables
from models import Base

engine = create_async_engine(DATABASE_URL)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


def get_session_maker() -> async_sessionmaker:
    """
    Process-wide session factory. Background work that outlives the request
    (click recording) opens its own sessions from it.
    """
    return async_session_maker


async def get_async_session(
    session_maker: async_sessionmaker = Depends(get_session_maker),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


async def create_db_and_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.run_sync(links_metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()
