"""Database configuration and session management."""
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from cnc_admin.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def get_session_maker() -> async_sessionmaker:
    """Session factory used by request handlers and background writers."""
    return async_session_maker


async def get_db(
    session_maker: async_sessionmaker = Depends(get_session_maker),
) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
