"""Async database engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

# Import all models so SQLModel.metadata picks them up
import ragchat.models  # noqa: F401


def create_engine(database_url: str) -> AsyncEngine:
    """Build the async engine for ``database_url``."""
    kwargs: dict = {"echo": False}
    if not database_url.startswith("sqlite"):
        kwargs.update(pool_size=20, max_overflow=10)
    return create_async_engine(database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
