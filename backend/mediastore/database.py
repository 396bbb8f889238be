"""Async SQLAlchemy engine and session factory.

Usage:
    engine = build_engine(settings.DATABASE_URL)
    await init_models(engine)
    repository = FileRepository(build_session_factory(engine))
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from mediastore.models import Base


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine. Pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def init_models(bind: AsyncEngine) -> None:
    """Create the files table (and its unique uuid index) if missing."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
