"""Async database session and engine configuration."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from zenradar.config import settings


def build_engine(url: str = None, **kwargs) -> AsyncEngine:
    """Create an async engine; SQLite gets no pool sizing options."""
    url = url or settings.DATABASE_URL
    engine_kwargs: dict = {"echo": settings.DEBUG and settings.ENVIRONMENT == "development"}
    # SQLite doesn't support pool_size / max_overflow / pool_pre_ping
    if not url.startswith("sqlite"):
        engine_kwargs.update(pool_size=10, max_overflow=5, pool_pre_ping=True)
    engine_kwargs.update(kwargs)
    return create_async_engine(url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()

async_session_factory = build_session_factory(engine)


async def init_db(target_engine: AsyncEngine = None) -> None:
    """Create all tables that do not exist yet."""
    from zenradar.models import Base

    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
