"""Database utility functions."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker

from zenradar.db.session import async_session_factory


async def check_database_health(session_factory: async_sessionmaker = None) -> dict:
    """Check if database is accessible and responsive.

    Returns:
        dict with 'healthy' boolean and optional 'error' message
    """
    try:
        async with (session_factory or async_session_factory)() as session:
            await session.execute(text("SELECT 1"))
            return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
