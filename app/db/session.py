from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def make_session_factory(bind: AsyncEngine) -> sessionmaker:
    """Session factory used by requests, the expiry sweeper and the seed script."""
    # Loaded rows stay readable after commit
    return sessionmaker(bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
AsyncSessionLocal = make_session_factory(engine)


async def get_db() -> AsyncIterator[AsyncSession]:
    """One session per request, rolled back when the handler raises."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
