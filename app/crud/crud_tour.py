import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from app.models import Tour

TOUR_SEARCH_COLUMNS = ("name", "description")


def tours_query(*, include_inactive: bool = False) -> Select:
    stmt = select(Tour).options(selectinload(Tour.room))
    if not include_inactive:
        stmt = stmt.where(Tour.is_active.is_(True))
    return stmt


async def get_tour(db: AsyncSession, tour_id: uuid.UUID) -> Optional[Tour]:
    result = await db.execute(
        select(Tour).where(Tour.id == tour_id).options(selectinload(Tour.room))
    )
    return result.scalar_one_or_none()
