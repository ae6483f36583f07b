import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.models import Room

ROOM_SEARCH_COLUMNS = ("name", "description")


def rooms_query(*, include_inactive: bool = False) -> Select:
    stmt = select(Room)
    if not include_inactive:
        stmt = stmt.where(Room.is_active.is_(True))
    return stmt


async def get_room(db: AsyncSession, room_id: uuid.UUID) -> Optional[Room]:
    result = await db.execute(select(Room).where(Room.id == room_id))
    return result.scalar_one_or_none()
