import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from app.models import Booking, BookingStatus, Room

logger = logging.getLogger(__name__)

BOOKING_SEARCH_COLUMNS = ("event_description", "notes")


def _with_relations(stmt: Select) -> Select:
    return stmt.options(
        selectinload(Booking.user),
        selectinload(Booking.room),
        selectinload(Booking.tour),
    )


def bookings_query(*, user_id: Optional[uuid.UUID] = None) -> Select:
    """Base listing statement; restricted to one requester when ``user_id`` is given."""
    stmt = _with_relations(select(Booking))
    if user_id is not None:
        stmt = stmt.where(Booking.user_id == user_id)
    return stmt


async def get_booking(db: AsyncSession, booking_id: uuid.UUID) -> Optional[Booking]:
    stmt = (
        _with_relations(select(Booking).where(Booking.id == booking_id))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_booking(db: AsyncSession, booking: Booking) -> Booking:
    db.add(booking)
    await db.commit()
    return await get_booking(db, booking.id)


async def find_approved_conflicts(
    db: AsyncSession,
    *,
    room_id: uuid.UUID,
    start_time: datetime,
    end_time: datetime,
) -> List[Booking]:
    """Approved bookings in ``room_id`` whose time range overlaps ``[start_time, end_time)``."""
    stmt = select(Booking).where(
        Booking.room_id == room_id,
        Booking.status == BookingStatus.APPROVED,
        Booking.start_time < end_time,
        Booking.end_time > start_time,
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def compare_and_set_status(
    db: AsyncSession,
    *,
    booking_id: uuid.UUID,
    expected_version: int,
    new_status: BookingStatus,
    now: datetime,
) -> int:
    """Writes the new status only if the row is still at ``expected_version``.

    Returns the number of rows updated (0 or 1). The caller commits.
    """
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id, Booking.version == expected_version)
        .values(status=new_status, version=Booking.version + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def get_expired_approved(db: AsyncSession, now: datetime) -> List[Booking]:
    stmt = _with_relations(
        select(Booking).where(
            Booking.status == BookingStatus.APPROVED,
            Booking.end_time < now,
        )
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_by_status(db: AsyncSession) -> Dict[str, int]:
    result = await db.execute(select(Booking.status, func.count(Booking.id)).group_by(Booking.status))
    counts = {status.value: 0 for status in BookingStatus}
    for status, total in result.all():
        counts[status.value] = total
    return counts


async def count_by_room(db: AsyncSession) -> List[Tuple[uuid.UUID, str, int]]:
    stmt = (
        select(Room.id, Room.name, func.count(Booking.id))
        .join(Booking, Booking.room_id == Room.id)
        .group_by(Room.id, Room.name)
        .order_by(func.count(Booking.id).desc(), Room.name)
    )
    result = await db.execute(stmt)
    return [(room_id, name, total) for room_id, name, total in result.all()]
