from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, schemas
from app.utils.upstream import store_errors


async def get_booking_stats(db: AsyncSession) -> schemas.BookingStats:
    """Booking counts per status and per room, busiest rooms first."""
    async with store_errors(db, "booking statistics"):
        by_status = await crud.crud_booking.count_by_status(db)
        by_room = await crud.crud_booking.count_by_room(db)
    return schemas.BookingStats(
        total=sum(by_status.values()),
        by_status=by_status,
        by_room=[
            schemas.RoomBookingCount(room_id=room_id, room_name=name, total=total)
            for room_id, name, total in by_room
        ],
    )
