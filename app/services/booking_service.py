import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models, schemas
from app.core.exceptions import Conflict, NotFound, ValidationError
from app.crud.crud_booking import BOOKING_SEARCH_COLUMNS
from app.models import Booking, BookingStatus
from app.services.notification_service import NotificationDispatcher, new_booking_notifications
from app.utils.dates import as_utc, utcnow
from app.utils.pagination import ListQueryParams, apply_filters, paginate
from app.utils.upstream import store_errors

logger = logging.getLogger(__name__)


async def list_bookings(
    db: AsyncSession, *, params: ListQueryParams, requester: models.Profile
) -> schemas.BookingListResponse:
    """Requesters see their own bookings; administrators see everyone's."""
    stmt = crud.crud_booking.bookings_query(user_id=None if requester.is_admin else requester.id)
    stmt = apply_filters(stmt, Booking, params, search_columns=BOOKING_SEARCH_COLUMNS)
    async with store_errors(db, "booking listing"):
        page = await paginate(db, stmt, Booking, params)
    return schemas.BookingListResponse(
        bookings=[schemas.Booking.model_validate(b) for b in page.items],
        **schemas.PageMeta.fields_from(page),
    )


async def get_booking_for(db: AsyncSession, booking_id: uuid.UUID, requester: models.Profile) -> Booking:
    async with store_errors(db, "booking lookup"):
        booking = await crud.crud_booking.get_booking(db, booking_id)
    # Someone else's booking looks the same as a missing one
    if booking is None or (not requester.is_admin and booking.user_id != requester.id):
        raise NotFound("Booking not found")
    return booking


def _check_start_in_future(start_time: datetime) -> None:
    if start_time <= utcnow():
        raise ValidationError("start_time must be in the future")


async def _ensure_slot_free(
    db: AsyncSession, *, room_id: uuid.UUID, start_time: datetime, end_time: datetime, message: str
) -> None:
    conflicts = await crud.crud_booking.find_approved_conflicts(
        db, room_id=room_id, start_time=start_time, end_time=end_time
    )
    if conflicts:
        raise Conflict(
            message,
            details={
                "conflicts": [
                    {
                        "id": str(c.id),
                        "status": c.status.value,
                        "start_time": as_utc(c.start_time).isoformat(),
                        "end_time": as_utc(c.end_time).isoformat(),
                    }
                    for c in conflicts
                ]
            },
        )


async def _notify_admins(
    db: AsyncSession, booking: Booking, dispatcher: Optional[NotificationDispatcher]
) -> None:
    if dispatcher is None:
        return
    try:
        admins = await crud.crud_profile.get_admins(db)
        if not admins:
            logger.warning("No admin users found to notify of new booking")
        for message in new_booking_notifications(booking, admins):
            dispatcher.enqueue(message)
    except Exception as e:
        logger.error(f"Could not queue admin notifications for booking {booking.id}: {e}", exc_info=True)


async def create_booking(
    db: AsyncSession,
    *,
    booking_in: schemas.BookingCreate,
    requester: models.Profile,
    dispatcher: Optional[NotificationDispatcher],
) -> Booking:
    start_time = as_utc(booking_in.start_time)
    end_time = as_utc(booking_in.end_time)
    _check_start_in_future(start_time)

    async with store_errors(db, "booking creation"):
        room = await crud.crud_room.get_room(db, booking_in.room_id)
        if room is None or not room.is_active:
            raise NotFound("Room not found")
        if booking_in.guest_count is not None and booking_in.guest_count > room.capacity:
            raise ValidationError(f"Guest count exceeds room capacity ({room.capacity})")

        await _ensure_slot_free(
            db,
            room_id=room.id,
            start_time=start_time,
            end_time=end_time,
            message="Room is already booked for the requested time",
        )

        booking = await crud.crud_booking.create_booking(
            db,
            Booking(
                user_id=requester.id,
                room_id=room.id,
                start_time=start_time,
                end_time=end_time,
                status=BookingStatus.PENDING,
                event_description=booking_in.event_description,
                guest_count=booking_in.guest_count,
                proposal_file=booking_in.proposal_file,
                notes=booking_in.notes,
                is_tour=False,
            ),
        )

    logger.info(f"Booking {booking.id} requested by {requester.id} for room {room.id}")
    await _notify_admins(db, booking, dispatcher)
    return booking


async def create_tour_booking(
    db: AsyncSession,
    *,
    booking_in: schemas.TourBookingCreate,
    requester: models.Profile,
    dispatcher: Optional[NotificationDispatcher],
) -> Booking:
    """Book a guided tour. The booking holds the tour's venue room for the tour's duration."""
    async with store_errors(db, "tour booking creation"):
        tour = await crud.crud_tour.get_tour(db, booking_in.tour_id)
        if tour is None or not tour.is_active:
            raise NotFound("Tour not found")
        if booking_in.guest_count > tour.max_participants:
            raise ValidationError(f"Participant count exceeds the tour limit ({tour.max_participants})")

        start_time = as_utc(booking_in.start_time)
        if booking_in.end_time is not None:
            end_time = as_utc(booking_in.end_time)
        else:
            end_time = start_time + timedelta(minutes=tour.duration_minutes)
        _check_start_in_future(start_time)

        await _ensure_slot_free(
            db,
            room_id=tour.room_id,
            start_time=start_time,
            end_time=end_time,
            message="Tour time slot is already booked",
        )

        event_description = booking_in.event_description or (
            f"{tour.name} - {booking_in.special_requests or 'Standard tour booking'}"
        )
        booking = await crud.crud_booking.create_booking(
            db,
            Booking(
                user_id=requester.id,
                room_id=tour.room_id,
                tour_id=tour.id,
                start_time=start_time,
                end_time=end_time,
                status=BookingStatus.PENDING,
                event_description=event_description,
                guest_count=booking_in.guest_count,
                proposal_file=booking_in.proposal_file,
                notes=booking_in.notes or f"Tour booking with {tour.guide_name or 'library staff'} guide",
                is_tour=True,
            ),
        )

    logger.info(f"Tour booking {booking.id} requested by {requester.id} for tour {tour.id}")
    await _notify_admins(db, booking, dispatcher)
    return booking
