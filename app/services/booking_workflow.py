"""
Booking status workflow.

A booking moves through a fixed set of states::

    pending  -> approved | rejected | cancelled
    approved -> completed | cancelled

``rejected``, ``completed`` and ``cancelled`` are terminal. Every status
write goes through ``_apply``, which checks the transition table and then
updates the row with a compare-and-set on ``version``, so two concurrent
writers cannot both succeed from the same starting state.
"""
import logging
import uuid
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, IllegalTransition, NotFound
from app.crud import crud_booking
from app.models import Booking, BookingStatus, Profile
from app.services.notification_service import NotificationDispatcher, decision_notification
from app.utils.dates import as_utc, utcnow
from app.utils.upstream import store_errors

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELLED}),
    BookingStatus.APPROVED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


async def _apply(
    db: AsyncSession,
    booking: Booking,
    new_status: BookingStatus,
    *,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Booking:
    if not can_transition(booking.status, new_status):
        logger.warning(
            f"Rejected status change for booking {booking.id}: {booking.status.value} -> {new_status.value}"
        )
        raise IllegalTransition(booking.status.value, new_status.value)

    current_version = booking.version
    if expected_version is not None and expected_version != current_version:
        raise Conflict(
            "Booking was modified by another request",
            details={"expected_version": expected_version, "current_version": current_version},
        )

    async with store_errors(db, "booking status update"):
        updated = await crud_booking.compare_and_set_status(
            db,
            booking_id=booking.id,
            expected_version=current_version,
            new_status=new_status,
            now=now or utcnow(),
        )
        if updated == 0:
            raise Conflict("Booking was modified by another request")
        await db.commit()
        refreshed = await crud_booking.get_booking(db, booking.id)

    if refreshed is None:
        raise NotFound("Booking not found")
    return refreshed


def _notify_requester(dispatcher: Optional[NotificationDispatcher], booking: Booking) -> None:
    if dispatcher is None:
        return
    try:
        message = decision_notification(booking)
        if message is not None:
            dispatcher.enqueue(message)
    except Exception as e:
        logger.error(f"Could not queue notification for booking {booking.id}: {e}", exc_info=True)


async def transition(
    db: AsyncSession,
    booking_id: uuid.UUID,
    new_status: BookingStatus,
    *,
    dispatcher: Optional[NotificationDispatcher],
    expected_version: Optional[int] = None,
) -> Booking:
    """Move a booking to ``new_status`` and notify the requester of approvals and rejections.

    Raises ``NotFound``, ``IllegalTransition`` or ``Conflict`` without
    touching the row. The returned booking has its requester, room and tour
    loaded.
    """
    async with store_errors(db, "booking lookup"):
        booking = await crud_booking.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking not found")

    previous = booking.status
    updated = await _apply(db, booking, new_status, expected_version=expected_version)
    logger.info(f"Booking {booking_id} status changed: {previous.value} -> {new_status.value}")

    _notify_requester(dispatcher, updated)
    return updated


async def sweep_expired_approved(
    db: AsyncSession, bookings: Iterable[Booking], *, now: Optional[datetime] = None
) -> List[Booking]:
    """Complete every approved booking in ``bookings`` whose end time has passed."""
    now = now or utcnow()
    completed = []
    for booking in bookings:
        if booking.status != BookingStatus.APPROVED or as_utc(booking.end_time) >= now:
            continue
        try:
            completed.append(await _apply(db, booking, BookingStatus.COMPLETED, now=now))
        except Conflict:
            logger.info(f"Booking {booking.id} changed while sweeping; leaving it as is")
    return completed


async def run_expiry_sweep(db: AsyncSession, *, now: Optional[datetime] = None) -> List[Booking]:
    now = now or utcnow()
    async with store_errors(db, "expiry sweep query"):
        candidates = await crud_booking.get_expired_approved(db, now)
    completed = await sweep_expired_approved(db, candidates, now=now)
    if completed:
        logger.info(f"Expiry sweep completed {len(completed)} booking(s)")
    return completed


async def cancel_own_booking(db: AsyncSession, booking_id: uuid.UUID, requester: Profile) -> Booking:
    """A requester withdraws one of their own pending bookings."""
    async with store_errors(db, "booking lookup"):
        booking = await crud_booking.get_booking(db, booking_id)
    if booking is None or booking.user_id != requester.id:
        raise NotFound("Booking not found")
    if booking.status != BookingStatus.PENDING:
        raise IllegalTransition(booking.status.value, BookingStatus.CANCELLED.value)

    cancelled = await _apply(db, booking, BookingStatus.CANCELLED)
    logger.info(f"Booking {booking_id} cancelled by requester {requester.id}")
    return cancelled
