import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app import models, schemas, services
from app.db.session import get_db
from app.dependencies import get_current_user, get_dispatcher, list_query_params, require_admin
from app.services.notification_service import NotificationDispatcher
from app.utils.pagination import ListQueryParams
from app.utils.upstream import with_timeout

router = APIRouter()

booking_list_params = list_query_params(schemas.BookingSortField, default_sort_by="created_at")


@router.get("/bookings", response_model=schemas.BookingListResponse)
async def list_bookings(
    params: ListQueryParams = Depends(booking_list_params),
    db: AsyncSession = Depends(get_db),
    current_user: models.Profile = Depends(get_current_user),
):
    """List the caller's bookings, or every booking for administrators."""
    return await with_timeout(
        services.booking_service.list_bookings(db, params=params, requester=current_user),
        operation="booking listing",
    )


@router.post("/bookings", response_model=schemas.BookingActionResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_in: schemas.BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: models.Profile = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    booking = await with_timeout(
        services.booking_service.create_booking(
            db, booking_in=booking_in, requester=current_user, dispatcher=dispatcher
        ),
        operation="booking creation",
    )
    return schemas.BookingActionResponse(message="Booking requested", booking=schemas.Booking.model_validate(booking))


@router.get("/bookings/{booking_id}", response_model=schemas.Booking)
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: models.Profile = Depends(get_current_user),
):
    return await with_timeout(
        services.booking_service.get_booking_for(db, booking_id, current_user),
        operation="booking lookup",
    )


@router.delete("/bookings/{booking_id}", response_model=schemas.BookingActionResponse)
async def cancel_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: models.Profile = Depends(get_current_user),
):
    """Withdraw one of your own pending bookings."""
    booking = await with_timeout(
        services.booking_workflow.cancel_own_booking(db, booking_id, current_user),
        operation="booking cancellation",
    )
    return schemas.BookingActionResponse(message="Booking cancelled", booking=schemas.Booking.model_validate(booking))


async def _change_status(
    booking_id: uuid.UUID,
    status_in: schemas.BookingStatusUpdate,
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
) -> schemas.BookingActionResponse:
    booking = await with_timeout(
        services.booking_workflow.transition(
            db,
            booking_id,
            status_in.status,
            dispatcher=dispatcher,
            expected_version=status_in.version,
        ),
        operation="booking status update",
    )
    return schemas.BookingActionResponse(message="Booking status updated successfully", booking=schemas.Booking.model_validate(booking))


@router.post("/bookings/{booking_id}/status", response_model=schemas.BookingActionResponse)
async def update_booking_status(
    booking_id: uuid.UUID,
    status_in: schemas.BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.Profile = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Approve, reject, complete or cancel a booking (administrators only)."""
    return await _change_status(booking_id, status_in, db, dispatcher)


@router.patch("/bookings/{booking_id}/status", response_model=schemas.BookingActionResponse)
async def patch_booking_status(
    booking_id: uuid.UUID,
    status_in: schemas.BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: models.Profile = Depends(require_admin),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await _change_status(booking_id, status_in, db, dispatcher)
