from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app import models, schemas, services
from app.db.session import get_db
from app.dependencies import get_current_user, get_dispatcher, get_optional_user, list_query_params
from app.services.notification_service import NotificationDispatcher
from app.utils.pagination import ListQueryParams
from app.utils.upstream import with_timeout

router = APIRouter()

tour_list_params = list_query_params(schemas.TourSortField, default_sort_by="name", default_sort_order="asc")


@router.get("/tours", response_model=schemas.TourListResponse)
async def list_tours(
    params: ListQueryParams = Depends(tour_list_params),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[models.Profile] = Depends(get_optional_user),
):
    """List bookable tours with their weekly schedule."""
    include_inactive = current_user is not None and current_user.is_admin
    return await with_timeout(
        services.tour_service.list_tours(db, params=params, include_inactive=include_inactive),
        operation="tour listing",
    )


@router.post("/tour-booking", response_model=schemas.BookingActionResponse, status_code=status.HTTP_201_CREATED)
async def create_tour_booking(
    booking_in: schemas.TourBookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: models.Profile = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Request a place on a guided tour. The booking starts out pending."""
    booking = await with_timeout(
        services.booking_service.create_tour_booking(
            db, booking_in=booking_in, requester=current_user, dispatcher=dispatcher
        ),
        operation="tour booking",
    )
    return schemas.BookingActionResponse(message="Tour booking requested", booking=schemas.Booking.model_validate(booking))
