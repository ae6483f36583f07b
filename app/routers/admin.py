from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app import models, schemas, services
from app.db.session import get_db
from app.dependencies import require_admin
from app.utils.upstream import with_timeout

router = APIRouter()


@router.get("/admin/stats", response_model=schemas.BookingStats)
async def booking_stats(
    db: AsyncSession = Depends(get_db),
    admin: models.Profile = Depends(require_admin),
):
    """Booking counts per status and per room."""
    return await with_timeout(services.admin_service.get_booking_stats(db), operation="booking statistics")
