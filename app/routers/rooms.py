import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app import models, schemas, services
from app.db.session import get_db
from app.dependencies import get_optional_user, list_query_params
from app.utils.pagination import ListQueryParams
from app.utils.upstream import with_timeout

router = APIRouter()

room_list_params = list_query_params(schemas.RoomSortField, default_sort_by="name", default_sort_order="asc")


@router.get("/rooms", response_model=schemas.RoomListResponse)
async def list_rooms(
    params: ListQueryParams = Depends(room_list_params),
    db: AsyncSession = Depends(get_db),
    current_user: Optional[models.Profile] = Depends(get_optional_user),
):
    """List rooms. Inactive rooms are only visible to administrators."""
    include_inactive = current_user is not None and current_user.is_admin
    return await with_timeout(
        services.room_service.list_rooms(db, params=params, include_inactive=include_inactive),
        operation="room listing",
    )


@router.get("/rooms/{room_id}", response_model=schemas.Room)
async def get_room(
    room_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[models.Profile] = Depends(get_optional_user),
):
    include_inactive = current_user is not None and current_user.is_admin
    return await with_timeout(
        services.room_service.get_room(db, room_id, include_inactive=include_inactive),
        operation="room lookup",
    )
