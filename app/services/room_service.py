import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models, schemas
from app.core.exceptions import NotFound
from app.crud.crud_room import ROOM_SEARCH_COLUMNS
from app.utils.pagination import ListQueryParams, apply_filters, paginate
from app.utils.upstream import store_errors


async def list_rooms(
    db: AsyncSession, *, params: ListQueryParams, include_inactive: bool = False
) -> schemas.RoomListResponse:
    stmt = crud.crud_room.rooms_query(include_inactive=include_inactive)
    stmt = apply_filters(stmt, models.Room, params, search_columns=ROOM_SEARCH_COLUMNS)
    async with store_errors(db, "room listing"):
        page = await paginate(db, stmt, models.Room, params)
    return schemas.RoomListResponse(
        rooms=[schemas.Room.model_validate(room) for room in page.items],
        **schemas.PageMeta.fields_from(page),
    )


async def get_room(db: AsyncSession, room_id: uuid.UUID, *, include_inactive: bool = False) -> models.Room:
    async with store_errors(db, "room lookup"):
        room = await crud.crud_room.get_room(db, room_id)
    if room is None or (not room.is_active and not include_inactive):
        raise NotFound("Room not found")
    return room
