from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models, schemas
from app.crud.crud_tour import TOUR_SEARCH_COLUMNS
from app.utils.pagination import ListQueryParams, apply_filters, paginate
from app.utils.upstream import store_errors


async def list_tours(
    db: AsyncSession, *, params: ListQueryParams, include_inactive: bool = False
) -> schemas.TourListResponse:
    stmt = crud.crud_tour.tours_query(include_inactive=include_inactive)
    stmt = apply_filters(stmt, models.Tour, params, search_columns=TOUR_SEARCH_COLUMNS)
    async with store_errors(db, "tour listing"):
        page = await paginate(db, stmt, models.Tour, params)
    return schemas.TourListResponse(
        tours=[schemas.Tour.model_validate(tour) for tour in page.items],
        **schemas.PageMeta.fields_from(page),
    )
