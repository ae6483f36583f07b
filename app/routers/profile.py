from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models, schemas
from app.db.session import get_db
from app.dependencies import get_current_user
from app.utils.upstream import store_errors

router = APIRouter()


@router.get("/profile/me", response_model=schemas.Profile)
async def read_my_profile(current_user: models.Profile = Depends(get_current_user)):
    return current_user


@router.patch("/profile/me", response_model=schemas.Profile)
async def update_my_profile(
    profile_in: schemas.ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: models.Profile = Depends(get_current_user),
):
    async with store_errors(db, "profile update"):
        return await crud.crud_profile.update_profile(db, current_user, profile_in)
