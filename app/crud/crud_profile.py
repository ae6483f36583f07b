import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Profile, UserRole
from app.schemas.profile import ProfileUpdate

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, profile_id: uuid.UUID) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def create_profile_from_claims(db: AsyncSession, profile_id: uuid.UUID, claims: Dict[str, Any]) -> Profile:
    """Creates the profile row for a first-time caller from their token claims."""
    metadata = claims.get("user_metadata") or {}
    profile = Profile(
        id=profile_id,
        email=claims.get("email") or "",
        full_name=metadata.get("full_name") or None,
        institution=metadata.get("institution") or None,
        phone=metadata.get("phone") or None,
        role=UserRole.USER,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    logger.info(f"Created profile {profile.id} for {profile.email}")
    return profile


async def update_profile(db: AsyncSession, profile: Profile, profile_in: ProfileUpdate) -> Profile:
    update_data = profile_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(profile, field, value)
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


async def get_admins(db: AsyncSession) -> List[Profile]:
    result = await db.execute(select(Profile).where(Profile.role == UserRole.ADMIN))
    return list(result.scalars().all())
