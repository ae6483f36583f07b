import enum
import logging
import uuid
from typing import Any, Callable, Dict, Optional, Type

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app import crud, models
from app.core.config import settings
from app.core.exceptions import Forbidden, Unauthorized
from app.db.session import get_db
from app.services import notification_service
from app.services.notification_service import NotificationDispatcher
from app.utils.pagination import ListQueryParams, parse_query_params
from app.utils.storage import get_storage  # noqa: F401

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_session_token(token: str) -> Dict[str, Any]:
    """Verify a session token issued by the identity provider and return its claims."""
    return jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        options={"verify_aud": settings.JWT_AUDIENCE is not None},
    )


async def _resolve_profile(
    db: AsyncSession, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[models.Profile]:
    if credentials is None:
        return None
    try:
        claims = decode_session_token(credentials.credentials)
        subject = uuid.UUID(str(claims["sub"]))
    except (JWTError, KeyError, ValueError) as e:
        logger.warning(f"Rejected session token: {e}")
        raise Unauthorized("Could not validate credentials")

    profile = await crud.crud_profile.get_profile(db, subject)
    if profile is not None:
        return profile
    if not claims.get("email"):
        raise Unauthorized("Could not validate credentials")
    try:
        return await crud.crud_profile.create_profile_from_claims(db, subject, claims)
    except IntegrityError:
        # Another request created it first
        await db.rollback()
        profile = await crud.crud_profile.get_profile(db, subject)
        if profile is None:
            raise Unauthorized("Could not validate credentials")
        return profile


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> models.Profile:
    if credentials is None:
        raise Unauthorized("Not authenticated")
    return await _resolve_profile(db, credentials)


async def get_optional_user(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[models.Profile]:
    """Like ``get_current_user`` but anonymous callers get ``None``."""
    return await _resolve_profile(db, credentials)


def require_admin(current_user: models.Profile = Depends(get_current_user)) -> models.Profile:
    if not current_user.is_admin:
        raise Forbidden("Administrator privileges required")
    return current_user


def get_dispatcher() -> NotificationDispatcher:
    return notification_service.dispatcher


def list_query_params(
    sortable_fields: Type[enum.Enum], default_sort_by: str, default_sort_order: str = "desc"
) -> Callable[[Request], ListQueryParams]:
    """Builds a dependency that validates a list endpoint's query string."""
    def dependency(request: Request) -> ListQueryParams:
        return parse_query_params(
            request.query_params,
            sortable_fields=sortable_fields,
            default_sort_by=default_sort_by,
            default_sort_order=default_sort_order,
        )
    return dependency
