import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import UserRole


class ProfileSimple(BaseModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Profile(ProfileSimple):
    institution: Optional[str] = None
    phone: Optional[str] = None
    profile_photo: Optional[str] = None
    role: UserRole
    created_at: datetime


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    institution: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    profile_photo: Optional[str] = None
