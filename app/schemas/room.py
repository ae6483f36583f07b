import enum
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from app.schemas.common import PageMeta


class RoomSortField(str, enum.Enum):
    NAME = "name"
    CAPACITY = "capacity"
    CREATED_AT = "created_at"


class RoomSimple(BaseModel):
    id: uuid.UUID
    name: str
    capacity: int

    model_config = ConfigDict(from_attributes=True)


class Room(RoomSimple):
    description: Optional[str] = None
    facilities: List[str] = []
    photos: List[str] = []
    layout: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("facilities", "photos", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []


class RoomListResponse(PageMeta):
    rooms: List[Room]
