import enum
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.common import PageMeta
from app.schemas.room import RoomSimple


class TourSortField(str, enum.Enum):
    NAME = "name"
    DURATION_MINUTES = "duration_minutes"
    CREATED_AT = "created_at"


class TourSlot(BaseModel):
    """One weekly slot, e.g. ``{"dayOfWeek": 1, "startTime": "10:00", "availableSlots": 15}``."""
    dayOfWeek: int
    startTime: str
    availableSlots: int


class TourSimple(BaseModel):
    id: uuid.UUID
    name: str
    meeting_point: Optional[str] = None
    guide_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Tour(TourSimple):
    description: Optional[str] = None
    duration_minutes: int
    max_participants: int
    guide_contact: Optional[str] = None
    schedule: List[TourSlot] = []
    is_active: bool
    room: Optional[RoomSimple] = None
    created_at: datetime


class TourListResponse(PageMeta):
    tours: List[Tour]
