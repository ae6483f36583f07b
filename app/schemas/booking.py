import enum
import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from app.models.enums import BookingStatus
from app.schemas.common import PageMeta
from app.schemas.profile import ProfileSimple
from app.schemas.room import RoomSimple
from app.schemas.tour import TourSimple
from app.utils.dates import as_utc

# Timestamps without an offset are taken as UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class BookingSortField(str, enum.Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    START_TIME = "start_time"
    END_TIME = "end_time"
    STATUS = "status"


class BookingCreate(BaseModel):
    room_id: uuid.UUID
    start_time: UtcDatetime
    end_time: UtcDatetime
    event_description: Optional[str] = Field(None, max_length=2000)
    guest_count: Optional[int] = Field(None, ge=1)
    proposal_file: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TourBookingCreate(BaseModel):
    tour_id: uuid.UUID
    start_time: UtcDatetime
    # Defaults to start_time plus the tour's duration
    end_time: Optional[UtcDatetime] = None
    guest_count: int = Field(1, ge=1)
    event_description: Optional[str] = Field(None, max_length=2000)
    special_requests: Optional[str] = Field(None, max_length=2000)
    proposal_file: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_time_range(self):
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class Booking(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    room_id: uuid.UUID
    tour_id: Optional[uuid.UUID] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    event_description: Optional[str] = None
    guest_count: Optional[int] = None
    proposal_file: Optional[str] = None
    notes: Optional[str] = None
    is_tour: bool
    version: int
    created_at: datetime
    updated_at: datetime
    user: Optional[ProfileSimple] = None
    room: Optional[RoomSimple] = None
    tour: Optional[TourSimple] = None

    model_config = ConfigDict(from_attributes=True)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    # When given, the update only applies if the booking is still at this version
    version: Optional[int] = Field(None, ge=1)


class BookingActionResponse(BaseModel):
    success: bool = True
    message: str
    booking: Booking


class BookingListResponse(PageMeta):
    bookings: List[Booking]
