import uuid
from typing import Dict, List

from pydantic import BaseModel


class RoomBookingCount(BaseModel):
    room_id: uuid.UUID
    room_name: str
    total: int


class BookingStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_room: List[RoomBookingCount]
