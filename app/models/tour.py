import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.utils.dates import utcnow

if TYPE_CHECKING:
    from .booking import Booking
    from .room import Room


class Tour(Base):
    """A guided tour. Bookings for it are held against ``room`` (the venue)."""
    __tablename__ = "tours"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    meeting_point: Mapped[str] = mapped_column(String, nullable=False)
    guide_name: Mapped[str] = mapped_column(String, nullable=False)
    guide_contact: Mapped[str] = mapped_column(String, nullable=False)
    # [{"dayOfWeek": 1, "startTime": "10:00", "availableSlots": 15}, ...]
    schedule: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    room_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("rooms.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    room: Mapped["Room"] = relationship(back_populates="tours")
    bookings: Mapped[List["Booking"]] = relationship(back_populates="tour")

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, name='{self.name}')>"
