import uuid
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, JSON, String, Text, Uuid
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.utils.dates import utcnow

if TYPE_CHECKING:
    from .booking import Booking
    from .tour import Tour

# Postgres keeps text[] columns; other dialects (SQLite in tests) fall back to JSON.
StringList = ARRAY(String).with_variant(JSON(), "sqlite")


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    facilities: Mapped[Optional[List[str]]] = mapped_column(StringList, nullable=True)
    photos: Mapped[Optional[List[str]]] = mapped_column(StringList, nullable=True)
    layout: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    bookings: Mapped[List["Booking"]] = relationship(back_populates="room", cascade="all, delete-orphan")
    tours: Mapped[List["Tour"]] = relationship(back_populates="room")

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, name='{self.name}')>"
