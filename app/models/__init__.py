# Import the Base class to make it accessible for models
# and for Alembic discovery via Base.metadata
from app.db.base_class import Base  # noqa: F401

from .enums import BookingStatus, UserRole
from .profile import Profile
from .room import Room
from .tour import Tour
from .booking import Booking

__all__ = [
    "Base",
    "BookingStatus",
    "UserRole",
    "Profile",
    "Room",
    "Tour",
    "Booking",
]
