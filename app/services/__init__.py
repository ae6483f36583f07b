from . import notification_service
from . import booking_workflow
from . import booking_service
from . import room_service
from . import tour_service
from . import upload_service
from . import admin_service

__all__ = [
    "notification_service",
    "booking_workflow",
    "booking_service",
    "room_service",
    "tour_service",
    "upload_service",
    "admin_service",
]
