from fastapi import APIRouter

from . import rooms
from . import tours
from . import bookings
from . import uploads
from . import profile
from . import admin

api_router = APIRouter()

api_router.include_router(rooms.router, tags=["rooms"])
api_router.include_router(tours.router, tags=["tours"])
api_router.include_router(bookings.router, tags=["bookings"])
api_router.include_router(uploads.router, tags=["uploads"])
api_router.include_router(profile.router, tags=["profile"])
api_router.include_router(admin.router, tags=["admin"])
