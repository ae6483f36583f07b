# flake8: noqa
from .common import PageMeta, ErrorResponse, MessageResponse
from .profile import Profile, ProfileSimple, ProfileUpdate
from .room import Room, RoomSimple, RoomSortField, RoomListResponse
from .tour import Tour, TourSimple, TourSlot, TourSortField, TourListResponse
from .booking import (
    Booking, BookingCreate, TourBookingCreate, BookingSortField,
    BookingStatusUpdate, BookingActionResponse, BookingListResponse
)
from .uploads import UploadResponse, UploadOperation, UploadOperationRequest, UploadOperationResponse
from .admin import BookingStats, RoomBookingCount
