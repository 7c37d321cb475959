from .tour_repository import TourRepository
from .booking_repository import BookingRepository, to_record
from .slot_repository import SlotRepository
from .user_repository import UserRepository

__all__ = [
    "TourRepository",
    "BookingRepository",
    "to_record",
    "SlotRepository",
    "UserRepository",
]
