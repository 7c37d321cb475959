from .tour_schemas import AvailabilityOut
from .booking_schemas import BookingCreate, BookingUpdate, BookingOut, BookingStats, BookingStatsOut
from .payment_schemas import WebhookAck

__all__ = [
    "AvailabilityOut",
    "BookingCreate",
    "BookingUpdate",
    "BookingOut",
    "BookingStats",
    "BookingStatsOut",
    "WebhookAck",
]
