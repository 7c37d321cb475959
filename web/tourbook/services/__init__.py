from .availability_service import AvailabilityService, CapacityAggregator
from .booking_service import BookingService
from .payment_service import PaymentService

__all__ = [
    "AvailabilityService",
    "CapacityAggregator",
    "BookingService",
    "PaymentService",
]
