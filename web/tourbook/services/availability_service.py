from typing import Optional
import logging

from tourbook.core import BaseService, NotFoundError
from tourbook.infrastructure.repositories import BookingRepository, TourRepository
from tourbook.records import AvailabilityVerdict

logger = logging.getLogger(__name__)


class CapacityAggregator:
    """Seats already held on one tour day, across both stored booking shapes"""

    def __init__(self, booking_repo: BookingRepository):
        self.booking_repo = booking_repo

    async def used_capacity(
        self,
        tour_id: int,
        date_key: str,
        *,
        exclude_booking_id: Optional[int] = None
    ) -> int:
        """Sum of party sizes of non-cancelled bookings for *tour_id* on *date_key*.

        Legacy rows are matched by their timestamp falling inside the day,
        checkout rows by exact day string. The two queries never match the
        same row, so each booking is counted once. Returns 0 when nothing is
        booked, including for tours that do not exist.
        """
        legacy = await self.booking_repo.legacy_usage(
            tour_id, date_key, exclude_id=exclude_booking_id
        )
        modern = await self.booking_repo.modern_usage(
            tour_id, date_key, exclude_id=exclude_booking_id
        )
        return legacy + modern


class AvailabilityService(BaseService):
    """Availability verdicts for a party on a tour day"""

    def __init__(
        self,
        session,
        tour_repo: Optional[TourRepository] = None,
        booking_repo: Optional[BookingRepository] = None
    ):
        super().__init__(session)
        self.tour_repo = tour_repo or TourRepository(session)
        self.booking_repo = booking_repo or BookingRepository(session)
        self.aggregator = CapacityAggregator(self.booking_repo)

    async def check(
        self,
        tour_id: int,
        date_key: str,
        requested: int,
        *,
        exclude_booking_id: Optional[int] = None
    ) -> AvailabilityVerdict:
        """Can *requested* more people join *tour_id* on *date_key*?

        This does not reserve anything; admissions repeat it under a slot lock.

        Raises:
            NotFoundError: If the tour does not exist
        """
        capacity = await self.tour_repo.get_capacity(tour_id)
        if capacity is None:
            raise NotFoundError("Tour", tour_id)

        # A single party larger than the tour never fits; skip the lookup
        if requested > capacity:
            return AvailabilityVerdict(
                available=False,
                capacity=capacity,
                already_booked=None,
                can_accept=None,
                reason="exceeds capacity",
            )

        used = await self.aggregator.used_capacity(
            tour_id, date_key, exclude_booking_id=exclude_booking_id
        )
        available = used + requested <= capacity
        logger.debug(
            "Tour %s on %s: %s/%s booked, %s requested -> %s",
            tour_id, date_key, used, capacity, requested, available,
        )
        return AvailabilityVerdict(
            available=available,
            capacity=capacity,
            already_booked=used,
            can_accept=max(0, capacity - used),
        )
