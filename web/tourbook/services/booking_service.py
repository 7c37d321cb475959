from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import DBAPIError

from tourbook.core import (
    AuthorizationError, BaseService, BusinessLogicError, CapacityExceededError, ConflictError,
    NotFoundError, TransientStoreError, ValidationError, get_settings,
)
from tourbook.infrastructure.repositories import BookingRepository, TourRepository, UserRepository
from tourbook.locks import SlotLock, is_transient, store_errors
from tourbook.records import BookingRecord, BookingStatus, Provenance, to_date_key
from tourbook.roles import STAFF_ROLES
from tourbook.services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)


def _is_staff(user: dict) -> bool:
    return user.get("role") in {r.value for r in STAFF_ROLES}


def _is_owner(record: BookingRecord, user: dict) -> bool:
    sub = user.get("sub")
    if record.user_id is not None and sub is not None and str(record.user_id) == str(sub):
        return True
    email = user.get("email")
    return bool(record.email and email and record.email == email)


def _user_id(user: dict) -> Optional[int]:
    sub = user.get("sub")
    return int(sub) if sub is not None and str(sub).isdigit() else None


class BookingService(BaseService):
    """Booking admission and lifecycle.

    Every write that adds demand to a tour day goes through :meth:`admit`
    or :meth:`update_booking`, which re-run the availability check while
    holding the :class:`SlotLock` for that day.
    """

    def __init__(
        self,
        session,
        booking_repo: Optional[BookingRepository] = None,
        tour_repo: Optional[TourRepository] = None,
        user_repo: Optional[UserRepository] = None
    ):
        super().__init__(session)
        self.booking_repo = booking_repo or BookingRepository(session)
        self.tour_repo = tour_repo or TourRepository(session)
        self.user_repo = user_repo or UserRepository(session)
        self.availability = AvailabilityService(session, self.tour_repo, self.booking_repo)

    # ------------------------------------------------------------------
    #  Admission
    # ------------------------------------------------------------------

    async def admit(
        self,
        *,
        tour_id: int,
        date_key: str,
        party_size: int,
        provenance: Provenance,
        status: Optional[BookingStatus] = None,
        fields: Optional[Dict[str, Any]] = None
    ) -> BookingRecord:
        """Commit a new booking if the tour day still has room for it.

        Raises:
            NotFoundError: If the tour does not exist
            CapacityExceededError: If the party does not fit; nothing is written
            TransientStoreError: If the store failed; safe to retry
        """
        if party_size < 1:
            raise ValidationError("participants must be a positive number", field="participants")
        if status is None:
            status = BookingStatus.paid if provenance is Provenance.payment else BookingStatus.pending
        if status is BookingStatus.cancelled:
            raise ValidationError("New bookings cannot be cancelled", field="status")

        await self._ensure_fits(tour_id, party_size)

        try:
            async with SlotLock(self.session, tour_id, date_key):
                verdict = await self.availability.check(tour_id, date_key, party_size)
                if not verdict.available:
                    raise CapacityExceededError(verdict.capacity, verdict.already_booked, party_size)
                record = await self.booking_repo.insert(
                    tour_id=tour_id,
                    date_key=date_key,
                    party_size=party_size,
                    status=status,
                    provenance=provenance,
                    fields=fields,
                )
        except CapacityExceededError as exc:
            logger.info(
                "Rejected %s booking for tour %s on %s: %s requested, %s left",
                provenance.value, tour_id, date_key, party_size, exc.can_accept,
            )
            raise
        except DBAPIError as exc:
            if is_transient(exc):
                raise TransientStoreError() from exc
            raise

        logger.info(
            "Committed booking %s (%s) for tour %s on %s, party of %s",
            record.id, provenance.value, tour_id, date_key, party_size,
        )
        return record

    async def _ensure_fits(self, tour_id: int, party_size: int) -> int:
        """Tour lookup and oversized-party rejection before any lock is taken"""
        capacity = await self.tour_repo.get_capacity(tour_id)
        if capacity is None:
            raise NotFoundError("Tour", tour_id)
        if party_size > capacity:
            raise CapacityExceededError(capacity, None, party_size)
        return capacity

    async def create_admin_booking(self, data: Dict[str, Any]) -> BookingRecord:
        """Direct creation from the admin dashboard.

        *data* uses the request field names (``tour``, ``user``,
        ``participants``, ``startDate``, ``price`` and the checkout aliases).
        """
        tour_id = data.get("tour")
        if tour_id is None and data.get("itemId") is not None:
            item_id = str(data["itemId"])
            if not item_id.isdigit():
                raise ValidationError("itemId must reference a tour", field="itemId")
            tour_id = int(item_id)
        if tour_id is None:
            raise ValidationError("tour is required", field="tour")

        tour = await self.tour_repo.get(tour_id)
        if not tour:
            raise NotFoundError("Tour", tour_id)

        user_id = data.get("user")
        if user_id is not None and not await self.user_repo.exists(user_id):
            raise NotFoundError("User", user_id)

        raw_date = data.get("startDate") or data.get("date")
        if raw_date is None:
            raise ValidationError("startDate is required (YYYY-MM-DD)", field="startDate")
        date_key = to_date_key(raw_date, field_name="startDate")

        party_size = data.get("participants") or data.get("quantity") or 1

        price = data.get("price")
        if data.get("totalCents") is not None:
            total_cents = int(data["totalCents"])
        else:
            unit = Decimal(str(price)) if price is not None else (tour.price or Decimal("0"))
            total_cents = int((unit * 100).to_integral_value(ROUND_HALF_UP)) * party_size

        status = data.get("status")
        if status is None:
            status = BookingStatus.paid if data.get("paymentIntentId") else BookingStatus.pending

        settings = get_settings()
        fields = {
            "user_id": user_id,
            "email": data.get("email"),
            "customer_name": data.get("customerName"),
            "customer_phone": data.get("customerPhone"),
            "item_name": tour.name,
            "price": Decimal(str(price)) if price is not None else None,
            "total_cents": total_cents,
            "currency": (data.get("currency") or tour.currency or settings.DEFAULT_CURRENCY).lower(),
            "payment_intent_id": data.get("paymentIntentId"),
            "meta": data.get("metadata") or {},
        }

        return await self.admit(
            tour_id=tour_id,
            date_key=date_key,
            party_size=party_size,
            provenance=Provenance.admin,
            status=BookingStatus(status),
            fields=fields,
        )

    # ------------------------------------------------------------------
    #  Lifecycle
    # ------------------------------------------------------------------

    async def cancel_booking(self, booking_id: int, user: dict) -> BookingRecord:
        """Committed -> Cancelled. The row is kept; its seats are released."""
        record = await self.get_booking(booking_id, user)

        if record.status is BookingStatus.cancelled:
            raise BusinessLogicError("Booking already cancelled", rule="booking_status_transition")

        today = datetime.now(timezone.utc).date().isoformat()
        if record.date_key and record.date_key < today:
            raise BusinessLogicError(
                "Cannot cancel a booking that has already started",
                rule="booking_cancellation"
            )

        cancelled = await self.booking_repo.mark_cancelled(booking_id)
        if not cancelled:
            # Lost a race with another cancellation
            raise BusinessLogicError("Booking already cancelled", rule="booking_status_transition")
        await self._commit()

        logger.info("Cancelled booking %s, released %s seats", booking_id, record.party_size)
        return await self.booking_repo.get_record(booking_id)

    async def update_booking(self, booking_id: int, changes: Dict[str, Any]) -> BookingRecord:
        """Admin edit. Extra demand on a tour day is re-admitted under its slot lock.

        Raises:
            ConflictError: If the booking was cancelled or re-admitted while
                the edit was in flight
        """
        record = await self.booking_repo.get_record(booking_id)
        if not record:
            raise NotFoundError("Booking", booking_id)

        raw_date = changes.get("startDate") or changes.get("date")
        date_key = to_date_key(raw_date, field_name="startDate") if raw_date is not None else record.date_key
        if date_key is None:
            raise ValidationError("startDate is required (YYYY-MM-DD)", field="startDate")

        party_size = changes.get("participants") or changes.get("quantity") or record.party_size
        status = BookingStatus(changes["status"]) if changes.get("status") else record.status

        values: Dict[str, Any] = {}
        if changes.get("status"):
            values["status"] = status.value
        for source, target in (
            ("email", "email"),
            ("customerName", "customer_name"),
            ("customerPhone", "customer_phone"),
            ("metadata", "meta"),
        ):
            if source in changes and changes[source] is not None:
                values[target] = changes[source]

        was_held = record.status is not BookingStatus.cancelled
        adds_demand = status is not BookingStatus.cancelled and (
            not was_held
            or date_key != record.date_key
            or party_size > record.party_size
        )

        if not adds_demand:
            updated = await self.booking_repo.reshape(
                booking_id,
                date_key=date_key,
                party_size=party_size,
                holds_capacity=was_held,
                values=values,
            )
            if updated is None:
                await self.session.rollback()
                raise ConflictError("Booking changed while it was being edited")
            await self._commit()
            return updated

        tour_id = record.tour_ref
        if tour_id is None:
            raise ValidationError("Booking is not linked to a tour", field="tour")
        await self._ensure_fits(tour_id, party_size)

        try:
            async with SlotLock(self.session, tour_id, date_key):
                verdict = await self.availability.check(
                    tour_id, date_key, party_size, exclude_booking_id=booking_id
                )
                if not verdict.available:
                    raise CapacityExceededError(verdict.capacity, verdict.already_booked, party_size)
                updated = await self.booking_repo.reshape(
                    booking_id,
                    date_key=date_key,
                    party_size=party_size,
                    holds_capacity=was_held,
                    values=values,
                )
                if updated is None:
                    raise ConflictError("Booking changed while it was being edited")
        except DBAPIError as exc:
            if is_transient(exc):
                raise TransientStoreError() from exc
            raise

        logger.info(
            "Re-admitted booking %s for tour %s on %s, party of %s",
            booking_id, tour_id, date_key, party_size,
        )
        return updated

    async def delete_booking(self, booking_id: int) -> None:
        deleted = await self.booking_repo.delete(id=booking_id)
        if not deleted:
            raise NotFoundError("Booking", booking_id)
        await self._commit()

    # ------------------------------------------------------------------
    #  Reads
    # ------------------------------------------------------------------

    async def get_booking(self, booking_id: int, user: dict) -> BookingRecord:
        """Single booking for its owner or staff"""
        record = await self.booking_repo.get_record(booking_id)
        if not record:
            raise NotFoundError("Booking", booking_id)
        if not _is_staff(user) and not _is_owner(record, user):
            raise AuthorizationError("Not authorized to access this booking")
        return record

    async def list_bookings(self, skip: int = 0, limit: int = 100) -> List[BookingRecord]:
        return await self.booking_repo.list_records(skip=skip, limit=limit)

    async def list_my_bookings(self, user: dict) -> List[BookingRecord]:
        return await self.booking_repo.list_for_owner(_user_id(user), user.get("email"))

    async def get_booking_stats(self) -> List[Dict[str, Any]]:
        """Paid bookings per month, amounts in major units"""
        buckets: Dict[tuple, List[int]] = defaultdict(list)
        for row in await self.booking_repo.paid_amounts():
            created = row["created_at"]
            buckets[(created.year, created.month)].append(row["cents"])

        stats = []
        for (year, month), cents in sorted(buckets.items()):
            stats.append({
                "year": year,
                "month": month,
                "numBookings": len(cents),
                "totalRevenue": sum(cents) / 100,
                "avgPrice": sum(cents) / len(cents) / 100,
                "minPrice": min(cents) / 100,
                "maxPrice": max(cents) / 100,
            })
        return stats

    async def _commit(self) -> None:
        async with store_errors(self.session):
            await self.session.commit()
