from typing import Optional, List, Dict, Any
from decimal import Decimal
from sqlalchemy import String, case, cast, select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.core import BaseRepository
from tourbook.models import Booking
from tourbook.records import (
    BookingRecord, BookingStatus, Provenance, PAID_STATUSES, RELEASED_STATUSES,
    day_bounds, normalize_status, to_date_key,
)


def _status_key():
    # Stored statuses come from several writers; compare them case-insensitively
    return func.lower(func.trim(Booking.status))


def _held_status():
    return _status_key().not_in(RELEASED_STATUSES)


def _released_status():
    return _status_key().in_(RELEASED_STATUSES)


def _tour_ref(row: Booking) -> Optional[int]:
    if row.tour_id is not None:
        return row.tour_id
    if row.item_id and row.item_id.isdigit():
        return int(row.item_id)
    return None


def to_record(row: Booking) -> BookingRecord:
    """Normalise either stored shape into a :class:`BookingRecord`.

    A row with a non-empty ``date`` column is a checkout row; its day and
    ``quantity`` win. Otherwise the legacy ``start_date`` and
    ``participants`` are used.
    """
    if row.item_date:
        date_key = row.item_date
        party_size = row.quantity if row.quantity is not None else (row.participants or 0)
    else:
        date_key = to_date_key(row.start_date) if row.start_date is not None else None
        party_size = row.participants if row.participants is not None else (row.quantity or 0)

    return BookingRecord(
        id=row.id,
        tour_ref=_tour_ref(row),
        date_key=date_key,
        party_size=party_size,
        status=normalize_status(row.status),
        provenance=Provenance(row.source) if row.source else None,
        legacy_start_date=None if row.item_date else row.start_date,
        modern_item_date=row.item_date or None,
        user_id=row.user_id,
        email=row.email,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        item_name=row.item_name,
        stripe_session_id=row.stripe_session_id,
        payment_intent_id=row.payment_intent_id,
        total_cents=row.total_cents or 0,
        price=row.price,
        currency=row.currency,
        metadata=dict(row.meta or {}),
        created_at=row.created_at,
    )


class BookingRepository(BaseRepository[Booking]):
    """Booking storage; the only place that knows about both row shapes"""

    def __init__(self, session: AsyncSession):
        super().__init__(Booking, session)

    # ------------------------------------------------------------------
    #  Capacity queries
    # ------------------------------------------------------------------

    async def legacy_usage(
        self,
        tour_id: int,
        date_key: str,
        *,
        exclude_id: Optional[int] = None
    ) -> int:
        """Seats held by legacy rows (``start_date`` inside the day)"""
        day_start, day_end = day_bounds(date_key)
        stmt = (
            select(func.coalesce(func.sum(func.coalesce(Booking.participants, Booking.quantity, 0)), 0))
            .where(
                Booking.tour_id == tour_id,
                Booking.start_date >= day_start,
                Booking.start_date < day_end,
                or_(Booking.item_date.is_(None), Booking.item_date == ""),
                _held_status(),
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(Booking.id != exclude_id)
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def modern_usage(
        self,
        tour_id: int,
        date_key: str,
        *,
        exclude_id: Optional[int] = None
    ) -> int:
        """Seats held by checkout rows (exact ``date`` string match)"""
        stmt = (
            select(func.coalesce(func.sum(func.coalesce(Booking.quantity, Booking.participants, 0)), 0))
            .where(
                or_(Booking.item_id == str(tour_id), Booking.tour_id == tour_id),
                Booking.item_date == date_key,
                _held_status(),
            )
        )
        if exclude_id is not None:
            stmt = stmt.where(Booking.id != exclude_id)
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    # ------------------------------------------------------------------
    #  Reads
    # ------------------------------------------------------------------

    async def get_record(self, booking_id: int) -> Optional[BookingRecord]:
        row = await self.session.get(Booking, booking_id, populate_existing=True)
        return to_record(row) if row else None

    async def get_by_session(self, stripe_session_id: str) -> Optional[BookingRecord]:
        stmt = select(Booking).where(Booking.stripe_session_id == stripe_session_id)
        row = await self.session.scalar(stmt)
        return to_record(row) if row else None

    async def list_records(
        self,
        *,
        skip: int = 0,
        limit: int = 100
    ) -> List[BookingRecord]:
        """All bookings, newest first"""
        stmt = (
            select(Booking)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [to_record(row) for row in result.scalars().all()]

    async def list_for_owner(
        self,
        user_id: Optional[int],
        email: Optional[str]
    ) -> List[BookingRecord]:
        """Bookings belonging to a user id or contact email"""
        conditions = []
        if user_id is not None:
            conditions.append(Booking.user_id == user_id)
        if email:
            conditions.append(Booking.email == email)
        if not conditions:
            return []
        stmt = (
            select(Booking)
            .where(or_(*conditions))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        result = await self.session.execute(stmt)
        return [to_record(row) for row in result.scalars().all()]

    # ------------------------------------------------------------------
    #  Writes
    # ------------------------------------------------------------------

    async def insert(
        self,
        *,
        tour_id: int,
        date_key: str,
        party_size: int,
        status: BookingStatus,
        provenance: Provenance,
        fields: Optional[Dict[str, Any]] = None
    ) -> BookingRecord:
        """Insert a booking in the checkout shape and flush it"""
        values = dict(fields or {})
        row = await self.create(obj_in={
            **values,
            "tour_id": tour_id,
            "item_id": str(tour_id),
            "item_date": date_key,
            "quantity": party_size,
            "status": status.value,
            "source": provenance.value,
        })
        await self.session.refresh(row)
        return to_record(row)

    async def reshape(
        self,
        booking_id: int,
        *,
        date_key: str,
        party_size: int,
        holds_capacity: bool,
        values: Optional[Dict[str, Any]] = None
    ) -> Optional[BookingRecord]:
        """Rewrite a row in the checkout shape, applying *values* as well.

        The write only lands while the row still holds (or still does not
        hold) capacity as it did when the caller read it. Returns ``None``
        when the row is gone or another request changed that in between.
        """
        held = _held_status() if holds_capacity else _released_status()
        row_values = {
            Booking.item_id: case(
                (or_(Booking.item_id.is_(None), Booking.item_id == ""), cast(Booking.tour_id, String)),
                else_=Booking.item_id,
            ),
            Booking.item_date: date_key,
            Booking.quantity: party_size,
            Booking.start_date: None,
            Booking.participants: None,
            Booking.updated_at: func.now(),
        }
        for key, value in (values or {}).items():
            row_values[getattr(Booking, key)] = value

        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, held)
            .values(row_values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self.get_record(booking_id)

    async def mark_cancelled(self, booking_id: int) -> bool:
        """Atomically flip a booking that still holds capacity to cancelled"""
        stmt = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                _held_status(),
            )
            .values(status=BookingStatus.cancelled.value, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_cancelled_by_session(self, stripe_session_id: str) -> Optional[int]:
        """Cancel the booking created from a checkout session; returns its id"""
        row = await self.session.scalar(
            select(Booking).where(Booking.stripe_session_id == stripe_session_id)
        )
        if not row:
            return None
        await self.mark_cancelled(row.id)
        return row.id

    # ------------------------------------------------------------------
    #  Reporting
    # ------------------------------------------------------------------

    async def paid_amounts(self) -> List[Dict[str, Any]]:
        """``created_at`` and amount in cents of every paid booking"""
        stmt = select(Booking.created_at, Booking.total_cents, Booking.price).where(
            _status_key().in_(PAID_STATUSES)
        )
        result = await self.session.execute(stmt)
        amounts = []
        for created_at, total_cents, price in result.all():
            if total_cents:
                cents = int(total_cents)
            else:
                cents = int((Decimal(price or 0) * 100).to_integral_value())
            amounts.append({"created_at": created_at, "cents": cents})
        return amounts
