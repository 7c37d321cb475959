from sqlalchemy import (
    String, Integer, ForeignKey, Numeric, DateTime, JSON, Index, UniqueConstraint, func
)
from sqlalchemy.orm import mapped_column, relationship, DeclarativeBase
from .roles import Role

class Base(DeclarativeBase): ...

# ---------- Actors (owned by the auth collaborator) ----------
class User(Base):
    __tablename__ = "users"
    id        = mapped_column(Integer, primary_key=True)
    email     = mapped_column(String(128), unique=True, nullable=True)
    name      = mapped_column(String(128))
    role      = mapped_column(String(16), default=Role.user.value, nullable=False)
    created   = mapped_column(DateTime, server_default=func.now())

# ---------- Tours (owned by the catalog; capacity is read-only here) ----------
class Tour(Base):
    __tablename__ = "tours"
    id             = mapped_column(Integer, primary_key=True)
    name           = mapped_column(String(200), nullable=False)
    max_group_size = mapped_column(Integer, nullable=False, comment="Participants accepted per calendar day")
    price          = mapped_column(Numeric(10, 2), nullable=True)  # major units
    currency       = mapped_column(String(3), nullable=True)
    created        = mapped_column(DateTime, server_default=func.now())

# ---------- Bookings ----------
class Booking(Base):
    """A reservation row as persisted.

    Two historical shapes live in this table:

    * legacy rows: ``tour_id`` + ``start_date`` (timestamp) + ``participants``
    * checkout rows: ``item_id`` + ``item_date`` ("YYYY-MM-DD") + ``quantity``

    Only the repository layer looks at both; everything above it works with
    :class:`tourbook.records.BookingRecord`. New rows are always written in the
    checkout shape.
    """

    __tablename__ = "bookings"
    id                = mapped_column(Integer, primary_key=True)

    # Payment-first fields
    stripe_session_id = mapped_column(String(255), unique=True, nullable=True)  # webhook idempotency
    payment_intent_id = mapped_column(String(255), nullable=True, index=True)
    email             = mapped_column(String(128), nullable=True, index=True)
    customer_name     = mapped_column(String(128), nullable=True)
    customer_phone    = mapped_column(String(32), nullable=True)
    item_id           = mapped_column(String(64), nullable=True, index=True)
    item_name         = mapped_column(String(200), nullable=True)
    quantity          = mapped_column(Integer, nullable=True)
    item_date         = mapped_column("date", String(10), nullable=True, comment="YYYY-MM-DD")
    total_cents       = mapped_column(Integer, default=0, nullable=False)
    currency          = mapped_column(String(3), default="usd", nullable=False)
    status            = mapped_column(String(20), default="pending", nullable=False, comment="pending, paid, cancelled (+ historical spellings)")
    source            = mapped_column(String(16), nullable=True, comment="admin | payment; NULL for historical rows")
    meta              = mapped_column("metadata", JSON, nullable=True)

    # Legacy relations / schedule
    tour_id           = mapped_column(ForeignKey("tours.id"), nullable=True)
    user_id           = mapped_column(ForeignKey("users.id"), nullable=True)
    price             = mapped_column(Numeric(10, 2), nullable=True)  # legacy major units
    participants      = mapped_column(Integer, nullable=True)
    start_date        = mapped_column(DateTime, nullable=True)

    created_at        = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at        = mapped_column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    tour = relationship("Tour")
    user = relationship("User")

    # Capacity aggregation hits one of these per shape
    __table_args__ = (
        Index("ix_booking_tour_start", "tour_id", "start_date"),
        Index("ix_booking_item_date", "item_id", "date"),
    )

# ---------- Per-day admission slots ----------
class TourDateSlot(Base):
    """One row per (tour, day) that admissions claim before counting seats.

    Bumping ``version`` inside the admission transaction takes the row lock,
    which serialises concurrent admissions for the same tour and day.
    """

    __tablename__ = "tour_date_slots"
    id         = mapped_column(Integer, primary_key=True)
    tour_id    = mapped_column(ForeignKey("tours.id"), nullable=False)
    date_key   = mapped_column(String(10), nullable=False)
    version    = mapped_column(Integer, default=0, nullable=False)
    updated_at = mapped_column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("tour_id", "date_key", name="uix_tour_date_slot"),
    )
