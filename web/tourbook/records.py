"""Canonical booking types shared by services and endpoints.

Whatever shape a booking row was stored in, callers above the repository
layer only ever see a :class:`BookingRecord` keyed by a ``YYYY-MM-DD`` day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
import math
from typing import Any, Dict, Optional

from .core import ValidationError


class BookingStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"


class Provenance(str, Enum):
    """Who asked for the admission."""

    admin = "admin"
    payment = "payment"


# Stored spellings that no longer hold capacity
RELEASED_STATUSES = ("cancelled", "canceled", "expired", "failed", "refunded")
PAID_STATUSES = ("paid", "completed")


def normalize_status(raw: Optional[str]) -> BookingStatus:
    """Collapse historical status spellings onto :class:`BookingStatus`."""
    value = (raw or "").strip().lower()
    if value in RELEASED_STATUSES:
        return BookingStatus.cancelled
    if value in PAID_STATUSES:
        return BookingStatus.paid
    return BookingStatus.pending


def to_date_key(value: Any, *, field_name: str = "date") -> str:
    """Return the canonical ``YYYY-MM-DD`` key for *value*.

    Accepts :class:`date`, :class:`datetime` (aware values are converted to
    UTC first, naive ones are taken as UTC) and ISO-8601 strings of either
    form. Anything else raises :class:`ValidationError`.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        raw = value.strip()
        try:
            if len(raw) == 10:
                return date.fromisoformat(raw).isoformat()
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)", field=field_name)
        return to_date_key(parsed, field_name=field_name)
    raise ValidationError(f"{field_name} is required (YYYY-MM-DD)", field=field_name)


def day_bounds(date_key: str) -> tuple[datetime, datetime]:
    """Naive UTC ``[start, end)`` of the day named by *date_key*."""
    day = date.fromisoformat(date_key)
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def parse_party_size(value: Any, *, field_name: str = "participants") -> int:
    """Positive integer party size, or :class:`ValidationError`."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a positive number", field=field_name)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a positive number", field=field_name)
    if not math.isfinite(number) or number < 1 or number != int(number):
        raise ValidationError(f"{field_name} must be a positive number", field=field_name)
    return int(number)


@dataclass
class BookingRecord:
    id: int
    tour_ref: Optional[int]
    date_key: Optional[str]
    party_size: int
    status: BookingStatus
    provenance: Optional[Provenance] = None
    legacy_start_date: Optional[datetime] = None
    modern_item_date: Optional[str] = None
    user_id: Optional[int] = None
    email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    item_name: Optional[str] = None
    stripe_session_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    total_cents: int = 0
    price: Optional[Decimal] = None
    currency: str = "usd"
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def holds_capacity(self) -> bool:
        return self.status is not BookingStatus.cancelled


@dataclass(frozen=True)
class AvailabilityVerdict:
    """Result of an availability check.

    ``already_booked`` and ``can_accept`` are ``None`` when the party alone is
    larger than the tour, because no booking lookup is made in that case.
    """

    available: bool
    capacity: int
    already_booked: Optional[int]
    can_accept: Optional[int]
    reason: Optional[str] = None
