from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from tourbook.records import BookingRecord


class BookingCreate(BaseModel):
    """Admin direct-create payload (legacy names plus checkout aliases)"""
    tour: Optional[int] = Field(None, gt=0)
    user: Optional[int] = Field(None, gt=0)
    participants: Optional[int] = Field(None, gt=0)
    start_date: Optional[str] = Field(None, alias="startDate")
    price: Optional[Decimal] = Field(None, ge=0)

    item_id: Optional[str] = Field(None, alias="itemId")
    quantity: Optional[int] = Field(None, gt=0)
    date: Optional[str] = None
    email: Optional[str] = None
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    total_cents: Optional[int] = Field(None, ge=0, alias="totalCents")
    status: Optional[str] = Field(None, pattern="^(pending|paid)$")
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    metadata: Optional[Dict[str, Any]] = None

    model_config = {
        "populate_by_name": True,
    }


class BookingUpdate(BaseModel):
    """Admin edit payload"""
    participants: Optional[int] = Field(None, gt=0)
    quantity: Optional[int] = Field(None, gt=0)
    start_date: Optional[str] = Field(None, alias="startDate")
    date: Optional[str] = None
    status: Optional[str] = Field(None, pattern="^(pending|paid|cancelled)$")
    email: Optional[str] = None
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    metadata: Optional[Dict[str, Any]] = None

    model_config = {
        "populate_by_name": True,
    }


class BookingOut(BaseModel):
    """Schema for booking responses"""
    id: int
    tour: Optional[int]
    user: Optional[int] = None
    date: Optional[str]
    participants: int
    status: str
    source: Optional[str] = None
    email: Optional[str] = None
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    item_name: Optional[str] = Field(None, alias="itemName")
    stripe_session_id: Optional[str] = Field(None, alias="stripeSessionId")
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    total_cents: int = Field(0, alias="totalCents")
    price: Optional[Decimal] = None
    currency: str
    metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = {
        "populate_by_name": True,
    }

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingOut":
        return cls(
            id=record.id,
            tour=record.tour_ref,
            user=record.user_id,
            date=record.date_key,
            participants=record.party_size,
            status=record.status.value,
            source=record.provenance.value if record.provenance else None,
            email=record.email,
            customer_name=record.customer_name,
            customer_phone=record.customer_phone,
            item_name=record.item_name,
            stripe_session_id=record.stripe_session_id,
            payment_intent_id=record.payment_intent_id,
            total_cents=record.total_cents,
            price=record.price,
            currency=record.currency,
            metadata=record.metadata,
            created_at=record.created_at,
        )


class BookingStats(BaseModel):
    """Paid bookings for one calendar month"""
    year: int
    month: int
    num_bookings: int = Field(alias="numBookings")
    total_revenue: float = Field(alias="totalRevenue")
    avg_price: float = Field(alias="avgPrice")
    min_price: float = Field(alias="minPrice")
    max_price: float = Field(alias="maxPrice")

    model_config = {
        "populate_by_name": True,
    }


class BookingStatsOut(BaseModel):
    stats: List[BookingStats]
