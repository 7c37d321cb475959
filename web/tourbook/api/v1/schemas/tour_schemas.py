from typing import Optional
from pydantic import BaseModel, Field

from tourbook.records import AvailabilityVerdict


class AvailabilityOut(BaseModel):
    """Schema for the availability check response"""
    available: bool
    capacity: int
    already_booked: Optional[int] = Field(None, alias="alreadyBooked")
    can_accept: Optional[int] = Field(None, alias="canAccept")
    reason: Optional[str] = None

    model_config = {
        "populate_by_name": True,
    }

    @classmethod
    def from_verdict(cls, verdict: AvailabilityVerdict) -> "AvailabilityOut":
        return cls(
            available=verdict.available,
            capacity=verdict.capacity,
            already_booked=verdict.already_booked,
            can_accept=verdict.can_accept,
            reason=verdict.reason,
        )
