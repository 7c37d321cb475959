from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class WebhookAck(BaseModel):
    """Acknowledgement returned to the payment gateway"""
    received: bool = True
    type: Optional[str] = None
    admitted: Optional[bool] = None
    booking_id: Optional[int] = Field(None, alias="bookingId")
    duplicate: Optional[bool] = None
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    model_config = {
        "populate_by_name": True,
    }
