from typing import Any, Dict, Optional
import logging

from sqlalchemy.exc import IntegrityError

from tourbook.core import (
    BaseService, CapacityExceededError, NotFoundError, ValidationError,
    get_settings, retry_transient,
)
from tourbook.infrastructure.repositories import BookingRepository
from tourbook.locks import store_errors
from tourbook.records import BookingStatus, Provenance, parse_party_size, to_date_key
from tourbook.services.booking_service import BookingService

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"
RELEASE_EVENTS = ("checkout.session.expired", "checkout.session.async_payment_failed")


class PaymentService(BaseService):
    """Turns payment gateway events into booking admissions"""

    def __init__(self, session, booking_service: Optional[BookingService] = None):
        super().__init__(session)
        self.booking_service = booking_service or BookingService(session)
        self.booking_repo: BookingRepository = self.booking_service.booking_repo

    async def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Process one webhook event and describe the outcome.

        Raises:
            TransientStoreError: If the store kept failing; the gateway should redeliver
        """
        event_type = event.get("type")
        checkout = (event.get("data") or {}).get("object") or {}

        if event_type == COMPLETED_EVENT:
            return await retry_transient(lambda: self._admit_checkout(checkout))

        if event_type in RELEASE_EVENTS:
            session_id = checkout.get("id")
            booking_id = await retry_transient(lambda: self._release_checkout(session_id)) if session_id else None
            if booking_id is not None:
                logger.warning("%s: released booking %s", event_type, booking_id)
            return {"received": True, "type": event_type, "bookingId": booking_id}

        logger.debug("Ignoring payment event %s", event_type)
        return {"received": True, "type": event_type}

    async def _release_checkout(self, session_id: str) -> Optional[int]:
        async with store_errors(self.session):
            booking_id = await self.booking_repo.mark_cancelled_by_session(session_id)
            if booking_id is not None:
                await self.session.commit()
        return booking_id

    async def _find_by_session(self, session_id: str):
        async with store_errors(self.session):
            return await self.booking_repo.get_by_session(session_id)

    async def _admit_checkout(self, checkout: Dict[str, Any]) -> Dict[str, Any]:
        session_id = checkout.get("id")
        if not session_id:
            raise ValidationError("Checkout session without id")

        existing = await self._find_by_session(session_id)
        if existing:
            logger.info("Checkout %s already booked as %s", session_id, existing.id)
            return {"received": True, "admitted": True, "bookingId": existing.id, "duplicate": True}

        metadata = checkout.get("metadata") or {}
        customer = checkout.get("customer_details") or {}
        try:
            tour_id = _tour_id(metadata)
            date_key = to_date_key(metadata.get("date"), field_name="date")
            party_size = parse_party_size(metadata.get("quantity", 1), field_name="quantity")
        except ValidationError as exc:
            logger.error("Checkout %s paid with unusable metadata: %s", session_id, exc.message)
            return {"received": True, "admitted": False, "reason": exc.message}

        fields = {
            "stripe_session_id": session_id,
            "payment_intent_id": checkout.get("payment_intent"),
            "email": customer.get("email") or metadata.get("customerEmail"),
            "customer_name": customer.get("name") or metadata.get("customerName"),
            "customer_phone": metadata.get("customerPhone"),
            "item_name": metadata.get("itemName") or f"Booking {tour_id}",
            "total_cents": int(checkout.get("amount_total") or 0),
            "currency": (checkout.get("currency") or get_settings().DEFAULT_CURRENCY).lower(),
            "meta": metadata,
        }

        try:
            record = await self.booking_service.admit(
                tour_id=tour_id,
                date_key=date_key,
                party_size=party_size,
                provenance=Provenance.payment,
                status=BookingStatus.paid,
                fields=fields,
            )
        except (CapacityExceededError, NotFoundError) as exc:
            # Money was taken but the seat cannot be granted; redelivery will not help
            logger.error("Paid checkout %s not admitted: %s %s", session_id, exc.message, exc.details)
            return {"received": True, "admitted": False, "reason": exc.message, "details": exc.details}
        except IntegrityError:
            # Same session admitted concurrently by a redelivery
            await self.session.rollback()
            existing = await self._find_by_session(session_id)
            if existing is None:
                raise
            return {"received": True, "admitted": True, "bookingId": existing.id, "duplicate": True}

        return {"received": True, "admitted": True, "bookingId": record.id}


def _tour_id(metadata: Dict[str, Any]) -> int:
    raw = str(metadata.get("itemId") or metadata.get("tourId") or "")
    if not raw.isdigit():
        raise ValidationError("Checkout metadata does not reference a tour", field="itemId")
    return int(raw)
