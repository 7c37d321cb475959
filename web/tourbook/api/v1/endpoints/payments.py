from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
import logging

from tourbook.api.v1.schemas import WebhookAck
from tourbook.deps import SessionDep
from tourbook.infrastructure.payments import StripeGateway, get_payment_gateway
from tourbook.services import PaymentService


router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/webhook", response_model=WebhookAck, response_model_exclude_none=True)
async def payment_webhook(
    request: Request,
    sess: SessionDep,
    gateway: StripeGateway = Depends(get_payment_gateway),
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
):
    """Stripe webhook.

    Answers 503 while the store is unavailable so that Stripe redelivers;
    every other outcome is acknowledged.
    """
    payload = await request.body()
    event = gateway.parse_event(payload, stripe_signature)
    logger.info("Payment event %s (%s)", event.get("id"), event.get("type"))

    service = PaymentService(sess)
    result = await service.handle_event(event)
    return WebhookAck(**result)
