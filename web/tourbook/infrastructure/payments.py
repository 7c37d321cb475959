"""Stripe webhook verification.

Checkout sessions are created elsewhere; this module only turns a signed
webhook delivery into a plain event dict.
"""

import json
import logging
from typing import Any, Dict

import stripe

from tourbook.core import ExternalServiceError, ValidationError, get_settings

logger = logging.getLogger(__name__)


class StripeGateway:
    """Verifies webhook deliveries with the endpoint's signing secret"""

    def __init__(self, webhook_secret: str):
        self.webhook_secret = webhook_secret

    def parse_event(self, payload: bytes, signature: str | None) -> Dict[str, Any]:
        """Return the event as a dict, or raise if it was not signed by Stripe"""
        if not self.webhook_secret:
            raise ExternalServiceError("stripe", "webhook secret is not configured")
        if not signature:
            raise ValidationError("Missing Stripe signature", field="Stripe-Signature")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError:
            raise ValidationError("Invalid payload")
        except stripe.SignatureVerificationError as exc:
            logger.warning("Stripe webhook signature verification failed: %s", exc)
            raise ValidationError("Invalid signature", field="Stripe-Signature")

        return json.loads(payload)


def get_payment_gateway() -> StripeGateway:
    """FastAPI dependency returning the configured gateway"""
    settings = get_settings()
    return StripeGateway(settings.STRIPE_WEBHOOK_SECRET)
