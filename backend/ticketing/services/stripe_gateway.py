import json
import logging
from decimal import Decimal
from typing import Any, Optional

import stripe

from ticketing.core.config import settings
from ticketing.core.errors import GatewayCommunicationError, SignatureVerificationError
from ticketing.models.enums import PaymentMethod
from ticketing.models.transaction import Transaction
from ticketing.schemas.checkout import PaymentDataIn
from ticketing.services.gateways import GatewayResult, PaymentGateway
from ticketing.services.pricing import to_minor_units

logger = logging.getLogger(__name__)


class StripeGateway(PaymentGateway):
    """Hosted Stripe Checkout session, one line item per ticket."""

    methods = (PaymentMethod.STRIPE,)

    def __init__(self, api_key: Optional[str] = None, frontend_url: Optional[str] = None) -> None:
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.frontend_url = (frontend_url or settings.frontend_url).rstrip("/")

    def line_items(self, transaction: Transaction, currency: str) -> list[dict[str, Any]]:
        items = [
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": t.ticket_lot.name},
                    "unit_amount": to_minor_units(t.price),
                },
                "quantity": 1,
            }
            for t in transaction.tickets
        ]
        # Event fee is charged on the sum, so it gets its own line
        fee = Decimal(transaction.total_value) - sum((Decimal(t.price) for t in transaction.tickets), Decimal("0"))
        if fee > 0:
            items.append(
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {"name": "Service fee"},
                        "unit_amount": to_minor_units(fee),
                    },
                    "quantity": 1,
                }
            )
        return items

    def dispatch(self, transaction: Transaction, payment_data: PaymentDataIn) -> GatewayResult:
        if not self.api_key:
            raise GatewayCommunicationError("STRIPE_SECRET_KEY not set")
        currency = (payment_data.currency or settings.default_currency).lower()
        metadata = {"transactionId": str(transaction.id)}
        base = f"{self.frontend_url}/pagamento/{transaction.id}"
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                payment_method_types=["card"],
                line_items=self.line_items(transaction, currency),
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                mode="payment",
                success_url=f"{base}?success=true",
                cancel_url=f"{base}?canceled=true",
            )
        except stripe.StripeError as e:
            logger.error("Stripe session failed | transaction=%s error=%s", transaction.id, e)
            raise GatewayCommunicationError("Payment gateway unavailable") from e
        logger.info("Stripe session created | transaction=%s session=%s", transaction.id, session.id)
        return GatewayResult(redirect_url=session.url)


def verify_webhook(payload: bytes, signature: Optional[str], secret: Optional[str] = None) -> dict[str, Any]:
    """Verify a Stripe webhook signature and return the decoded event body.

    Raises:
        SignatureVerificationError: missing secret/header, bad signature or bad body.
    """
    secret = secret if secret is not None else settings.stripe_webhook_secret
    if not secret or not signature:
        raise SignatureVerificationError("Missing Stripe signature")
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Invalid Stripe webhook | error=%s", e)
        raise SignatureVerificationError(f"Webhook Error: {e}") from e
    return json.loads(payload)
