import logging
from typing import Any
from fastapi import APIRouter, Body, Depends, Header, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ticketing.api.deps import get_mercado_pago_client
from ticketing.core.errors import DomainError, ValidationError
from ticketing.db.session import get_db
from ticketing.schemas.payment import MercadoPagoPayment, MercadoPagoWebhook
from ticketing.services import reconciliation
from ticketing.services.mercado_pago import MercadoPagoClient
from ticketing.services.stripe_gateway import verify_webhook

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/webhook/mercado-pago")
def mercado_pago_webhook(
    body: Any = Body(None),
    db: Session = Depends(get_db),
    mp_client: MercadoPagoClient = Depends(get_mercado_pago_client),
):
    """Fetch the notified payment and reconcile its transaction.

    A payment the gateway cannot return is acknowledged (200) so Mercado Pago
    stops retrying; the failure is logged for replay.
    """
    try:
        notification = MercadoPagoWebhook.model_validate(body or {})
    except PydanticValidationError:
        notification = MercadoPagoWebhook()
    payment_id = notification.data.id if notification.data else None
    if notification.type != "payment" or not payment_id:
        logger.warning("Invalid webhook | type=%s id=%s", notification.type, payment_id)
        raise ValidationError("Invalid webhook payload.")

    logger.info("Webhook received | id=%s", payment_id)
    raw = mp_client.fetch_payment(str(payment_id))
    if raw is None:
        logger.error("Payment not available | id=%s", payment_id)
        return {"message": "Payment data unavailable."}
    try:
        payment = MercadoPagoPayment.from_payload(raw)
    except PydanticValidationError as e:
        logger.error("Malformed payment resource | id=%s error=%s", payment_id, e)
        return {"message": "Payment data unavailable."}

    transaction = reconciliation.apply_gateway_update(db, payment)
    reconciliation.handle_transaction_by_status(db, transaction)
    return {"message": "Webhook processed."}

@router.post("/webhook/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db),
):
    payload = await request.body()
    event = verify_webhook(payload, stripe_signature)
    logger.info("Stripe webhook received | type=%s id=%s", event.get("type"), event.get("id"))
    try:
        await run_in_threadpool(reconciliation.handle_stripe_event, db, event)
    except DomainError as e:
        # Acknowledge anyway; Stripe retries would hit the same error
        logger.error("Error handling Stripe event | type=%s id=%s error=%s", event.get("type"), event.get("id"), e)
    except Exception:
        db.rollback()
        logger.exception("Unexpected error handling Stripe event | type=%s id=%s", event.get("type"), event.get("id"))
    return {"received": True}
