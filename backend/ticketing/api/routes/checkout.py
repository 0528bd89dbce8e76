import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ticketing.api.deps import get_current_identity, get_payment_router
from ticketing.db.session import get_db
from ticketing.schemas.checkout import CheckoutRequest, FreeCheckoutRequest, transaction_out
from ticketing.schemas.payment import MercadoPagoPayment
from ticketing.services import checkout, reconciliation
from ticketing.services.gateways import PaymentRouter
from ticketing.services.payment_status import PAID_STATUSES

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("")
@router.post("/")
def create_checkout(
    payload: CheckoutRequest,
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
    payment_router: PaymentRouter = Depends(get_payment_router),
):
    """Allocate the cart, then hand it to the gateway for its payment method.

    Mercado Pago answers with the payment resource right away (PIX QR code,
    boleto URL or a card result); it is applied like a webhook so the
    transaction reflects it before the client polls.
    """
    user_id, _roles = identity
    # Resolve first so an unroutable method never leaves a transaction behind
    payment_router.gateway_for(payload.payment_data.payment_method)
    transaction = checkout.perform_checkout(db, payload, user_id)
    result = payment_router.dispatch(transaction, payload.payment_data)
    if result.payment:
        transaction = reconciliation.apply_gateway_update(db, MercadoPagoPayment.from_payload(result.payment))
        if transaction.status in PAID_STATUSES:
            reconciliation.complete_delivery(db, transaction.id)
        transaction = checkout.load_transaction(db, transaction.id)
    return {"transaction": transaction_out(transaction).model_dump(mode="json"), **result.public()}

@router.post("/free")
def create_free_checkout(payload: FreeCheckoutRequest, db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    user_id, _roles = identity
    transaction = checkout.perform_free_checkout(db, payload, user_id)
    reconciliation.complete_delivery(db, transaction.id)
    transaction = checkout.load_transaction(db, transaction.id)
    return {"transaction": transaction_out(transaction).model_dump(mode="json")}

@router.get("/transactions/{transaction_id}")
def get_transaction(transaction_id: int, db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    user_id, roles = identity
    transaction = checkout.load_transaction(db, transaction_id)
    if transaction.created_by_id != user_id and "admin" not in roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return {"transaction": transaction_out(transaction).model_dump(mode="json")}
