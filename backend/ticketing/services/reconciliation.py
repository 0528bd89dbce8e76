"""Apply asynchronous gateway results to transactions and tickets.

Gateways retry webhooks, so everything here is safe to run more than once:
the canonical status only moves forward, ``paid_at``/``cancelled_at``/``refunded_at``
are written once, and sold-quantity counters move only when a ticket's own
``delivered_at``/``refunded_at`` marker is claimed by a conditional UPDATE.
"""
import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ticketing.core.clock import utcnow
from ticketing.core.errors import NotFoundError
from ticketing.models.enums import TransactionStatus
from ticketing.models.notification import Notification
from ticketing.models.ticket import Ticket
from ticketing.models.transaction import Transaction
from ticketing.schemas.payment import MercadoPagoPayment
from ticketing.services.inventory import category_counter, coupon_counter, lot_counter
from ticketing.services.payment_status import (
    PAID_STATUSES,
    REVERSED_STATUSES,
    can_transition,
    map_mercado_pago_status,
    map_stripe_status,
)

logger = logging.getLogger(__name__)


def _get_transaction(db: Session, transaction_id) -> Transaction:
    try:
        key = int(transaction_id)
    except (TypeError, ValueError):
        logger.warning("Transaction reference not numeric | transaction=%s", transaction_id)
        raise NotFoundError("transaction", transaction_id)
    transaction = db.get(Transaction, key)
    if transaction is None:
        logger.warning("Transaction not found | transaction=%s", transaction_id)
        raise NotFoundError("transaction", transaction_id)
    return transaction


def _record_gateway_result(
    transaction: Transaction,
    *,
    status: TransactionStatus,
    external_payment_id: str,
    external_status: Optional[str],
    payload: dict[str, Any],
    now: datetime,
    pix_qr_code: Optional[str] = None,
) -> None:
    transaction.external_payment_id = external_payment_id
    transaction.external_status = external_status
    transaction.response = json.dumps(payload, default=str).encode("utf-8")
    if pix_qr_code:
        transaction.pix_qr_code = pix_qr_code

    if can_transition(transaction.status, status):
        transaction.status = status
    else:
        logger.warning(
            "Ignoring backward status | transaction=%s payment=%s current=%s reported=%s",
            transaction.id, external_payment_id, transaction.status.value, status.value,
        )

    if transaction.status in PAID_STATUSES and transaction.paid_at is None:
        transaction.paid_at = now
    if transaction.status == TransactionStatus.CANCELLED and transaction.cancelled_at is None:
        transaction.cancelled_at = now


def apply_gateway_update(db: Session, payment: MercadoPagoPayment, now: Optional[datetime] = None) -> Transaction:
    """Map a Mercado Pago payment onto its transaction (``external_reference``) and persist it.

    Raises:
        NotFoundError: the payment references no known transaction.
    """
    now = now or utcnow()
    status = map_mercado_pago_status(payment.status, payment.transaction_amount_refunded)
    transaction = _get_transaction(db, payment.external_reference)
    _record_gateway_result(
        transaction,
        status=status,
        external_payment_id=str(payment.id),
        external_status=payment.status,
        payload=payment.raw(),
        now=now,
        pix_qr_code=payment.pix_qr_code,
    )
    db.commit()
    logger.info(
        "Transaction updated | transaction=%s payment=%s external=%s status=%s",
        transaction.id, payment.id, payment.status, transaction.status.value,
    )
    return transaction


def apply_stripe_update(
    db: Session,
    transaction_id,
    payment_intent_id: str,
    intent_status: str,
    payload: dict[str, Any],
    now: Optional[datetime] = None,
) -> Transaction:
    now = now or utcnow()
    transaction = _get_transaction(db, transaction_id)
    _record_gateway_result(
        transaction,
        status=map_stripe_status(intent_status),
        external_payment_id=payment_intent_id,
        external_status=intent_status,
        payload=payload,
        now=now,
    )
    db.commit()
    logger.info(
        "Transaction updated | transaction=%s payment_intent=%s external=%s status=%s",
        transaction.id, payment_intent_id, intent_status, transaction.status.value,
    )
    return transaction


def _counter_snapshot(db: Session, ticket: Ticket) -> str:
    parts = [f"lot={ticket.ticket_lot_id} ({lot_counter.sold(db, ticket.ticket_lot_id)})"]
    if ticket.category_id:
        parts.append(f"category={ticket.category_id} ({category_counter.sold(db, ticket.category_id)})")
    if ticket.coupon_id:
        parts.append(f"coupon={ticket.coupon_id} ({coupon_counter.sold(db, ticket.coupon_id)})")
    return " | ".join(parts)


def _ticket_counters(ticket: Ticket):
    yield lot_counter, ticket.ticket_lot_id
    if ticket.category_id:
        yield category_counter, ticket.category_id
    if ticket.coupon_id:
        yield coupon_counter, ticket.coupon_id


def deliver_ticket(db: Session, ticket_id: int, now: Optional[datetime] = None) -> bool:
    """Mark the ticket delivered and count the sale on its lot/category/coupon.

    Returns False when the ticket was already delivered (nothing changes).

    Raises:
        NotFoundError: unknown ticket.
    """
    now = now or utcnow()
    ticket = db.get(Ticket, ticket_id)
    if ticket is None:
        logger.warning("Ticket not found for delivery | ticket=%s", ticket_id)
        raise NotFoundError("ticket", ticket_id)

    claimed = db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.delivered_at.is_(None))
        .values(delivered_at=now)
        .execution_options(synchronize_session=False)
    ).rowcount == 1
    if not claimed:
        db.rollback()
        logger.info("Ticket already delivered | ticket=%s", ticket_id)
        return False

    for counter, entity_id in _ticket_counters(ticket):
        if not counter.try_increment(db, entity_id):
            logger.error(
                "Capacity reached on delivery, sold quantity not incremented | ticket=%s %s=%s",
                ticket_id, counter.kind, entity_id,
            )
    db.add(
        Notification(
            user_id=ticket.user_id,
            ticket_id=ticket.id,
            type="ticket_delivered",
            message=f"Your ticket {ticket.code} is confirmed.",
        )
    )
    db.commit()
    logger.info("Ticket delivered | ticket=%s | %s", ticket_id, _counter_snapshot(db, ticket))
    return True


def refund_ticket(db: Session, ticket_id: int, now: Optional[datetime] = None) -> bool:
    """Undo a delivered ticket's sale on its lot/category/coupon.

    Returns False when the ticket was never delivered or is already refunded.

    Raises:
        NotFoundError: unknown ticket.
    """
    now = now or utcnow()
    ticket = db.get(Ticket, ticket_id)
    if ticket is None:
        logger.warning("Ticket not found for refund | ticket=%s", ticket_id)
        raise NotFoundError("ticket", ticket_id)

    claimed = db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.refunded_at.is_(None), Ticket.delivered_at.is_not(None))
        .values(refunded_at=now)
        .execution_options(synchronize_session=False)
    ).rowcount == 1
    if not claimed:
        db.rollback()
        logger.info("Ticket not refundable (undelivered or already refunded) | ticket=%s", ticket_id)
        return False

    for counter, entity_id in _ticket_counters(ticket):
        if not counter.try_decrement(db, entity_id):
            logger.warning("Sold quantity already zero | ticket=%s %s=%s", ticket_id, counter.kind, entity_id)
    db.commit()
    logger.info("Ticket refunded | ticket=%s | %s", ticket_id, _counter_snapshot(db, ticket))
    return True


def _ticket_ids(db: Session, transaction_id: int) -> list[int]:
    rows = db.query(Ticket.id).filter(Ticket.transaction_id == transaction_id).order_by(Ticket.id).all()
    return [r[0] for r in rows]


def complete_delivery(db: Session, transaction_id, now: Optional[datetime] = None) -> list[int]:
    """Deliver every ticket of the transaction; returns the ids delivered by this call.

    A missing ticket is logged and skipped without touching its siblings.
    """
    transaction = _get_transaction(db, transaction_id)
    delivered = []
    for ticket_id in _ticket_ids(db, transaction.id):
        try:
            if deliver_ticket(db, ticket_id, now):
                delivered.append(ticket_id)
        except NotFoundError:
            db.rollback()
            logger.error("Delivery skipped | transaction=%s ticket=%s", transaction.id, ticket_id)
    return delivered


def rollback_refund(db: Session, transaction_id, now: Optional[datetime] = None) -> list[int]:
    """Reverse the sold counters of every delivered ticket and stamp ``refunded_at``."""
    now = now or utcnow()
    transaction = _get_transaction(db, transaction_id)
    refunded = []
    for ticket_id in _ticket_ids(db, transaction.id):
        try:
            if refund_ticket(db, ticket_id, now):
                refunded.append(ticket_id)
        except NotFoundError:
            db.rollback()
            logger.error("Refund skipped | transaction=%s ticket=%s", transaction.id, ticket_id)
    if transaction.refunded_at is None:
        transaction.refunded_at = now
        db.commit()
    return refunded


def handle_transaction_by_status(db: Session, transaction: Transaction) -> list[int]:
    """Run delivery or refund for the transaction's current status."""
    if transaction.status in PAID_STATUSES:
        return complete_delivery(db, transaction.id)
    if transaction.status in REVERSED_STATUSES:
        return rollback_refund(db, transaction.id)
    logger.warning("Unhandled status | transaction=%s status=%s", transaction.id, transaction.status.value)
    return []


def handle_stripe_event(db: Session, event: dict[str, Any]) -> None:
    """Dispatch a verified Stripe event. Only success mutates state; failure is logged."""
    event_type = event.get("type")
    intent = (event.get("data") or {}).get("object") or {}
    if event_type == "payment_intent.succeeded":
        transaction_id = (intent.get("metadata") or {}).get("transactionId")
        if not transaction_id:
            logger.error("Stripe intent without transactionId | payment_intent=%s", intent.get("id"))
            return
        transaction = apply_stripe_update(db, transaction_id, intent.get("id"), intent.get("status") or "succeeded", intent)
        handle_transaction_by_status(db, transaction)
    elif event_type == "payment_intent.payment_failed":
        error = intent.get("last_payment_error") or {}
        logger.warning(
            "Stripe payment failed | payment_intent=%s transaction=%s reason=%s",
            intent.get("id"), (intent.get("metadata") or {}).get("transactionId"), error.get("message"),
        )
    else:
        logger.info("Stripe event ignored | type=%s", event_type)
