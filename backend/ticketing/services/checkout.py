"""Checkout orchestration.

A checkout allocates one ticket per player, across one or more teams, inside a
single database transaction. Either every team, ticket and child record of the
cart is committed together with its Transaction row, or nothing is.
"""
import logging
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ticketing.core.clock import utcnow
from ticketing.core.errors import NotFoundError
from ticketing.models.coupon import Coupon
from ticketing.models.enums import PaymentMethod, TransactionStatus
from ticketing.models.personalized_field_answer import PersonalizedFieldAnswer
from ticketing.models.team import Team
from ticketing.models.term_ticket_confirmation import TermTicketConfirmation
from ticketing.models.ticket import Ticket
from ticketing.models.ticket_lot import TicketLot
from ticketing.models.ticket_type import TicketType
from ticketing.models.transaction import Transaction
from ticketing.schemas.checkout import CheckoutRequest, FreeCheckoutRequest, TeamIn
from ticketing.services import inventory
from ticketing.services.codes import unique_code
from ticketing.services.pricing import ticket_price, transaction_total

logger = logging.getLogger(__name__)

FREE_EXTERNAL_STATUS = "free"


def _ticket_type(db: Session, ticket_type_id: int) -> TicketType:
    ticket_type = db.get(TicketType, ticket_type_id)
    if ticket_type is None:
        logger.warning("Ticket type not found | ticket_type=%s", ticket_type_id)
        raise NotFoundError("ticket type", ticket_type_id)
    return ticket_type


def _allocate_team(
    db: Session,
    transaction: Transaction,
    team: TeamIn,
    term_ids: list[int],
    now: datetime,
    cart: Counter,
    coupon: Optional[Coupon] = None,
    free: bool = False,
) -> list[Decimal]:
    """Create the team and one ticket per player; return the ticket prices."""
    team_row = Team()
    db.add(team_row)
    db.flush()

    applied_coupon = coupon if (coupon is not None and coupon.is_active and not free) else None
    prices: list[Decimal] = []
    for player in team.players:
        lot = inventory.allocate(db, team.ticket_type_id, now)
        cart[("lot", lot.id)] += 1
        inventory.ensure_capacity("lot", lot.id, lot.quantity, lot.sold_quantity, cart[("lot", lot.id)])

        if player.category_id is not None:
            category = inventory.get_category(db, player.category_id, team.ticket_type_id)
            cart[("category", category.id)] += 1
            inventory.ensure_capacity(
                "category", category.id, category.quantity, category.sold_quantity, cart[("category", category.id)]
            )

        price = Decimal("0.00") if free else ticket_price(lot.price, applied_coupon)
        ticket = Ticket(
            code=unique_code(db),
            user_id=player.user_id,
            transaction_id=transaction.id,
            team_id=team_row.id,
            ticket_lot_id=lot.id,
            category_id=player.category_id,
            coupon_id=applied_coupon.id if applied_coupon else None,
            price=price,
        )
        db.add(ticket)
        # Flush so the next code lookup sees this ticket and children get its id
        db.flush()

        db.add_all(
            PersonalizedFieldAnswer(
                ticket_id=ticket.id,
                personalized_field_id=field.personalized_field_id,
                answer=field.answer,
            )
            for field in player.personal_fields
        )
        db.add_all(TermTicketConfirmation(term_id=term_id, ticket_id=ticket.id) for term_id in term_ids)
        prices.append(price)
    db.flush()
    return prices


def perform_checkout(db: Session, request: CheckoutRequest, user_id: int, now: Optional[datetime] = None) -> Transaction:
    """Allocate and price a paid cart.

    The event fee is taken from the first team's event and applied once to the
    sum of ticket prices. Any error rolls back every row written for the cart.

    Raises:
        NoActiveLotError: a team's ticket type has no lot on sale.
        SoldOutError: the cart exceeds a lot, category or coupon capacity.
        NotFoundError: unknown ticket type, category or coupon.
    """
    now = now or utcnow()
    term_ids = [t.term_id for t in request.terms]
    try:
        transaction = Transaction(
            status=TransactionStatus.PENDING,
            total_value=Decimal("0"),
            created_by_id=user_id,
            payment_method=request.payment_data.payment_method.value,
        )
        db.add(transaction)
        db.flush()

        event = _ticket_type(db, request.teams[0].ticket_type_id).event
        coupon = inventory.get_coupon(db, request.coupon_id, event.id) if request.coupon_id else None

        cart: Counter = Counter()
        prices: list[Decimal] = []
        for team in request.teams:
            prices.extend(_allocate_team(db, transaction, team, term_ids, now, cart, coupon=coupon))

        if coupon is not None and coupon.is_active:
            inventory.ensure_capacity("coupon", coupon.id, coupon.quantity, coupon.sold_quantity, len(prices))

        transaction.total_value = transaction_total(prices, event.event_fee)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Checkout created | transaction=%s tickets=%s total=%s method=%s",
        transaction.id, len(prices), transaction.total_value, transaction.payment_method,
    )
    return load_transaction(db, transaction.id)


def perform_free_checkout(db: Session, request: FreeCheckoutRequest, user_id: int, now: Optional[datetime] = None) -> Transaction:
    """Allocate a free team: approved at once, every ticket priced 0, no coupon or fee."""
    now = now or utcnow()
    term_ids = [t.term_id for t in request.terms]
    try:
        transaction = Transaction(
            status=TransactionStatus.APPROVED,
            total_value=Decimal("0"),
            created_by_id=user_id,
            payment_method=PaymentMethod.FREE.value,
            external_status=FREE_EXTERNAL_STATUS,
            paid_at=now,
        )
        db.add(transaction)
        db.flush()
        _ticket_type(db, request.team.ticket_type_id)
        prices = _allocate_team(db, transaction, request.team, term_ids, now, Counter(), free=True)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Free checkout created | transaction=%s tickets=%s", transaction.id, len(prices))
    return load_transaction(db, transaction.id)


def mark_transaction_as_free(db: Session, transaction_id: int) -> Transaction:
    """Comp an existing transaction: APPROVED, FREE, paid now."""
    transaction = db.get(Transaction, transaction_id)
    if transaction is None:
        logger.warning("Transaction not found | transaction=%s", transaction_id)
        raise NotFoundError("transaction", transaction_id)
    transaction.status = TransactionStatus.APPROVED
    transaction.payment_method = PaymentMethod.FREE.value
    transaction.external_status = FREE_EXTERNAL_STATUS
    transaction.paid_at = utcnow()
    db.commit()
    logger.info("Transaction marked as free | transaction=%s", transaction_id)
    return load_transaction(db, transaction_id)


def load_transaction(db: Session, transaction_id: int) -> Transaction:
    """Transaction with its ticket/lot/type/event/category/coupon graph loaded."""
    transaction = (
        db.query(Transaction)
        .options(
            selectinload(Transaction.tickets)
            .selectinload(Ticket.ticket_lot)
            .selectinload(TicketLot.ticket_type)
            .selectinload(TicketType.event),
            selectinload(Transaction.tickets).selectinload(Ticket.category),
            selectinload(Transaction.tickets).selectinload(Ticket.coupon),
            selectinload(Transaction.tickets).selectinload(Ticket.user),
            selectinload(Transaction.tickets).selectinload(Ticket.personalized_field_answers),
            selectinload(Transaction.tickets).selectinload(Ticket.term_confirmations),
        )
        .filter(Transaction.id == transaction_id)
        .first()
    )
    if transaction is None:
        logger.warning("Transaction not found | transaction=%s", transaction_id)
        raise NotFoundError("transaction", transaction_id)
    return transaction
