"""Lot allocation and sold-quantity bookkeeping.

Sold-quantity counters on lots, categories and coupons are only ever changed
through :class:`InventoryCounter`, whose UPDATE statements carry their own guard
so concurrent writers can never push a counter below zero or above its cap.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from ticketing.core.errors import NoActiveLotError, NotFoundError, SoldOutError
from ticketing.models.category import Category
from ticketing.models.coupon import Coupon
from ticketing.models.ticket_lot import TicketLot

logger = logging.getLogger(__name__)


class InventoryCounter:
    """Guarded ``sold_quantity`` counter for one table."""

    def __init__(self, model, kind: str) -> None:
        self.table = model.__tablename__
        self.kind = kind

    def try_increment(self, db: Session, entity_id: int) -> bool:
        """Add one sale unless the cap is reached. Returns False when capped."""
        result = db.execute(
            text(
                f"""
                UPDATE {self.table}
                SET sold_quantity = sold_quantity + 1
                WHERE id = :id AND (quantity IS NULL OR sold_quantity < quantity)
                """
            ),
            {"id": entity_id},
        )
        return result.rowcount == 1

    def try_decrement(self, db: Session, entity_id: int) -> bool:
        """Remove one sale unless the counter is already zero."""
        result = db.execute(
            text(
                f"""
                UPDATE {self.table}
                SET sold_quantity = sold_quantity - 1
                WHERE id = :id AND sold_quantity > 0
                """
            ),
            {"id": entity_id},
        )
        return result.rowcount == 1

    def sold(self, db: Session, entity_id: int) -> Optional[int]:
        row = db.execute(text(f"SELECT sold_quantity FROM {self.table} WHERE id = :id"), {"id": entity_id}).fetchone()
        return row[0] if row is not None else None


lot_counter = InventoryCounter(TicketLot, "lot")
category_counter = InventoryCounter(Category, "category")
coupon_counter = InventoryCounter(Coupon, "coupon")


def allocate(db: Session, ticket_type_id: int, at: datetime) -> TicketLot:
    """Return the earliest-starting active lot of the ticket type whose window contains ``at``.

    The lot row is locked for the rest of the enclosing transaction so concurrent
    checkouts against the same lot serialize (no-op on SQLite).

    Raises:
        NoActiveLotError: no lot is on sale at ``at``.
    """
    lot = (
        db.query(TicketLot)
        .filter(
            TicketLot.ticket_type_id == ticket_type_id,
            TicketLot.is_active.is_(True),
            TicketLot.deleted_at.is_(None),
            TicketLot.start_date <= at,
            TicketLot.end_date >= at,
        )
        .order_by(TicketLot.start_date.asc(), TicketLot.id.asc())
        .with_for_update()
        .first()
    )
    if lot is None:
        logger.warning("No active lot | ticket_type=%s at=%s", ticket_type_id, at.isoformat())
        raise NoActiveLotError(ticket_type_id)
    return lot


def ensure_capacity(kind: str, entity_id: int, quantity: Optional[int], sold_quantity: int, requested: int) -> None:
    """Reject a cart that would take ``sold + requested`` past ``quantity`` (None = unlimited)."""
    if quantity is None:
        return
    if sold_quantity + requested > quantity:
        logger.warning(
            "Capacity exceeded | %s=%s quantity=%s sold=%s requested=%s",
            kind, entity_id, quantity, sold_quantity, requested,
        )
        raise SoldOutError(kind, entity_id)


def get_category(db: Session, category_id: int, ticket_type_id: int) -> Category:
    category = (
        db.query(Category)
        .filter(Category.id == category_id, Category.deleted_at.is_(None), Category.ticket_type_id == ticket_type_id)
        .first()
    )
    if category is None:
        logger.warning("Category not found | category=%s ticket_type=%s", category_id, ticket_type_id)
        raise NotFoundError("category", category_id)
    return category


def get_coupon(db: Session, coupon_id: int, event_id: int) -> Coupon:
    coupon = (
        db.query(Coupon)
        .filter(Coupon.id == coupon_id, Coupon.deleted_at.is_(None), Coupon.event_id == event_id)
        .first()
    )
    if coupon is None:
        logger.warning("Coupon not found | coupon=%s event=%s", coupon_id, event_id)
        raise NotFoundError("coupon", coupon_id)
    return coupon
