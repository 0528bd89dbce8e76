from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, ForeignKey, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticketing.core.clock import utcnow
from ticketing.models.base import Base
from ticketing.models.category import Category
from ticketing.models.coupon import Coupon
from ticketing.models.personalized_field_answer import PersonalizedFieldAnswer
from ticketing.models.term_ticket_confirmation import TermTicketConfirmation
from ticketing.models.ticket_lot import TicketLot
from ticketing.models.user import User

class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("transactions.id"), index=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"))
    ticket_lot_id: Mapped[int] = mapped_column(ForeignKey("ticket_lots.id"))
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True)
    coupon_id: Mapped[int | None] = mapped_column(ForeignKey("coupons.id"), nullable=True)
    # Frozen at allocation time, post-discount
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    # Set once; gates the sold-quantity increment
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # Set once; gates the sold-quantity decrement
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    user: Mapped[User] = relationship(User)
    ticket_lot: Mapped[TicketLot] = relationship(TicketLot)
    category: Mapped[Category | None] = relationship(Category)
    coupon: Mapped[Coupon | None] = relationship(Coupon)
    personalized_field_answers: Mapped[list[PersonalizedFieldAnswer]] = relationship(PersonalizedFieldAnswer, order_by=PersonalizedFieldAnswer.id)
    term_confirmations: Mapped[list[TermTicketConfirmation]] = relationship(TermTicketConfirmation, order_by=TermTicketConfirmation.id)
