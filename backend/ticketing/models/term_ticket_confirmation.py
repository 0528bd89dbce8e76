from datetime import datetime
from sqlalchemy import Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ticketing.core.clock import utcnow
from ticketing.models.base import Base

class TermTicketConfirmation(Base):
    __tablename__ = "term_ticket_confirmations"
    __table_args__ = (UniqueConstraint("term_id", "ticket_id", name="uq_term_ticket"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    term_id: Mapped[int] = mapped_column(ForeignKey("terms.id"))
    ticket_id: Mapped[int] = mapped_column(ForeignKey("tickets.id", ondelete="CASCADE"), index=True)
    confirmed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
