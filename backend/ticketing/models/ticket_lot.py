from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, ForeignKey, DateTime, Numeric, Boolean, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticketing.models.base import Base
from ticketing.models.ticket_type import TicketType

class TicketLot(Base):
    __tablename__ = "ticket_lots"
    __table_args__ = (
        Index("ix_ticket_lots_window", "ticket_type_id", "start_date", "end_date"),
        CheckConstraint("sold_quantity >= 0", name="ck_ticket_lots_sold_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_type_id: Mapped[int] = mapped_column(ForeignKey("ticket_types.id"))
    name: Mapped[str] = mapped_column(String(255))
    start_date: Mapped[datetime] = mapped_column(DateTime)
    end_date: Mapped[datetime] = mapped_column(DateTime)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    quantity: Mapped[int] = mapped_column(Integer)
    sold_quantity: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    ticket_type: Mapped[TicketType] = relationship(TicketType)
