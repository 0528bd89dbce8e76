from decimal import Decimal
from sqlalchemy import String, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from ticketing.models.base import Base

class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    # Ratio applied once to the sum of ticket prices (0.1 = 10%)
    event_fee: Mapped[Decimal] = mapped_column(Numeric(5, 4), default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(8), default="brl")
