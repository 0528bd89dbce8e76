from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, ForeignKey, DateTime, Numeric, Boolean, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ticketing.models.base import Base

class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (CheckConstraint("sold_quantity >= 0", name="ck_coupons_sold_non_negative"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), index=True)
    name: Mapped[str] = mapped_column(String(64))
    # Discount ratio (0.2 = 20% off)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 4))
    quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = unlimited
    sold_quantity: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
