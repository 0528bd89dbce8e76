import json
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Integer, ForeignKey, DateTime, Numeric, Text, LargeBinary, CheckConstraint, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticketing.core.clock import utcnow
from ticketing.models.base import Base
from ticketing.models.enums import TransactionStatus
from ticketing.models.ticket import Ticket

class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("total_value >= 0", name="ck_transactions_total_non_negative"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus, native_enum=False, length=32), default=TransactionStatus.PENDING, index=True
    )
    total_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    payment_method: Mapped[str] = mapped_column(String(32))  # PaymentMethod value
    external_payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    # Raw gateway status string, kept verbatim for audit
    external_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    pix_qr_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    # Opaque serialized gateway payload
    response: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    tickets: Mapped[list[Ticket]] = relationship(Ticket, order_by=Ticket.id)

    def gateway_payload(self) -> dict | None:
        """Decode the stored gateway payload for audit display."""
        if not self.response:
            return None
        return json.loads(self.response.decode("utf-8"))
