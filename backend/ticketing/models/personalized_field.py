from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ticketing.models.base import Base

class PersonalizedField(Base):
    __tablename__ = "personalized_fields"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_type_id: Mapped[int] = mapped_column(ForeignKey("ticket_types.id"), index=True)
    label: Mapped[str] = mapped_column(String(255))
