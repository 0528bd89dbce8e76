from sqlalchemy import Integer, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticketing.models.base import Base
from ticketing.models.personalized_field import PersonalizedField

class PersonalizedFieldAnswer(Base):
    __tablename__ = "personalized_field_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey("tickets.id", ondelete="CASCADE"), index=True)
    personalized_field_id: Mapped[int] = mapped_column(ForeignKey("personalized_fields.id"))
    answer: Mapped[str] = mapped_column(Text)

    personalized_field: Mapped[PersonalizedField] = relationship(PersonalizedField)
