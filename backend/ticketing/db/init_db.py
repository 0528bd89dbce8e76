from ticketing.db.session import engine
from ticketing.models.base import Base
# Import every model module so Base.metadata knows all tables
from ticketing.models import user, event, ticket_type, ticket_lot, category, coupon  # noqa: F401
from ticketing.models import personalized_field, term, team, ticket, transaction  # noqa: F401
from ticketing.models import personalized_field_answer, term_ticket_confirmation, notification  # noqa: F401

def create_tables():
    Base.metadata.create_all(bind=engine)

def drop_tables():
    Base.metadata.drop_all(bind=engine)
