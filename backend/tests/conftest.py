"""Pytest configuration and shared fixtures.

DATABASE_URL must point at the throwaway SQLite file before ``ticketing`` is imported.
"""
import hashlib
import hmac
import os
import tempfile
import time
from datetime import timedelta
from decimal import Decimal

_DB_DIR = tempfile.mkdtemp(prefix="ticketing-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["ENV"] = "test"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["MP_ACCESS_TOKEN"] = "TEST-access-token"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ticketing.core.clock import utcnow  # noqa: E402
from ticketing.core.security import create_access_token  # noqa: E402
from ticketing.db.init_db import create_tables, drop_tables  # noqa: E402
from ticketing.db.session import SessionLocal  # noqa: E402
from ticketing.models.category import Category  # noqa: E402
from ticketing.models.coupon import Coupon  # noqa: E402
from ticketing.models.event import Event  # noqa: E402
from ticketing.models.personalized_field import PersonalizedField  # noqa: E402
from ticketing.models.term import Term  # noqa: E402
from ticketing.models.ticket_lot import TicketLot  # noqa: E402
from ticketing.models.ticket_type import TicketType  # noqa: E402
from ticketing.models.user import User  # noqa: E402

STRIPE_WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


class Seeder:
    """Creates catalog rows for a test and commits them."""

    def __init__(self, db):
        self.db = db
        self._users = 0

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role: str = "user") -> User:
        self._users += 1
        n = self._users
        return self._save(User(email=f"user{n}@example.com", full_name=f"User {n}", role=role, is_active=True))

    def event(self, fee: str = "0") -> Event:
        return self._save(Event(name="Beach Cup", event_fee=Decimal(fee), currency="brl"))

    def ticket_type(self, event: Event | None = None) -> TicketType:
        event = event or self.event()
        return self._save(TicketType(event_id=event.id, name="Duo"))

    def lot(
        self,
        ticket_type: TicketType,
        price: str = "100",
        quantity: int = 100,
        sold: int = 0,
        start_offset: timedelta = timedelta(days=-1),
        end_offset: timedelta = timedelta(days=1),
        is_active: bool = True,
        deleted: bool = False,
        name: str = "Lot 1",
    ) -> TicketLot:
        now = utcnow()
        return self._save(
            TicketLot(
                ticket_type_id=ticket_type.id,
                name=name,
                start_date=now + start_offset,
                end_date=now + end_offset,
                price=Decimal(price),
                quantity=quantity,
                sold_quantity=sold,
                is_active=is_active,
                deleted_at=now if deleted else None,
            )
        )

    def category(self, ticket_type: TicketType, quantity: int = 50, sold: int = 0) -> Category:
        return self._save(Category(ticket_type_id=ticket_type.id, title="Open", quantity=quantity, sold_quantity=sold))

    def coupon(self, event: Event, percentage: str = "0.2", quantity: int | None = None, sold: int = 0, is_active: bool = True) -> Coupon:
        return self._save(
            Coupon(
                event_id=event.id,
                name="PROMO",
                percentage=Decimal(percentage),
                quantity=quantity,
                sold_quantity=sold,
                is_active=is_active,
            )
        )

    def field(self, ticket_type: TicketType) -> PersonalizedField:
        return self._save(PersonalizedField(ticket_type_id=ticket_type.id, label="T-shirt size"))

    def term(self, event: Event) -> Term:
        return self._save(Term(event_id=event.id, title="Image rights"))


@pytest.fixture(autouse=True)
def reset_db():
    drop_tables()
    create_tables()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
def client():
    from ticketing.main import app
    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(user: User, roles: list[str] | None = None) -> dict[str, str]:
    token = create_access_token(user.id, roles or [user.role])
    return {"Authorization": f"Bearer {token}"}


def stripe_signature(payload: bytes, secret: str = STRIPE_WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"
