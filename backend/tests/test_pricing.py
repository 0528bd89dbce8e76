from decimal import Decimal

from ticketing.models.coupon import Coupon
from ticketing.services.pricing import ticket_price, to_minor_units, transaction_total


def _coupon(percentage: str, is_active: bool = True) -> Coupon:
    return Coupon(name="PROMO", percentage=Decimal(percentage), is_active=is_active)


def test_price_without_coupon_is_lot_price():
    assert ticket_price(Decimal("100.00")) == Decimal("100.00")


def test_active_coupon_discounts_lot_price():
    assert ticket_price(Decimal("100.00"), _coupon("0.2")) == Decimal("80.00")


def test_inactive_coupon_is_ignored():
    assert ticket_price(Decimal("100.00"), _coupon("0.2", is_active=False)) == Decimal("100.00")


def test_discount_rounds_to_cents():
    # 33.33 * 0.15 = 4.9995 -> 28.3305 -> 28.33
    assert ticket_price(Decimal("33.33"), _coupon("0.15")) == Decimal("28.33")


def test_fee_is_applied_once_to_the_sum():
    assert transaction_total([Decimal("100"), Decimal("100")], Decimal("0.1")) == Decimal("220.00")


def test_no_fee_returns_sum():
    assert transaction_total([Decimal("80.00")], None) == Decimal("80.00")
    assert transaction_total([], Decimal("0.1")) == Decimal("0.00")


def test_minor_units():
    assert to_minor_units(Decimal("100")) == 10000
    assert to_minor_units(Decimal("12.345")) == 1235
