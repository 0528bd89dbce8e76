from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from ticketing.models.coupon import Coupon

CENT = Decimal("0.01")

def to_money(value) -> Decimal:
    """Quantize to currency minor units (2 places, half-up)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)

def ticket_price(lot_price, coupon: Optional[Coupon] = None) -> Decimal:
    """Per-ticket price: lot price minus the coupon discount when the coupon is active."""
    price = Decimal(lot_price)
    if coupon is not None and coupon.is_active:
        price = price - price * Decimal(coupon.percentage)
    return to_money(price)

def transaction_total(prices: Iterable[Decimal], event_fee=None) -> Decimal:
    """Sum ticket prices and apply the event fee once to the sum."""
    subtotal = sum((Decimal(p) for p in prices), Decimal("0"))
    fee = Decimal(event_fee) if event_fee else Decimal("0")
    return to_money(subtotal + subtotal * fee)

def to_minor_units(amount) -> int:
    """Amount in cents, as gateways expect (e.g. Stripe unit_amount)."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))
