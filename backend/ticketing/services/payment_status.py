"""Gateway status vocabularies mapped onto :class:`TransactionStatus`.

Unknown raw values map to PENDING so that a gateway adding new statuses never
breaks webhook processing.
"""
from decimal import Decimal
from typing import Optional

from ticketing.models.enums import TransactionStatus as S

MERCADO_PAGO_STATUSES = {
    "pending": S.PENDING,
    "approved": S.APPROVED,
    "authorized": S.AUTHORIZED,
    "in_process": S.IN_PROCESS,
    "in_mediation": S.IN_MEDIATION,
    "rejected": S.REJECTED,
    "cancelled": S.CANCELLED,
    "refunded": S.REFUNDED,
    "charged_back": S.CHARGED_BACK,
}

STRIPE_STATUSES = {
    "succeeded": S.APPROVED,
    "requires_capture": S.AUTHORIZED,
    "processing": S.IN_PROCESS,
    "canceled": S.CANCELLED,
    "requires_payment_method": S.PENDING,
    "requires_confirmation": S.PENDING,
    "requires_action": S.PENDING,
}

PAID_STATUSES = frozenset({S.APPROVED, S.AUTHORIZED})
REVERSED_STATUSES = frozenset({S.REFUNDED, S.CHARGED_BACK})

# PENDING -> first-tier outcomes -> reversals. AUTHORIZED/IN_PROCESS/IN_MEDIATION are
# still in flight and may settle into any other first-tier outcome.
_FIRST_TIER = frozenset({S.APPROVED, S.AUTHORIZED, S.IN_PROCESS, S.IN_MEDIATION, S.REJECTED, S.CANCELLED})
_IN_FLIGHT = frozenset({S.AUTHORIZED, S.IN_PROCESS, S.IN_MEDIATION})

def map_mercado_pago_status(raw: Optional[str], refunded_amount=None) -> S:
    status = MERCADO_PAGO_STATUSES.get((raw or "").strip().lower(), S.PENDING)
    if refunded_amount is not None and Decimal(refunded_amount) > 0:
        return S.REFUNDED
    return status

def map_stripe_status(raw: Optional[str]) -> S:
    return STRIPE_STATUSES.get((raw or "").strip().lower(), S.PENDING)

def can_transition(current: S, new: S) -> bool:
    """Whether ``current -> new`` moves forward in the transaction state machine."""
    if current == new:
        return True
    if current == S.PENDING:
        return True
    if current in REVERSED_STATUSES:
        return False
    if new in REVERSED_STATUSES:
        return True
    return current in _IN_FLIGHT and new in _FIRST_TIER
