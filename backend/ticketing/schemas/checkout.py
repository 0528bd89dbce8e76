from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, model_validator

from ticketing.models.enums import PaymentMethod, TransactionStatus

class PersonalFieldIn(BaseModel):
    personalized_field_id: int
    answer: str = Field(..., max_length=2000)

class PlayerIn(BaseModel):
    user_id: int
    category_id: Optional[int] = None
    personal_fields: List[PersonalFieldIn] = Field(default_factory=list)

class TeamIn(BaseModel):
    ticket_type_id: int
    players: List[PlayerIn] = Field(..., min_length=1)

class TermIn(BaseModel):
    term_id: int

class PaymentDataIn(BaseModel):
    payment_method: PaymentMethod
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payer_email: Optional[EmailStr] = None
    # Credit card only (Mercado Pago card token + brand id, e.g. "visa")
    card_token: Optional[str] = None
    card_brand: Optional[str] = None
    installments: int = Field(1, ge=1, le=12)

    @model_validator(mode="after")
    def _check_method(self):
        if self.payment_method == PaymentMethod.FREE:
            raise ValueError("FREE is not a payable method; use the free checkout")
        if self.payment_method == PaymentMethod.CREDIT_CARD and not (self.card_token and self.card_brand):
            raise ValueError("card_token and card_brand are required for CREDIT_CARD")
        return self

class CheckoutRequest(BaseModel):
    """Paid checkout: one or more teams sharing one event."""
    teams: List[TeamIn] = Field(..., min_length=1)
    coupon_id: Optional[int] = None
    terms: List[TermIn] = Field(default_factory=list)
    payment_data: PaymentDataIn

class FreeCheckoutRequest(BaseModel):
    team: TeamIn
    terms: List[TermIn] = Field(default_factory=list)

class TicketOut(BaseModel):
    id: int
    code: str
    user_id: int
    team_id: int
    ticket_lot_id: int
    category_id: Optional[int]
    coupon_id: Optional[int]
    price: Decimal
    delivered_at: Optional[str]

class TransactionOut(BaseModel):
    id: int
    status: TransactionStatus
    total_value: Decimal
    payment_method: str
    external_payment_id: Optional[str]
    external_status: Optional[str]
    pix_qr_code: Optional[str]
    paid_at: Optional[str]
    tickets: List[TicketOut] = Field(default_factory=list)

def _iso(dt):
    return dt.isoformat() if dt else None

def transaction_out(tx) -> TransactionOut:
    return TransactionOut(
        id=tx.id,
        status=tx.status,
        total_value=tx.total_value,
        payment_method=tx.payment_method,
        external_payment_id=tx.external_payment_id,
        external_status=tx.external_status,
        pix_qr_code=tx.pix_qr_code,
        paid_at=_iso(tx.paid_at),
        tickets=[
            TicketOut(
                id=t.id,
                code=t.code,
                user_id=t.user_id,
                team_id=t.team_id,
                ticket_lot_id=t.ticket_lot_id,
                category_id=t.category_id,
                coupon_id=t.coupon_id,
                price=t.price,
                delivered_at=_iso(t.delivered_at),
            )
            for t in tx.tickets
        ],
    )
