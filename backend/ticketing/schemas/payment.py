from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, PrivateAttr

class MercadoPagoWebhookData(BaseModel):
    id: int | str | None = None

class MercadoPagoWebhook(BaseModel):
    """Notification body posted by Mercado Pago: {"type": "payment", "data": {"id": ...}}."""
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    data: Optional[MercadoPagoWebhookData] = None

class MercadoPagoTransactionData(BaseModel):
    model_config = ConfigDict(extra="allow")

    qr_code: Optional[str] = None
    qr_code_base64: Optional[str] = None
    ticket_url: Optional[str] = None

class MercadoPagoPointOfInteraction(BaseModel):
    model_config = ConfigDict(extra="allow")

    transaction_data: Optional[MercadoPagoTransactionData] = None

class MercadoPagoPayment(BaseModel):
    """Subset of the Mercado Pago payment resource the reconciliation reads.

    Unknown fields are kept so the full payload can be stored verbatim.
    """
    model_config = ConfigDict(extra="allow")

    id: int | str
    status: Optional[str] = None
    status_detail: Optional[str] = None
    external_reference: Optional[str] = None
    transaction_amount: Optional[Decimal] = None
    transaction_amount_refunded: Optional[Decimal] = None
    point_of_interaction: Optional[MercadoPagoPointOfInteraction] = None

    _raw: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MercadoPagoPayment":
        payment = cls.model_validate(payload)
        payment._raw = payload
        return payment

    @property
    def pix_qr_code(self) -> Optional[str]:
        poi = self.point_of_interaction
        if poi and poi.transaction_data:
            return poi.transaction_data.qr_code
        return None

    def raw(self) -> dict[str, Any]:
        return self._raw or self.model_dump(mode="json")
