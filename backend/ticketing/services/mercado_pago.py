import logging
from typing import Any, Optional

import requests

from ticketing.core.config import settings
from ticketing.core.errors import GatewayCommunicationError, ValidationError
from ticketing.models.enums import PaymentMethod
from ticketing.models.transaction import Transaction
from ticketing.schemas.checkout import PaymentDataIn
from ticketing.services.gateways import GatewayResult, PaymentGateway

logger = logging.getLogger(__name__)

# Mercado Pago payment_method_id per checkout method (cards use the brand id)
PAYMENT_METHOD_IDS = {
    PaymentMethod.PIX: "pix",
    PaymentMethod.BOLETO: "bolbradesco",
}


class MercadoPagoClient:
    """Bearer-token client for the Mercado Pago payments API."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.access_token = access_token if access_token is not None else settings.mp_access_token
        self.base_url = (base_url or settings.mp_api_base_url).rstrip("/")
        self.timeout = timeout or settings.mp_timeout_seconds
        self.session = session or requests.Session()

    def _headers(self, idempotency_key: Optional[str] = None) -> dict[str, str]:
        if not self.access_token:
            raise GatewayCommunicationError("MP_ACCESS_TOKEN not set")
        headers = {"Authorization": f"Bearer {self.access_token}", "Content-Type": "application/json"}
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    def create_payment(self, body: dict[str, Any], idempotency_key: str) -> dict[str, Any]:
        url = f"{self.base_url}/v1/payments"
        try:
            r = self.session.post(url, headers=self._headers(idempotency_key), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("MP create failed | reference=%s error=%s", body.get("external_reference"), e)
            raise GatewayCommunicationError("Payment gateway unavailable") from e
        j = r.json() if r.content else {}
        if not (200 <= r.status_code < 300):
            logger.error(
                "MP create rejected | reference=%s status=%s message=%s",
                body.get("external_reference"), r.status_code, j.get("message"),
            )
            raise GatewayCommunicationError(j.get("message") or f"HTTP {r.status_code}")
        return j

    def fetch_payment(self, payment_id: str) -> Optional[dict[str, Any]]:
        """Payment resource by id, or None when the gateway cannot provide it."""
        url = f"{self.base_url}/v1/payments/{payment_id}"
        try:
            r = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        except (requests.RequestException, GatewayCommunicationError) as e:
            logger.error("MP fetch exception | id=%s error=%s", payment_id, e)
            return None
        if not (200 <= r.status_code < 300):
            logger.error("MP fetch failed | id=%s status=%s", payment_id, r.status_code)
            return None
        return r.json()


class MercadoPagoGateway(PaymentGateway):
    methods = (PaymentMethod.PIX, PaymentMethod.CREDIT_CARD, PaymentMethod.BOLETO)

    def __init__(self, client: Optional[MercadoPagoClient] = None) -> None:
        self.client = client or MercadoPagoClient()

    def build_payment(self, transaction: Transaction, payment_data: PaymentDataIn) -> dict[str, Any]:
        method = payment_data.payment_method
        payer_email = payment_data.payer_email
        if payer_email is None and transaction.tickets:
            payer_email = transaction.tickets[0].user.email
        if not payer_email:
            raise ValidationError("payer_email is required for Mercado Pago payments")
        body: dict[str, Any] = {
            "transaction_amount": float(transaction.total_value),
            "description": f"Tickets - transaction {transaction.id}",
            "external_reference": str(transaction.id),
            "payer": {"email": payer_email},
        }
        if method == PaymentMethod.CREDIT_CARD:
            body.update(
                payment_method_id=payment_data.card_brand,
                token=payment_data.card_token,
                installments=payment_data.installments,
            )
        else:
            body["payment_method_id"] = PAYMENT_METHOD_IDS[method]
        if settings.mp_notification_url:
            body["notification_url"] = settings.mp_notification_url
        return body

    def dispatch(self, transaction: Transaction, payment_data: PaymentDataIn) -> GatewayResult:
        payment = self.client.create_payment(
            self.build_payment(transaction, payment_data), idempotency_key=f"transaction-{transaction.id}"
        )
        data = (payment.get("point_of_interaction") or {}).get("transaction_data") or {}
        return GatewayResult(
            qr_code=data.get("qr_code"),
            qr_code_base64=data.get("qr_code_base64"),
            ticket_url=data.get("ticket_url") or (payment.get("transaction_details") or {}).get("external_resource_url"),
            payment=payment,
        )
