"""Routing of a checkout to the payment gateway that serves its payment method."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ticketing.core.errors import UnsupportedGatewayError
from ticketing.models.enums import PaymentMethod
from ticketing.models.transaction import Transaction
from ticketing.schemas.checkout import PaymentDataIn

logger = logging.getLogger(__name__)


@dataclass
class GatewayResult:
    """What the client needs to finish paying, plus the gateway's payment resource if any."""

    redirect_url: Optional[str] = None
    qr_code: Optional[str] = None
    qr_code_base64: Optional[str] = None
    ticket_url: Optional[str] = None
    payment: Optional[dict[str, Any]] = None

    def public(self) -> dict[str, Any]:
        return {
            k: v
            for k, v in (
                ("redirect_url", self.redirect_url),
                ("qr_code", self.qr_code),
                ("qr_code_base64", self.qr_code_base64),
                ("ticket_url", self.ticket_url),
            )
            if v is not None
        }


class PaymentGateway(ABC):
    methods: tuple[PaymentMethod, ...] = ()

    @abstractmethod
    def dispatch(self, transaction: Transaction, payment_data: PaymentDataIn) -> GatewayResult:
        """Start the payment for ``transaction`` on the external gateway."""
        ...


class PaymentRouter:
    """Lookup table from payment method to gateway."""

    def __init__(self, gateways: Iterable[PaymentGateway]) -> None:
        self._by_method: dict[PaymentMethod, PaymentGateway] = {}
        for gateway in gateways:
            for method in gateway.methods:
                self._by_method[method] = gateway

    def gateway_for(self, payment_method) -> PaymentGateway:
        try:
            return self._by_method[PaymentMethod(payment_method)]
        except (KeyError, ValueError):
            logger.warning("Unsupported payment method | method=%s", payment_method)
            raise UnsupportedGatewayError(payment_method)

    def dispatch(self, transaction: Transaction, payment_data: PaymentDataIn) -> GatewayResult:
        gateway = self.gateway_for(payment_data.payment_method)
        logger.info(
            "Dispatching payment | transaction=%s method=%s gateway=%s",
            transaction.id, payment_data.payment_method.value, type(gateway).__name__,
        )
        return gateway.dispatch(transaction, payment_data)
