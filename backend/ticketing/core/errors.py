"""Domain errors raised by the checkout and reconciliation services.

Each error carries a stable code and a user-safe message. The HTTP layer maps
codes to status codes in one place (see ``ticketing.main``).
"""

from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NO_ACTIVE_LOT = "NO_ACTIVE_LOT"
    SOLD_OUT = "SOLD_OUT"
    NOT_FOUND = "NOT_FOUND"
    UNSUPPORTED_GATEWAY = "UNSUPPORTED_GATEWAY"
    GATEWAY_COMMUNICATION = "GATEWAY_COMMUNICATION"
    SIGNATURE_VERIFICATION = "SIGNATURE_VERIFICATION"
    CODE_SPACE_EXHAUSTED = "CODE_SPACE_EXHAUSTED"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Malformed request; raised before any side effect."""

    code = ErrorCode.VALIDATION_ERROR


class NoActiveLotError(DomainError):
    """No lot of the ticket type is on sale at the requested instant."""

    code = ErrorCode.NO_ACTIVE_LOT

    def __init__(self, ticket_type_id: int) -> None:
        super().__init__("No active lot available for this ticket type")
        self.ticket_type_id = ticket_type_id


class SoldOutError(DomainError):
    """A lot, category or coupon has no capacity left for the cart."""

    code = ErrorCode.SOLD_OUT

    def __init__(self, kind: str, entity_id: int) -> None:
        super().__init__(f"{kind.capitalize()} sold out")
        self.kind = kind
        self.entity_id = entity_id


class NotFoundError(DomainError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, kind: str, entity_id) -> None:
        super().__init__(f"{kind.capitalize()} not found")
        self.kind = kind
        self.entity_id = entity_id


class UnsupportedGatewayError(DomainError):
    code = ErrorCode.UNSUPPORTED_GATEWAY

    def __init__(self, payment_method) -> None:
        super().__init__("Payment gateway not supported")
        self.payment_method = payment_method


class GatewayCommunicationError(DomainError):
    """The upstream payment gateway could not be reached or refused the call."""

    code = ErrorCode.GATEWAY_COMMUNICATION


class SignatureVerificationError(DomainError):
    code = ErrorCode.SIGNATURE_VERIFICATION


class CodeSpaceExhaustedError(DomainError):
    """No unique ticket code could be produced; the code space is misconfigured."""

    code = ErrorCode.CODE_SPACE_EXHAUSTED
