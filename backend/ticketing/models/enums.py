from enum import Enum


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    AUTHORIZED = "AUTHORIZED"
    IN_PROCESS = "IN_PROCESS"
    IN_MEDIATION = "IN_MEDIATION"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    CHARGED_BACK = "CHARGED_BACK"


class PaymentMethod(str, Enum):
    PIX = "PIX"
    CREDIT_CARD = "CREDIT_CARD"
    BOLETO = "BOLETO"
    STRIPE = "STRIPE"
    # Sentinel for comped transactions; never routed to a gateway
    FREE = "FREE"
