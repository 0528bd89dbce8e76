from decimal import Decimal
from types import SimpleNamespace

import pytest
import requests
import stripe

from conftest import stripe_signature
from ticketing.core.errors import (
    GatewayCommunicationError,
    SignatureVerificationError,
    UnsupportedGatewayError,
    ValidationError,
)
from ticketing.models.enums import PaymentMethod
from ticketing.schemas.checkout import CheckoutRequest, PaymentDataIn
from ticketing.services import checkout
from ticketing.services.gateways import GatewayResult, PaymentGateway, PaymentRouter
from ticketing.services.mercado_pago import MercadoPagoClient, MercadoPagoGateway
from ticketing.services.stripe_gateway import StripeGateway, verify_webhook


class FakeResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"{}" if body is not None else b""

    def json(self):
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def _reply(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self._reply("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._reply("GET", url, **kwargs)


class FakeClient:
    def __init__(self, payment):
        self.payment = payment
        self.created = []

    def create_payment(self, body, idempotency_key):
        self.created.append((body, idempotency_key))
        return self.payment


def make_transaction(db, seed, method="PIX", fee="0", players=1, **payment):
    buyer = seed.user()
    tt = seed.ticket_type(seed.event(fee=fee))
    seed.lot(tt, price="100", name="Early bird")
    request = CheckoutRequest.model_validate(
        {
            "teams": [{"ticket_type_id": tt.id, "players": [{"user_id": buyer.id}] * players}],
            "payment_data": {"payment_method": method, **payment},
        }
    )
    return checkout.perform_checkout(db, request, buyer.id), request.payment_data


def test_router_picks_gateway_by_method():
    mp, st = MercadoPagoGateway(FakeClient({})), StripeGateway(api_key="sk_test")
    router = PaymentRouter([mp, st])

    assert router.gateway_for(PaymentMethod.PIX) is mp
    assert router.gateway_for("CREDIT_CARD") is mp
    assert router.gateway_for("BOLETO") is mp
    assert router.gateway_for("STRIPE") is st


@pytest.mark.parametrize("method", ["FREE", "PAYPAL", None])
def test_router_rejects_unroutable_methods(method):
    router = PaymentRouter([MercadoPagoGateway(FakeClient({})), StripeGateway(api_key="sk_test")])
    with pytest.raises(UnsupportedGatewayError):
        router.gateway_for(method)


def test_router_dispatches_to_gateway(db, seed):
    class Recorder(PaymentGateway):
        methods = (PaymentMethod.PIX,)

        def __init__(self):
            self.seen = []

        def dispatch(self, transaction, payment_data):
            self.seen.append(transaction.id)
            return GatewayResult(qr_code="qr")

    tx, payment_data = make_transaction(db, seed)
    recorder = Recorder()
    result = PaymentRouter([recorder]).dispatch(tx, payment_data)

    assert recorder.seen == [tx.id]
    assert result.public() == {"qr_code": "qr"}


def test_mercado_pago_pix_body(db, seed):
    tx, payment_data = make_transaction(db, seed, fee="0.1", players=2, payer_email="buyer@example.com")
    body = MercadoPagoGateway(FakeClient({})).build_payment(tx, payment_data)

    assert body["transaction_amount"] == 220.0
    assert body["payment_method_id"] == "pix"
    assert body["external_reference"] == str(tx.id)
    assert body["payer"] == {"email": "buyer@example.com"}


def test_mercado_pago_card_body_falls_back_to_ticket_holder_email(db, seed):
    tx, payment_data = make_transaction(db, seed, method="CREDIT_CARD", card_token="tok_1", card_brand="visa", installments=3)
    body = MercadoPagoGateway(FakeClient({})).build_payment(tx, payment_data)

    assert body["payment_method_id"] == "visa"
    assert body["token"] == "tok_1"
    assert body["installments"] == 3
    assert body["payer"]["email"] == tx.tickets[0].user.email


def test_mercado_pago_requires_payer_email():
    tx = SimpleNamespace(id=1, total_value=Decimal("10"), tickets=[])
    with pytest.raises(ValidationError):
        MercadoPagoGateway(FakeClient({})).build_payment(tx, PaymentDataIn(payment_method=PaymentMethod.PIX))


def test_card_payment_requires_token_and_brand():
    with pytest.raises(ValueError):
        PaymentDataIn(payment_method=PaymentMethod.CREDIT_CARD, card_token="tok_1")
    with pytest.raises(ValueError):
        PaymentDataIn(payment_method=PaymentMethod.FREE)


def test_mercado_pago_dispatch_returns_pix_data(db, seed):
    tx, payment_data = make_transaction(db, seed, payer_email="buyer@example.com")
    payment = {
        "id": 42,
        "status": "pending",
        "external_reference": str(tx.id),
        "point_of_interaction": {"transaction_data": {"qr_code": "000201", "qr_code_base64": "iVBOR", "ticket_url": "https://mp/t/42"}},
    }
    client = FakeClient(payment)
    result = MercadoPagoGateway(client).dispatch(tx, payment_data)

    assert result.public() == {"qr_code": "000201", "qr_code_base64": "iVBOR", "ticket_url": "https://mp/t/42"}
    assert result.payment is payment
    assert client.created[0][1] == f"transaction-{tx.id}"


def test_mercado_pago_client_create_payment():
    session = FakeSession(FakeResponse(201, {"id": 1, "status": "pending"}))
    client = MercadoPagoClient(access_token="TOKEN", base_url="https://mp.test/", session=session)

    assert client.create_payment({"external_reference": "1"}, "transaction-1") == {"id": 1, "status": "pending"}
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "https://mp.test/v1/payments")
    assert kwargs["headers"]["Authorization"] == "Bearer TOKEN"
    assert kwargs["headers"]["X-Idempotency-Key"] == "transaction-1"


def test_mercado_pago_client_create_payment_rejected():
    session = FakeSession(FakeResponse(400, {"message": "invalid payer"}))
    client = MercadoPagoClient(access_token="TOKEN", session=session)
    with pytest.raises(GatewayCommunicationError, match="invalid payer"):
        client.create_payment({}, "transaction-1")


def test_mercado_pago_client_create_payment_network_error():
    client = MercadoPagoClient(access_token="TOKEN", session=FakeSession(error=requests.ConnectionError("down")))
    with pytest.raises(GatewayCommunicationError):
        client.create_payment({}, "transaction-1")


def test_mercado_pago_client_fetch_payment():
    ok = MercadoPagoClient(access_token="TOKEN", session=FakeSession(FakeResponse(200, {"id": 7})))
    assert ok.fetch_payment("7") == {"id": 7}

    missing = MercadoPagoClient(access_token="TOKEN", session=FakeSession(FakeResponse(404, {"message": "not found"})))
    assert missing.fetch_payment("7") is None

    offline = MercadoPagoClient(access_token="TOKEN", session=FakeSession(error=requests.Timeout("slow")))
    assert offline.fetch_payment("7") is None

    unconfigured = MercadoPagoClient(access_token="", session=FakeSession(FakeResponse(200, {"id": 7})))
    assert unconfigured.fetch_payment("7") is None


def test_stripe_session_has_ticket_and_fee_lines(db, seed, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    tx, payment_data = make_transaction(db, seed, method="STRIPE", fee="0.1", players=2)

    result = StripeGateway(api_key="sk_test", frontend_url="https://tickets.example/").dispatch(tx, payment_data)

    assert result.public() == {"redirect_url": "https://checkout.stripe.com/c/pay/cs_test_1"}
    amounts = [(i["price_data"]["product_data"]["name"], i["price_data"]["unit_amount"]) for i in captured["line_items"]]
    assert amounts == [("Early bird", 10000), ("Early bird", 10000), ("Service fee", 2000)]
    assert {i["price_data"]["currency"] for i in captured["line_items"]} == {"brl"}
    assert captured["metadata"] == {"transactionId": str(tx.id)}
    assert captured["payment_intent_data"] == {"metadata": {"transactionId": str(tx.id)}}
    assert captured["mode"] == "payment"
    assert captured["success_url"] == f"https://tickets.example/pagamento/{tx.id}?success=true"
    assert captured["cancel_url"] == f"https://tickets.example/pagamento/{tx.id}?canceled=true"


def test_stripe_session_failure(db, seed, monkeypatch):
    def fake_create(**kwargs):
        raise stripe.APIConnectionError("unreachable")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    tx, payment_data = make_transaction(db, seed, method="STRIPE", currency="USD")
    with pytest.raises(GatewayCommunicationError):
        StripeGateway(api_key="sk_test").dispatch(tx, payment_data)


def test_stripe_without_key(db, seed):
    tx, payment_data = make_transaction(db, seed, method="STRIPE")
    with pytest.raises(GatewayCommunicationError):
        StripeGateway(api_key="").dispatch(tx, payment_data)


def test_verify_webhook():
    payload = b'{"id": "evt_1", "object": "event", "type": "payment_intent.succeeded", "data": {"object": {}}}'

    event = verify_webhook(payload, stripe_signature(payload), secret="whsec_test_secret")
    assert event["type"] == "payment_intent.succeeded"

    with pytest.raises(SignatureVerificationError):
        verify_webhook(payload, stripe_signature(payload, secret="whsec_other"), secret="whsec_test_secret")
    with pytest.raises(SignatureVerificationError):
        verify_webhook(payload, None, secret="whsec_test_secret")
    with pytest.raises(SignatureVerificationError):
        verify_webhook(payload, "garbage", secret="whsec_test_secret")
