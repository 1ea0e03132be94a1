import base64
import json
from decimal import Decimal

import httpx
import pytest

from travel_app.services import midtrans
from travel_app.services.midtrans import MidtransClient, compute_signature, format_gross_amount
from travel_app.utils.errors import GatewayError


def _client():
    return MidtransClient(
        server_key="SB-Mid-server-abc",
        snap_url="https://snap.example/snap/v1/",
        api_url="https://api.example/v2",
        timeout=2.0,
    )


@pytest.fixture
def transport(monkeypatch):
    """Route the client's httpx calls through a MockTransport handler."""
    calls = []
    state = {"handler": None}
    real_client = httpx.Client

    def handler(request):
        calls.append(request)
        return state["handler"](request)

    def build(timeout):
        assert timeout == 2.0
        return real_client(timeout=timeout, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(midtrans.httpx, "Client", build)

    def use(fn):
        state["handler"] = fn
        return calls

    return use


def test_gross_amount_is_sent_as_number():
    assert format_gross_amount(Decimal("1000000.00")) == 1000000
    assert isinstance(format_gross_amount(Decimal("1000000.00")), int)
    assert format_gross_amount(Decimal("10.50")) == 10.5


def test_signature_round_trip():
    client = _client()
    payload = {"order_id": "BOOKING-1-2-3", "status_code": "200", "gross_amount": "1000000.00"}
    payload["signature_key"] = compute_signature("BOOKING-1-2-3", "200", "1000000.00", "SB-Mid-server-abc")

    assert client.verify_signature(payload)
    assert not client.verify_signature(dict(payload, gross_amount="1.00"))
    assert not client.verify_signature(dict(payload, signature_key=None))


def test_create_transaction_posts_snap_payload(transport):
    calls = transport(
        lambda request: httpx.Response(201, json={"token": "tok", "redirect_url": "https://pay/tok"})
    )

    session = _client().create_transaction(
        "BOOKING-1-2-3",
        Decimal("1500000"),
        customer={"first_name": "Ayu", "email": "ayu@test.com"},
        items=[{"id": 1, "price": Decimal("1500000"), "name": "Travel Package: " + "x" * 80}],
        callback_url="http://localhost:3000/payment/callback",
    )

    assert session == {"token": "tok", "redirect_url": "https://pay/tok"}
    request = calls[0]
    assert str(request.url) == "https://snap.example/snap/v1/transactions"
    expected = base64.b64encode(b"SB-Mid-server-abc:").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"
    body = json.loads(request.content)
    assert body["transaction_details"] == {"order_id": "BOOKING-1-2-3", "gross_amount": 1500000}
    assert len(body["item_details"][0]["name"]) == midtrans.MAX_ITEM_NAME_LENGTH
    assert body["item_details"][0]["quantity"] == 1
    assert body["callbacks"] == {"finish": "http://localhost:3000/payment/callback"}


def test_missing_token_is_a_gateway_error(transport):
    transport(lambda request: httpx.Response(200, json={"error_messages": ["bad"]}))

    with pytest.raises(GatewayError):
        _client().create_transaction("BOOKING-1-2-3", Decimal("1"), {}, [], "http://cb")


def test_timeout_is_a_gateway_error(transport):
    def timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    transport(timeout)

    with pytest.raises(GatewayError) as excinfo:
        _client().get_status("BOOKING-1-2-3")
    assert excinfo.value.message == "Payment gateway timed out"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"status_message": "down"}),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
def test_bad_responses_are_gateway_errors(transport, response):
    transport(lambda request: response)

    with pytest.raises(GatewayError):
        _client().get_status("BOOKING-1-2-3")


def test_refund_posts_to_core_api(transport):
    calls = transport(
        lambda request: httpx.Response(200, json={"status_code": "200", "refund_key": "REFUND-9"})
    )

    data = _client().refund_transaction("BOOKING-1-2-3", Decimal("500000"), "REFUND-9", reason="sick")

    assert data["refund_key"] == "REFUND-9"
    assert str(calls[0].url) == "https://api.example/v2/BOOKING-1-2-3/refund"
    assert json.loads(calls[0].content) == {"refund_key": "REFUND-9", "amount": 500000, "reason": "sick"}


def test_refund_rejected_in_body_raises(transport):
    transport(
        lambda request: httpx.Response(
            200, json={"status_code": "412", "status_message": "Transaction cannot be refunded"}
        )
    )

    with pytest.raises(GatewayError) as excinfo:
        _client().refund_transaction("BOOKING-1-2-3", Decimal("500000"), "REFUND-9")
    assert "cannot be refunded" in excinfo.value.message
