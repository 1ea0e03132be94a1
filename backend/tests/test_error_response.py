import logging

from fastapi import status
from fastapi.testclient import TestClient

from travel_app.main import app
from travel_app.utils.errors import (
    ConflictError,
    GatewayError,
    InvalidStateError,
    NotFoundError,
    error_response,
)


def test_error_response_logs(caplog):
    caplog.set_level(logging.ERROR, logger="travel_app.utils.errors")
    exc = error_response("Invalid data", {"field": "bad"})
    assert exc.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert exc.detail == {"message": "Invalid data", "field_errors": {"field": "bad"}}
    assert any("Invalid data" in r.getMessage() for r in caplog.records)


def test_domain_errors_map_to_http():
    cases = [
        (NotFoundError("Booking not found"), 404, "not_found"),
        (InvalidStateError("Booking is cancelled", {"status": "cancelled"}), 422, "invalid_state"),
        (ConflictError("Refund already requested"), 409, "conflict"),
        (GatewayError("Payment gateway timed out"), 502, "gateway_error"),
    ]
    for error, code, slug in cases:
        http_exc = error.to_http()
        assert http_exc.status_code == code
        assert http_exc.detail["code"] == slug
        assert http_exc.detail["message"] == error.message
        assert http_exc.detail["field_errors"] == error.field_errors


def test_to_http_does_not_log(caplog):
    caplog.set_level(logging.DEBUG, logger="travel_app.utils.errors")
    NotFoundError("Booking not found").to_http()
    assert caplog.records == []


def test_routine_domain_errors_log_at_warning(Session, caplog):
    caplog.set_level(logging.DEBUG, logger="travel_app.main")
    client = TestClient(app)

    res = client.get("/api/v1/hotels/999")

    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "not_found"
    records = [r for r in caplog.records if r.name == "travel_app.main" and "Hotel not found" in r.getMessage()]
    assert [r.levelno for r in records] == [logging.WARNING]
    assert "/api/v1/hotels/999" in records[0].getMessage()
