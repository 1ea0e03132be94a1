"""Midtrans payment gateway client.

Covers the three calls the payment and refund workflows need (Snap
transaction creation, Core API refund, Core API status) plus verification
of the signature Midtrans attaches to its HTTP notifications. Every request
uses a bounded timeout; transport and protocol failures surface as
:class:`GatewayError` so callers never act on a half-understood response.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..core.config import settings
from ..utils.errors import GatewayError

logger = logging.getLogger(__name__)

# Midtrans rejects item names longer than this
MAX_ITEM_NAME_LENGTH = 50


def format_gross_amount(amount: Decimal) -> int | float:
    """Midtrans expects a JSON number; IDR amounts are whole rupiah."""
    value = Decimal(amount)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


class MidtransClient:
    def __init__(
        self,
        server_key: str,
        snap_url: str,
        api_url: str,
        timeout: float = 10.0,
    ) -> None:
        self.server_key = server_key
        self.snap_url = snap_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "MidtransClient":
        return cls(
            server_key=settings.MIDTRANS_SERVER_KEY,
            snap_url=settings.midtrans_snap_url,
            api_url=settings.midtrans_api_url,
            timeout=settings.MIDTRANS_TIMEOUT_SECONDS,
        )

    def _headers(self) -> Dict[str, str]:
        token = base64.b64encode(f"{self.server_key}:".encode("utf-8")).decode("ascii")
        return {
            "Authorization": f"Basic {token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                if method == "GET":
                    resp = client.get(url, headers=self._headers())
                else:
                    resp = client.post(url, json=payload, headers=self._headers())
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            logger.error("Midtrans request timed out: %s %s", method, url)
            raise GatewayError("Payment gateway timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Midtrans request failed: %s %s: %s", method, url, exc)
            raise GatewayError("Payment gateway error") from exc
        except ValueError as exc:
            logger.error("Midtrans returned a non-JSON body for %s %s", method, url)
            raise GatewayError("Payment gateway returned an invalid response") from exc
        if not isinstance(data, dict):
            raise GatewayError("Payment gateway returned an invalid response")
        return data

    def create_transaction(
        self,
        order_id: str,
        amount: Decimal,
        customer: Mapping[str, Any],
        items: List[Mapping[str, Any]],
        callback_url: str,
    ) -> Dict[str, str]:
        """Open a Snap session; returns ``{"token", "redirect_url"}``."""
        payload = {
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": format_gross_amount(amount),
            },
            "customer_details": dict(customer),
            "item_details": [
                {
                    "id": str(item.get("id")),
                    "price": format_gross_amount(item["price"]),
                    "quantity": int(item.get("quantity", 1)),
                    "name": str(item.get("name", ""))[:MAX_ITEM_NAME_LENGTH],
                }
                for item in items
            ],
            "callbacks": {"finish": callback_url},
        }
        data = self._request("POST", f"{self.snap_url}/transactions", payload)
        token = data.get("token")
        redirect_url = data.get("redirect_url")
        if not token or not redirect_url:
            logger.error("Midtrans Snap response missing token for order %s: %s", order_id, data)
            raise GatewayError("Payment gateway did not return a payment session")
        return {"token": token, "redirect_url": redirect_url}

    def refund_transaction(
        self,
        order_id: str,
        amount: Decimal,
        refund_key: str,
        reason: str = "",
    ) -> Dict[str, Any]:
        payload = {
            "refund_key": refund_key,
            "amount": format_gross_amount(amount),
            "reason": reason,
        }
        data = self._request("POST", f"{self.api_url}/{order_id}/refund", payload)
        # Core API reports business failures in the body with HTTP 200
        status_code = str(data.get("status_code", ""))
        if not status_code.startswith("2"):
            raise GatewayError(
                f"Refund rejected by gateway: {data.get('status_message') or status_code}"
            )
        return data

    def get_status(self, order_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{self.api_url}/{order_id}/status")

    def verify_signature(self, payload: Mapping[str, Any]) -> bool:
        expected = compute_signature(
            str(payload.get("order_id", "")),
            str(payload.get("status_code", "")),
            str(payload.get("gross_amount", "")),
            self.server_key,
        )
        provided = str(payload.get("signature_key") or "")
        if not hmac.compare_digest(expected, provided):
            logger.warning("Midtrans signature mismatch for order %s", payload.get("order_id"))
            return False
        return True


def get_payment_gateway() -> MidtransClient:
    """FastAPI dependency; tests override it with a fake gateway."""
    return MidtransClient.from_settings()
