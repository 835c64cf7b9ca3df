"""PayPal Orders v2 adapter for freight payments.

Uses client-credentials OAuth, then ``/v2/checkout/orders`` to create and
capture orders. Every capture sends a ``PayPal-Request-Id`` derived from the
order id, so a retried capture is answered with the original result instead
of a second charge. An ``ORDER_ALREADY_CAPTURED`` response is resolved by
reading the existing capture from the order.
"""

import os

import httpx
import structlog

from forwarding.errors import PaymentFailed
from forwarding.gateway.port import CaptureResult, FreightGateway, OrderResult

logger = structlog.get_logger(__name__)

SANDBOX_URL = "https://api-m.sandbox.paypal.com"


class PayPalGateway(FreightGateway):
    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client_id = client_id or os.getenv("PAYPAL_CLIENT_ID", "")
        self.client_secret = client_secret or os.getenv("PAYPAL_SECRET", "")
        self.base_url = (base_url or os.getenv("PAYPAL_API_URL", SANDBOX_URL)).rstrip("/")
        self.timeout_seconds = timeout_seconds or float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "20"))
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout_seconds, transport=self._transport)

    def _access_token(self, client: httpx.Client) -> str:
        if not self.client_id or not self.client_secret:
            raise PaymentFailed("PayPal credentials are not configured")
        response = client.post(
            "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    def create_order(self, amount: float, currency: str, reference: str) -> OrderResult:
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": reference,
                    "description": f"Freight for consolidation {reference}",
                    "amount": {"currency_code": currency, "value": f"{amount:.2f}"},
                }
            ],
        }
        try:
            with self._client() as client:
                token = self._access_token(client)
                response = client.post(
                    "/v2/checkout/orders",
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("paypal_create_order_failed", reference=reference, error=str(exc))
            raise PaymentFailed("Could not create the payment order", reference=reference) from exc

        approval_url = next(
            (link["href"] for link in data.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        return OrderResult(order_id=data["id"], approval_url=approval_url, status=data.get("status"))

    def capture_order(self, order_id: str) -> CaptureResult:
        try:
            with self._client() as client:
                token = self._access_token(client)
                headers = {
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                    "PayPal-Request-Id": f"capture-{order_id}",
                }
                response = client.post(f"/v2/checkout/orders/{order_id}/capture", headers=headers)
                if response.status_code == 422 and _issue(response) == "ORDER_ALREADY_CAPTURED":
                    logger.info("paypal_order_already_captured", order_id=order_id)
                    response = client.get(f"/v2/checkout/orders/{order_id}", headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            return CaptureResult(
                success=False,
                status=str(exc.response.status_code),
                failure_reason=_issue(exc.response) or "Capture rejected by PayPal",
            )
        except httpx.HTTPError as exc:
            logger.warning("paypal_capture_failed", order_id=order_id, error=str(exc))
            return CaptureResult(success=False, failure_reason=f"PayPal unreachable: {exc}")

        capture = _first_capture(data)
        if data.get("status") != "COMPLETED" or capture is None:
            return CaptureResult(
                success=False,
                status=data.get("status"),
                failure_reason=f"Order {order_id} is {data.get('status')}",
            )
        return CaptureResult(success=True, transaction_id=capture["id"], status=capture.get("status"))


def _issue(response: httpx.Response) -> str | None:
    try:
        details = response.json().get("details") or []
    except ValueError:
        return None
    return details[0].get("issue") if details else None


def _first_capture(order: dict) -> dict | None:
    for unit in order.get("purchase_units", []):
        captures = (unit.get("payments") or {}).get("captures") or []
        if captures:
            return captures[0]
    return None
