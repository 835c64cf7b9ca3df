"""Configurable fake freight gateway for development and testing.

Simulates the create/approve/capture checkout without external calls. It can
be switched to fail at runtime via ``/payments/gateway/configure``. Capturing
the same order twice returns the original transaction, like a real gateway
does for a replayed request.
"""

from uuid import uuid4

from forwarding.gateway.port import CaptureResult, FreightGateway, OrderResult


class FakeFreightGateway(FreightGateway):
    """Configurable fake freight gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment declined"
        self.calls: list[dict] = []
        self._captures: dict[str, str] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Payment declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(self, amount: float, currency: str, reference: str) -> OrderResult:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount,
                "currency": currency,
                "reference": reference,
            }
        )
        order_id = f"fake_order_{uuid4().hex[:12]}"
        return OrderResult(
            order_id=order_id,
            approval_url=f"https://fake-gateway.local/checkout/{order_id}",
            status="CREATED",
        )

    def capture_order(self, order_id: str) -> CaptureResult:
        self.calls.append({"method": "capture_order", "order_id": order_id})

        if order_id in self._captures:
            return CaptureResult(success=True, transaction_id=self._captures[order_id], status="COMPLETED")

        if not self.should_succeed:
            return CaptureResult(success=False, status="DECLINED", failure_reason=self.failure_reason)

        transaction_id = f"fake_txn_{uuid4().hex[:12]}"
        self._captures[order_id] = transaction_id
        return CaptureResult(success=True, transaction_id=transaction_id, status="COMPLETED")

    @property
    def capture_calls(self) -> list[dict]:
        return [c for c in self.calls if c["method"] == "capture_order"]
