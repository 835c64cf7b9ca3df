"""Freight payment gateway port (abstract interface).

Checkout is two-step: an order is created and approved by the customer on the
gateway's side, then captured. Adapters must make ``capture_order`` safe to
call more than once for the same order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OrderResult:
    """A gateway order awaiting customer approval."""

    order_id: str
    approval_url: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class CaptureResult:
    """Result of a capture attempt."""

    success: bool
    transaction_id: str | None = None
    status: str | None = None
    failure_reason: str | None = None


class FreightGateway(ABC):
    """Abstract freight payment gateway interface."""

    @abstractmethod
    def create_order(self, amount: float, currency: str, reference: str) -> OrderResult:
        """Open an order for ``amount`` that the customer will approve."""
        ...

    @abstractmethod
    def capture_order(self, order_id: str) -> CaptureResult:
        """Capture an approved order."""
        ...
