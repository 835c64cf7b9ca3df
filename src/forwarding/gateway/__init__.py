"""Freight payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeFreightGateway for development and testing (FREIGHT_GATEWAY=fake)
- PayPalGateway for production (FREIGHT_GATEWAY=paypal)
"""

import os

from forwarding.gateway.fake_adapter import FakeFreightGateway
from forwarding.gateway.port import FreightGateway

_current_gateway: FreightGateway | None = None


def get_gateway() -> FreightGateway:
    """Return the current freight gateway, built from FREIGHT_GATEWAY on first use."""
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("FREIGHT_GATEWAY", "fake")
        if adapter == "fake":
            _current_gateway = FakeFreightGateway()
        elif adapter == "paypal":
            from forwarding.gateway.paypal_adapter import PayPalGateway

            _current_gateway = PayPalGateway()
        else:
            raise ValueError(f"Unknown freight gateway: {adapter}")
    return _current_gateway


def set_gateway(gateway: FreightGateway) -> None:
    """Override the active freight gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
