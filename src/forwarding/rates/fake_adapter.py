"""Configurable fake exchange-rate source for development and testing.

Switched at runtime through ``/gex/rates/configure``: set the rate it reports,
or make it unavailable to exercise the insurance flow's failure path.
"""

import os

from forwarding.errors import RateUnavailable
from forwarding.rates.port import ExchangeRateSource

DEFAULT_EXCHANGE_RATE = 20.50


class FakeRateSource(ExchangeRateSource):
    name = "fake"

    def __init__(self, rate: float | None = None) -> None:
        self.rate: float = rate if rate is not None else float(os.getenv("DEFAULT_EXCHANGE_RATE", DEFAULT_EXCHANGE_RATE))
        self.available: bool = True
        self.calls: int = 0

    def configure(self, rate: float | None = None, available: bool = True) -> None:
        if rate is not None:
            self.rate = rate
        self.available = available

    def get_current_rate(self) -> float:
        self.calls += 1
        if not self.available:
            raise RateUnavailable("Exchange-rate source is unavailable", source=self.name)
        return self.rate
