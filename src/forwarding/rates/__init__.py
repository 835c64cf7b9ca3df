"""Exchange-rate source factory.

RATE_SOURCE selects the implementation:
- ``fake``: FakeRateSource, a fixed configurable rate (default)
- ``http``: Banxico, falling back to exchangerate-api
"""

import os

from forwarding.rates.port import ExchangeRateSource

_current_source: ExchangeRateSource | None = None


def get_rate_source() -> ExchangeRateSource:
    global _current_source
    if _current_source is None:
        adapter = os.environ.get("RATE_SOURCE", "fake")
        if adapter == "fake":
            from forwarding.rates.fake_adapter import FakeRateSource

            _current_source = FakeRateSource()
        elif adapter == "http":
            from forwarding.rates.chain import FallbackRateSource
            from forwarding.rates.http_adapter import banxico_source, exchangerate_api_source

            _current_source = FallbackRateSource([banxico_source(), exchangerate_api_source()])
        else:
            raise ValueError(f"Unknown exchange-rate source: {adapter}")
    return _current_source


def set_rate_source(source: ExchangeRateSource) -> None:
    """Override the active rate source (useful for tests)."""
    global _current_source
    _current_source = source


def reset_rate_source() -> None:
    global _current_source
    _current_source = None
