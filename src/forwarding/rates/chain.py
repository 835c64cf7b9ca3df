"""Fallback chain over several exchange-rate sources."""

import structlog

from forwarding.errors import RateUnavailable
from forwarding.rates.port import ExchangeRateSource

logger = structlog.get_logger(__name__)


class FallbackRateSource(ExchangeRateSource):
    """Ask each source in order and return the first rate obtained."""

    name = "fallback-chain"

    def __init__(self, sources: list[ExchangeRateSource]) -> None:
        if not sources:
            raise ValueError("FallbackRateSource needs at least one source")
        self.sources = list(sources)
        self.last_source: str | None = None

    def get_current_rate(self) -> float:
        failures = {}
        for index, source in enumerate(self.sources):
            try:
                rate = source.get_current_rate()
            except RateUnavailable as exc:
                failures[source.name] = exc.message
                logger.warning("exchange_rate_source_failed", source=source.name, error=exc.message)
                continue

            if index > 0:
                logger.info("exchange_rate_fallback_used", source=source.name, rate=rate)
            self.last_source = source.name
            return rate

        raise RateUnavailable("No exchange-rate source is available", failures=failures)
