"""Quote service — live GEX quotes for a declared value.

Wraps the pricing calculator with the current exchange rate. The rate is
fetched once and reused for ``cache_seconds`` so that a customer typing a value
gets stable quotes; ``refresh_rate`` forces a new lookup. Quotes are never
persisted.
"""

import os
import time
from dataclasses import dataclass

import structlog

from forwarding.errors import RateUnavailable
from forwarding.protection.pricing import FeeSchedule, get_fee_schedule, is_positive_amount, quote, to_cents
from forwarding.rates import get_rate_source
from forwarding.rates.port import ExchangeRateSource

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_SECONDS = 300


@dataclass(frozen=True)
class GexQuote:
    declared_value_usd: float
    exchange_rate: float
    insured_value_mxn: float
    variable_fee_mxn: float
    fixed_fee_mxn: float
    total_cost_mxn: float
    source_currency: str = "USD"
    settlement_currency: str = "MXN"

    def as_display(self) -> dict:
        """Amounts rounded to cents, as shown to the customer and charged."""
        return {
            "declared_value_usd": to_cents(self.declared_value_usd),
            "exchange_rate": self.exchange_rate,
            "insured_value_mxn": to_cents(self.insured_value_mxn),
            "variable_fee_mxn": to_cents(self.variable_fee_mxn),
            "fixed_fee_mxn": to_cents(self.fixed_fee_mxn),
            "total_cost_mxn": to_cents(self.total_cost_mxn),
            "source_currency": self.source_currency,
            "settlement_currency": self.settlement_currency,
        }


class QuoteService:
    def __init__(
        self,
        rate_source: ExchangeRateSource,
        fee_schedule: FeeSchedule | None = None,
        cache_seconds: float = DEFAULT_CACHE_SECONDS,
        clock=time.monotonic,
    ) -> None:
        self.rate_source = rate_source
        self.fee_schedule = fee_schedule or get_fee_schedule()
        self.cache_seconds = cache_seconds
        self._clock = clock
        self._rate: float | None = None
        self._fetched_at: float | None = None

    def refresh_rate(self) -> float:
        rate = self.rate_source.get_current_rate()
        if not is_positive_amount(rate):
            raise RateUnavailable("Exchange-rate source returned an unusable rate", rate=rate)
        self._rate = rate
        self._fetched_at = self._clock()
        logger.debug("exchange_rate_refreshed", rate=rate, source=self.rate_source.name)
        return rate

    def invalidate(self) -> None:
        self._rate = None
        self._fetched_at = None

    def current_rate(self) -> float:
        if self._rate is None or self._clock() - self._fetched_at >= self.cache_seconds:
            return self.refresh_rate()
        return self._rate

    def get_quote(self, declared_value_usd: float | None) -> GexQuote | None:
        """Quote for ``declared_value_usd``, or None when there is nothing to quote."""
        if not is_positive_amount(declared_value_usd):
            return None

        rate = self.current_rate()
        breakdown = quote(declared_value_usd, rate, self.fee_schedule)
        return GexQuote(
            declared_value_usd=declared_value_usd,
            exchange_rate=rate,
            insured_value_mxn=breakdown.insured_value_mxn,
            variable_fee_mxn=breakdown.variable_fee_mxn,
            fixed_fee_mxn=breakdown.fixed_fee_mxn,
            total_cost_mxn=breakdown.total_cost_mxn,
        )


_current_service: QuoteService | None = None


def get_quote_service() -> QuoteService:
    """Shared service over the configured rate source and fee schedule."""
    global _current_service
    if _current_service is None:
        _current_service = QuoteService(
            rate_source=get_rate_source(),
            cache_seconds=float(os.getenv("RATE_CACHE_SECONDS", DEFAULT_CACHE_SECONDS)),
        )
    return _current_service


def reset_quote_service() -> None:
    global _current_service
    _current_service = None
