"""Exchange-rate source port (abstract interface)."""

from abc import ABC, abstractmethod


class ExchangeRateSource(ABC):
    """Supplies the current MXN-per-USD rate."""

    name: str = "source"

    @abstractmethod
    def get_current_rate(self) -> float:
        """Return MXN per USD. Raises ``RateUnavailable`` when the source cannot answer."""
        ...
