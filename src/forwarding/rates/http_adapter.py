"""HTTP exchange-rate source.

Understands the two payloads the operator's providers return:

- Banxico SIE series: ``{"bmx": {"series": [{"datos": [{"dato": "20.1234"}]}]}}``
- exchangerate-api: ``{"rates": {"MXN": 20.12, ...}}``

A flat ``{"rate": 20.12}`` is accepted too.
"""

import math
import os

import httpx

from forwarding.errors import RateUnavailable
from forwarding.rates.port import ExchangeRateSource


BANXICO_URL = "https://www.banxico.org.mx/SieAPIRest/service/v1/series/SF43718/datos/oportuno"
EXCHANGE_RATE_API_URL = "https://api.exchangerate-api.com/v4/latest/USD"


class HttpRateSource(ExchangeRateSource):
    def __init__(
        self,
        url: str,
        name: str = "http",
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.name = name
        self.headers = headers or {}
        self.timeout_seconds = timeout_seconds or float(os.getenv("RATE_TIMEOUT_SECONDS", "10"))
        self._transport = transport

    def get_current_rate(self) -> float:
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = client.get(self.url, headers=self.headers)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RateUnavailable(f"{self.name} did not answer", source=self.name, error=str(exc)) from exc

        rate = parse_rate(data)
        if rate is None or not math.isfinite(rate) or rate <= 0:
            raise RateUnavailable(f"{self.name} returned no usable rate", source=self.name)
        return rate


def parse_rate(data: dict) -> float | None:
    try:
        if "bmx" in data:
            dato = data["bmx"]["series"][0]["datos"][0]["dato"]
            return float(str(dato).replace(",", ""))
        if "rates" in data:
            return float(data["rates"]["MXN"])
        if "rate" in data:
            return float(data["rate"])
    except (KeyError, IndexError, TypeError, ValueError):
        return None
    return None


def banxico_source(transport: httpx.BaseTransport | None = None) -> HttpRateSource:
    token = os.getenv("BANXICO_TOKEN", "")
    return HttpRateSource(
        url=os.getenv("EXCHANGE_RATE_API_URL", BANXICO_URL),
        name="banxico",
        headers={"Bmx-Token": token} if token else {},
        transport=transport,
    )


def exchangerate_api_source(transport: httpx.BaseTransport | None = None) -> HttpRateSource:
    return HttpRateSource(
        url=os.getenv("EXCHANGE_RATE_FALLBACK_URL", EXCHANGE_RATE_API_URL),
        name="exchangerate-api",
        transport=transport,
    )
