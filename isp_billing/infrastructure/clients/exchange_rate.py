"""Exchange rate HTTP client with last-known-good fallback"""

import logging
import math
import threading
from typing import Any, Optional

import httpx
from isp_billing.config import settings
from isp_billing.domain.exceptions import ExchangeRateError
from isp_billing.infrastructure.observability.metrics import exchange_rate_failures_counter


class ExchangeRateClient:
    """Client for the external local-currency-per-USD rate API"""

    def __init__(
        self,
        url: str | None = None,
        field: str | None = None,
        timeout: float | None = None,
        default_rate: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url or settings.exchange_rate_url
        self.field = field or settings.exchange_rate_field
        self.timeout = timeout or settings.http_timeout_seconds
        self.default_rate = default_rate or settings.default_exchange_rate
        self._transport = transport
        self._last_good: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def last_good_rate(self) -> Optional[float]:
        return self._last_good

    def fetch_rate(self) -> float:
        """
        Fetch the current rate from the provider.

        Raises:
            ExchangeRateError: On timeout, HTTP errors, or a missing/non-positive rate
        """
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = client.get(self.url)
                response.raise_for_status()
                rate = float(self._extract(response.json()))
            except httpx.TimeoutException as e:
                raise ExchangeRateError(f"Exchange rate API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise ExchangeRateError(f"Exchange rate API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise ExchangeRateError(f"Exchange rate API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise ExchangeRateError(f"Invalid exchange rate payload: {e}") from e

        if not math.isfinite(rate) or rate <= 0:
            raise ExchangeRateError(f"Unusable exchange rate: {rate}")
        return rate

    def current_rate(self) -> float:
        """
        Current rate, never raising.

        Falls back to the last rate fetched successfully, or to the configured
        default when the provider has never answered.
        """
        try:
            rate = self.fetch_rate()
        except ExchangeRateError as e:
            exchange_rate_failures_counter.inc()
            fallback = self._last_good or self.default_rate
            logging.warning(f"Exchange rate fetch failed, using {fallback}: {e}")
            return fallback

        with self._lock:
            self._last_good = rate
        return rate

    def _extract(self, payload: Any) -> Any:
        value = payload
        for key in self.field.split("."):
            value = value[key]
        return value
