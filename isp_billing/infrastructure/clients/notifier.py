"""Reminder webhook client with exponential backoff retry logic"""

import time
from typing import Any, Dict

import httpx
from isp_billing.config import settings
from isp_billing.domain.exceptions import NotificationError
from isp_billing.infrastructure.observability.metrics import notifier_failure_counter


class ReminderNotifier:
    """Client for sending invoice reminder events to the notification service"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.webhook_url = webhook_url or settings.notifier_webhook_url
        self.max_retries = max_retries if max_retries is not None else settings.notifier_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.notifier_backoff_base
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    def send_reminder(self, payload: Dict[str, Any]) -> None:
        """
        Send an invoice-due reminder with retry logic.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base, ...
        - Retries on HTTP error statuses and network failures

        Raises:
            NotificationError: After the last attempt fails
        """
        attempt = 0
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            while True:
                try:
                    response = client.post(
                        self.webhook_url,
                        json={"event": "INVOICE_DUE_REMINDER", **payload},
                    )
                    response.raise_for_status()
                    return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    notifier_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise NotificationError(f"Reminder delivery failed after {attempt} attempts: {e}") from e

                    time.sleep(self.backoff_base * (2 ** (attempt - 1)))
