"""Unit tests for the reminder notifier"""

import json
import httpx
import pytest
from isp_billing.domain.exceptions import NotificationError
from isp_billing.infrastructure.clients.notifier import ReminderNotifier


def make_notifier(handler, max_retries: int = 3) -> ReminderNotifier:
    return ReminderNotifier(
        webhook_url="https://notify.test/hook",
        max_retries=max_retries,
        backoff_base=0,
        transport=httpx.MockTransport(handler),
    )


def test_send_reminder_posts_event():
    received = []

    def handler(request):
        received.append(json.loads(request.content))
        return httpx.Response(202)

    make_notifier(handler).send_reminder({"invoice_id": "inv-1", "amount_usd": 25.0})

    assert received == [{"event": "INVOICE_DUE_REMINDER", "invoice_id": "inv-1", "amount_usd": 25.0}]


def test_send_reminder_retries_until_success():
    statuses = iter([500, 502, 200])
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(next(statuses))

    make_notifier(handler).send_reminder({"invoice_id": "inv-1"})
    assert len(attempts) == 3


def test_send_reminder_gives_up_after_max_retries():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(NotificationError):
        make_notifier(handler, max_retries=2).send_reminder({"invoice_id": "inv-1"})
    assert len(attempts) == 2
