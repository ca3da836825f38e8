"""Unit tests for the exchange rate client"""

import httpx
import pytest
from isp_billing.domain.exceptions import ExchangeRateError
from isp_billing.infrastructure.clients.exchange_rate import ExchangeRateClient


def make_client(handler, default_rate: float = 200.0) -> ExchangeRateClient:
    return ExchangeRateClient(
        url="https://rates.test/exchange-rate",
        field="current.usd",
        timeout=1.0,
        default_rate=default_rate,
        transport=httpx.MockTransport(handler),
    )


def test_fetch_rate_reads_dotted_field():
    client = make_client(lambda request: httpx.Response(200, json={"current": {"usd": 36.5}}))
    assert client.fetch_rate() == 36.5


def test_fetch_rate_rejects_bad_payloads():
    client = make_client(lambda request: httpx.Response(200, json={"previous": {"usd": 36.5}}))
    with pytest.raises(ExchangeRateError):
        client.fetch_rate()

    client = make_client(lambda request: httpx.Response(200, json={"current": {"usd": 0}}))
    with pytest.raises(ExchangeRateError):
        client.fetch_rate()

    client = make_client(lambda request: httpx.Response(200, content=b'{"current": {"usd": NaN}}'))
    with pytest.raises(ExchangeRateError):
        client.fetch_rate()


def test_fetch_rate_maps_http_errors():
    client = make_client(lambda request: httpx.Response(503))
    with pytest.raises(ExchangeRateError) as exc_info:
        client.fetch_rate()
    assert "503" in str(exc_info.value)


def test_fetch_rate_maps_timeouts():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(ExchangeRateError):
        make_client(handler).fetch_rate()


def test_current_rate_falls_back_to_default_before_first_success():
    client = make_client(lambda request: httpx.Response(500), default_rate=200.0)
    assert client.current_rate() == 200.0
    assert client.last_good_rate is None


def test_current_rate_falls_back_to_last_good_rate():
    responses = iter(
        [
            httpx.Response(200, json={"current": {"usd": 95.0}}),
            httpx.Response(500),
        ]
    )
    client = make_client(lambda request: next(responses))

    assert client.current_rate() == 95.0
    assert client.current_rate() == 95.0
    assert client.last_good_rate == 95.0


def test_current_rate_never_raises_on_network_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert make_client(handler, default_rate=150.0).current_rate() == 150.0
