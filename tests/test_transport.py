import asyncio

import httpx
import pytest

from archive_pdf_urls.services.transport import RetryTransport


def run_get(responses, max_retries=2):
    """GET through a RetryTransport whose inner transport replays ``responses``."""
    calls = []

    def handler(request):
        calls.append(request)
        outcome = responses[min(len(calls), len(responses)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome)

    async def go():
        transport = RetryTransport(httpx.MockTransport(handler), max_retries=max_retries, backoff_factor=0)
        async with httpx.AsyncClient(transport=transport) as client:
            return await client.get("https://example.com/")

    return asyncio.run(go()), calls


def test_success_is_not_retried():
    response, calls = run_get([200])
    assert response.status_code == 200
    assert len(calls) == 1


def test_client_errors_are_permanent():
    response, calls = run_get([404, 200])
    assert response.status_code == 404
    assert len(calls) == 1


def test_server_error_then_success():
    response, calls = run_get([503, 502, 200])
    assert response.status_code == 200
    assert len(calls) == 3


def test_server_errors_exhaust_retries():
    response, calls = run_get([520], max_retries=3)
    assert response.status_code == 520
    assert len(calls) == 4


def test_no_retries_configured():
    response, calls = run_get([500, 200], max_retries=0)
    assert response.status_code == 500
    assert len(calls) == 1


def test_connection_error_then_success():
    response, calls = run_get([httpx.ConnectError("refused"), 200])
    assert response.status_code == 200
    assert len(calls) == 2


def test_connection_errors_exhaust_retries():
    with pytest.raises(httpx.ConnectError):
        run_get([httpx.ConnectError("refused")], max_retries=2)


def test_backoff_is_exponential_and_capped():
    transport = RetryTransport(httpx.MockTransport(lambda r: httpx.Response(200)), backoff_factor=1, backoff_max=30)
    assert 1 <= transport.backoff(0) <= 1.1
    assert 4 <= transport.backoff(2) <= 4.4
    assert 30 <= transport.backoff(10) <= 33
