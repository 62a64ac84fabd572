"""
Unit tests for the price history client
"""

import httpx
import pytest
from datetime import date
from core.exceptions import (
    AuthenticationError,
    FetchError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
    SchemaValidationError,
)
from ingestion.extractors.price_history_extractor import PriceHistoryClient

TARGET = date(2025, 8, 31)
BASE_URL = "https://example.test/history/price_history"


def make_client(handler, **kwargs) -> PriceHistoryClient:
    """Client whose HTTP traffic goes to ``handler``"""
    kwargs.setdefault("retry_delay", 0)
    return PriceHistoryClient(
        base_url=BASE_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs
    )


class TestPriceHistoryClient:
    """Fetching, retries and error classification"""

    def test_build_url(self):
        client = PriceHistoryClient(base_url=BASE_URL)

        assert client.build_url(TARGET) == f"{BASE_URL}_2025-08-31.json"

    @pytest.mark.asyncio
    async def test_fetch_success_returns_payload_untouched(self, sample_payload):
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, json=sample_payload)

        client = make_client(handler)
        result = await client.fetch_daily_history(TARGET)

        assert result == sample_payload
        assert requested == [f"{BASE_URL}_2025-08-31.json"]

    @pytest.mark.asyncio
    async def test_404_is_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(404)

        client = make_client(handler)
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await client.fetch_daily_history(TARGET)

        assert len(attempts) == 1
        assert exc_info.value.context["status_code"] == 404

    @pytest.mark.asyncio
    async def test_auth_failure(self):
        client = make_client(lambda request: httpx.Response(403))

        with pytest.raises(AuthenticationError):
            await client.fetch_daily_history(TARGET)

    @pytest.mark.asyncio
    async def test_server_error_is_retried_then_succeeds(self, sample_payload):
        responses = iter([httpx.Response(503), httpx.Response(500), httpx.Response(200, json=sample_payload)])

        client = make_client(lambda request: next(responses), max_retries=3)
        result = await client.fetch_daily_history(TARGET)

        assert set(result) == set(sample_payload)

    @pytest.mark.asyncio
    async def test_server_error_after_max_retries(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(502, text="bad gateway")

        client = make_client(handler, max_retries=3)
        with pytest.raises(NetworkError) as exc_info:
            await client.fetch_daily_history(TARGET)

        assert len(attempts) == 3
        assert exc_info.value.context["retry_count"] == 3

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self, sample_payload):
        calls = {"count": 0}

        def handler(request):
            calls["count"] += 1
            if calls["count"] == 1:
                raise httpx.ConnectError("Connection refused")
            return httpx.Response(200, json=sample_payload)

        client = make_client(handler)
        result = await client.fetch_daily_history(TARGET)

        assert calls["count"] == 2
        assert "Arcane Energize" in result

    @pytest.mark.asyncio
    async def test_timeout_after_max_retries(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        client = make_client(handler, max_retries=2)
        with pytest.raises(NetworkError):
            await client.fetch_daily_history(TARGET)

    @pytest.mark.asyncio
    async def test_rate_limit_uses_retry_after(self):
        client = make_client(
            lambda request: httpx.Response(429, headers={"Retry-After": "0"}),
            max_retries=2
        )

        with pytest.raises(RateLimitError) as exc_info:
            await client.fetch_daily_history(TARGET)

        assert exc_info.value.context["retry_count"] == 2

    @pytest.mark.asyncio
    async def test_unexpected_client_error(self):
        client = make_client(lambda request: httpx.Response(418))

        with pytest.raises(FetchError) as exc_info:
            await client.fetch_daily_history(TARGET)

        assert exc_info.value.context["status_code"] == 418

    @pytest.mark.asyncio
    async def test_invalid_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(SchemaValidationError):
            await client.fetch_daily_history(TARGET)

    @pytest.mark.asyncio
    async def test_schema_violation(self):
        body = {"Some Item": [{"order_type": "closed", "volume": "lots"}]}
        client = make_client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(SchemaValidationError) as exc_info:
            await client.fetch_daily_history(TARGET)

        assert exc_info.value.context["error_count"] > 0

    @pytest.mark.asyncio
    async def test_circuit_breaker_opens_after_threshold(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(404)

        client = make_client(handler, circuit_breaker_threshold=2)
        for _ in range(2):
            with pytest.raises(ResourceNotFoundError):
                await client.fetch_daily_history(TARGET)

        with pytest.raises(FetchError) as exc_info:
            await client.fetch_daily_history(TARGET)

        assert "Circuit breaker" in exc_info.value.message
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, sample_payload):
        responses = iter([httpx.Response(404), httpx.Response(200, json=sample_payload), httpx.Response(404)])
        client = make_client(lambda request: next(responses), circuit_breaker_threshold=2)

        with pytest.raises(ResourceNotFoundError):
            await client.fetch_daily_history(TARGET)
        await client.fetch_daily_history(TARGET)
        with pytest.raises(ResourceNotFoundError):
            await client.fetch_daily_history(TARGET)

        assert client._circuit_breaker_open_until is None
