"""
Daily price-history client with retry logic and a circuit breaker.

This module provides robust snapshot fetching with:
- Exponential backoff retry logic for transient failures
- Circuit breaker pattern to prevent hammering a failing provider
- Rate limiting protection (HTTP 429, Retry-After)
- Payload validation against the provider's entry schema
"""

import httpx
import asyncio
from typing import Any, Dict, Optional
from datetime import date, datetime, timedelta, timezone
from pydantic import ValidationError
from core.exceptions import (
    FetchError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
    SchemaValidationError
)
from schemas.provider import DailyHistoryAdapter
import logging

logger = logging.getLogger(__name__)


class PriceHistoryClient:
    """
    Fetch one day of trade history from the market-data provider.

    The snapshot for a date lives at ``{base_url}_{YYYY-MM-DD}.json``.

    Attributes:
        max_retries: Maximum number of attempts (default: 3)
        retry_delay: Initial retry delay in seconds (default: 1.0)
        timeout: Request timeout in seconds (default: 30.0)
        circuit_breaker_threshold: Failures before circuit opens (default: 5)
        circuit_breaker_timeout: Seconds before circuit reset (default: 60)
    """

    def __init__(
        self,
        base_url: str,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_timeout: int = 60
    ):
        self.base_url = base_url.rstrip("_")
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._http_client = http_client

        # Circuit breaker state
        self._circuit_breaker_failures = 0
        self._circuit_breaker_threshold = circuit_breaker_threshold
        self._circuit_breaker_open_until: Optional[datetime] = None
        self._circuit_breaker_timeout = circuit_breaker_timeout

    def build_url(self, target_date: date) -> str:
        return f"{self.base_url}_{target_date.isoformat()}.json"

    def _is_circuit_open(self) -> bool:
        """Check if circuit breaker is open."""
        if self._circuit_breaker_open_until is None:
            return False

        if datetime.now(timezone.utc) >= self._circuit_breaker_open_until:
            logger.info("Circuit breaker reset for price history provider")
            self._circuit_breaker_failures = 0
            self._circuit_breaker_open_until = None
            return False

        return True

    def _record_failure(self):
        """Record a failure and potentially open circuit breaker."""
        self._circuit_breaker_failures += 1

        if self._circuit_breaker_failures >= self._circuit_breaker_threshold:
            self._circuit_breaker_open_until = datetime.now(timezone.utc) + timedelta(
                seconds=self._circuit_breaker_timeout
            )
            logger.warning(
                f"Circuit breaker opened for price history provider. "
                f"Will retry after {self._circuit_breaker_timeout} seconds."
            )

    def _record_success(self):
        self._circuit_breaker_failures = 0
        self._circuit_breaker_open_until = None

    def _backoff(self, attempt: int) -> float:
        return self.retry_delay * (2 ** attempt)

    async def _get_with_retry(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """
        GET ``url`` with retry logic and exponential backoff.

        Raises:
            FetchError: Circuit breaker open
            AuthenticationError / ResourceNotFoundError: Non-retryable statuses
            RateLimitError / NetworkError: Retryable failures after max retries
        """
        if self._is_circuit_open():
            raise FetchError(
                "Circuit breaker is open for price history provider",
                context={
                    "url": url,
                    "open_until": self._circuit_breaker_open_until.isoformat()
                }
            )

        for attempt in range(self.max_retries):
            is_last = attempt == self.max_retries - 1
            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")
                response = await client.get(url, timeout=self.timeout)
            except httpx.TimeoutException as e:
                if not is_last:
                    delay = self._backoff(attempt)
                    logger.warning(f"Request timeout. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                raise NetworkError(
                    f"Request timeout after {self.max_retries} attempts",
                    context={
                        "url": url,
                        "timeout": self.timeout,
                        "retry_count": attempt + 1
                    },
                    original_exception=e
                )
            except httpx.TransportError as e:
                if not is_last:
                    delay = self._backoff(attempt)
                    logger.warning(f"Network error. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                raise NetworkError(
                    f"Network error after {self.max_retries} attempts",
                    context={
                        "url": url,
                        "retry_count": attempt + 1
                    },
                    original_exception=e
                )

            status = response.status_code

            if status in (401, 403):
                self._record_failure()
                raise AuthenticationError(
                    f"Authentication failed for {url}",
                    context={"status_code": status, "url": url}
                )

            if status == 404:
                self._record_failure()
                raise ResourceNotFoundError(
                    f"No price history published at {url}",
                    context={"status_code": 404, "url": url}
                )

            if status == 429:
                retry_after = self._parse_retry_after(response, attempt)
                if not is_last:
                    logger.warning(f"Rate limited. Retrying after {retry_after} seconds")
                    await asyncio.sleep(retry_after)
                    continue
                self._record_failure()
                raise RateLimitError(
                    f"Rate limit exceeded for {url}",
                    context={
                        "status_code": 429,
                        "url": url,
                        "retry_count": attempt + 1
                    },
                    retry_after=retry_after
                )

            if status >= 500:
                if not is_last:
                    delay = self._backoff(attempt)
                    logger.warning(
                        f"Server error {status}. "
                        f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                self._record_failure()
                raise NetworkError(
                    f"Server error after {self.max_retries} attempts",
                    context={
                        "status_code": status,
                        "url": url,
                        "retry_count": attempt + 1,
                        "response_body": response.text[:500]
                    }
                )

            if status >= 400:
                self._record_failure()
                raise FetchError(
                    f"Unexpected status {status} from {url}",
                    context={"status_code": status, "url": url}
                )

            self._record_success()
            return response

        # Unreachable: the last attempt always returns or raises
        raise FetchError("Retry loop exhausted", context={"url": url})

    def _parse_retry_after(self, response: httpx.Response, attempt: int) -> float:
        header = response.headers.get("Retry-After")
        if header is not None:
            try:
                return float(header)
            except ValueError:
                logger.debug(f"Ignoring non-numeric Retry-After header: {header!r}")
        return self._backoff(attempt)

    def _decode(self, response: httpx.Response, url: str) -> Dict[str, Any]:
        """Decode and validate the body; return the decoded JSON untouched"""
        try:
            data = response.json()
        except ValueError as e:
            raise SchemaValidationError(
                f"Response from {url} is not valid JSON",
                context={"url": url},
                original_exception=e
            )

        try:
            DailyHistoryAdapter.validate_python(data)
        except ValidationError as e:
            raise SchemaValidationError(
                f"Response from {url} does not match the price history schema",
                context={
                    "url": url,
                    "error_count": e.error_count(),
                    "errors": str(e.errors()[:5])
                },
                original_exception=e
            )

        return data

    async def fetch_daily_history(self, target_date: date) -> Dict[str, Any]:
        """
        Fetch and validate the snapshot for ``target_date``.

        Returns:
            Mapping of item name to its list of raw trade-history entries
        """
        url = self.build_url(target_date)
        logger.info(f"Fetching daily price history for {target_date.isoformat()} from {url}")

        if self._http_client is not None:
            response = await self._get_with_retry(self._http_client, url)
        else:
            async with httpx.AsyncClient() as client:
                response = await self._get_with_retry(client, url)

        data = self._decode(response, url)
        total_entries = sum(len(entries) for entries in data.values())
        logger.info(f"Fetched {len(data)} items ({total_entries} entries) from {url}")
        return data

    async def aclose(self):
        """Close an injected HTTP client"""
        if self._http_client is not None:
            await self._http_client.aclose()
