import abc
import asyncio
import random
from typing import Any

import httpx
from loguru import logger

from coinboard.types import ChartDataPoint, CryptoPrice
from coinboard.utils.rate_limiter import WeightedRateLimiter

# --- Constants for Retry Logic ---
INITIAL_RETRY_DELAY_S = 0.5
MAX_RETRY_DELAY_S = 5.0
RETRY_BACKOFF_FACTOR = 2.0
JITTER_FACTOR = 0.2  # 20% jitter
MAX_ATTEMPTS = 3

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class PriceSourceError(Exception):
    """A price source could not deliver the requested data."""


class UnsupportedPairError(PriceSourceError):
    """The source has no way to price the requested crypto/currency pair."""


class PriceSource(abc.ABC):
    """An abstract base class for REST price sources.

    This class defines the common interface and provides a GET helper with
    retries (exponential backoff with jitter) for transient failures such as
    timeouts, rate limiting and server errors.

    Subclasses are responsible for the provider-specific details: mapping
    crypto and currency codes to the provider's identifiers and parsing the
    responses into `CryptoPrice` and `ChartDataPoint` records.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        rate_limiter: WeightedRateLimiter | None = None,
        retry_delay_s: float = INITIAL_RETRY_DELAY_S,
    ) -> None:
        """Initializes the source.

        Args:
            http_client: A shared httpx.AsyncClient for making REST API calls.
            rate_limiter: Optional limiter every request passes through.
            retry_delay_s: The first backoff delay; tests pass 0.
        """
        self.http_client = http_client
        self.rate_limiter = rate_limiter
        self.retry_delay_s = retry_delay_s

    @property
    @abc.abstractmethod
    def venue_name(self) -> str:
        """A unique, lowercase identifier for the provider (e.g., 'binance')."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_ticker(self, crypto: str, fiat: str) -> CryptoPrice:
        """Fetches the current price and 24h change of `crypto` in `fiat`.

        Raises:
            UnsupportedPairError: If the source cannot price the pair.
            PriceSourceError: On any other failure.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_history(
        self, crypto: str, fiat: str, period: str
    ) -> list[ChartDataPoint]:
        """Fetches the close-price series of `crypto` in `fiat` for a chart period.

        The returned points have an empty `formatted_date`; the chart service
        fills it in for the display locale.
        """
        raise NotImplementedError

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        timeout: float = 10.0,
        weight: int = 1,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Performs a GET request and decodes the JSON body.

        Transient failures are retried up to MAX_ATTEMPTS times. A non-retryable
        HTTP error is raised straight away with the provider's message attached.
        """
        delay = self.retry_delay_s
        last_error: Exception | None = None

        for attempt in range(1, MAX_ATTEMPTS + 1):
            if self.rate_limiter is not None:
                await self.rate_limiter.wait(weight)
            try:
                response = await self.http_client.get(
                    url, params=params, timeout=timeout, headers=headers
                )
            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_error = e
                logger.warning(
                    f"[{self.venue_name}] {type(e).__name__} on {url} "
                    f"(attempt {attempt}/{MAX_ATTEMPTS})."
                )
            else:
                if response.status_code in RETRYABLE_STATUS_CODES:
                    last_error = httpx.HTTPStatusError(
                        f"HTTP {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                    logger.warning(
                        f"[{self.venue_name}] HTTP {response.status_code} on {url} "
                        f"(attempt {attempt}/{MAX_ATTEMPTS})."
                    )
                elif response.is_error:
                    err_msg = (
                        f"[{self.venue_name}] HTTP {response.status_code} on {url}: "
                        f"{_error_detail(response)}"
                    )
                    raise PriceSourceError(err_msg)
                else:
                    try:
                        return response.json()
                    except ValueError as e:
                        err_msg = f"[{self.venue_name}] Invalid JSON from {url}."
                        raise PriceSourceError(err_msg) from e

            if attempt < MAX_ATTEMPTS:
                jitter = delay * JITTER_FACTOR * (random.random() * 2 - 1)  # noqa: S311
                await asyncio.sleep(min(MAX_RETRY_DELAY_S, abs(delay + jitter)))
                delay = min(MAX_RETRY_DELAY_S, delay * RETRY_BACKOFF_FACTOR)

        err_msg = f"[{self.venue_name}] Request to {url} failed after {MAX_ATTEMPTS} attempts."
        raise PriceSourceError(err_msg) from last_error


def _error_detail(response: httpx.Response) -> str:
    """Extracts the provider's error message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        for key in ("msg", "error", "message"):
            if key in body:
                return str(body[key])
    return str(body)[:200]
