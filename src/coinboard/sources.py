"""Builds the configured price sources around one shared HTTP client."""

import httpx
from loguru import logger

from coinboard.adapters.base import PriceSource
from coinboard.adapters.binance import BinanceSource
from coinboard.adapters.coincap import CoinCapSource
from coinboard.config import Settings, get_api_key
from coinboard.utils.rate_limiter import WeightedRateLimiter

DEFAULT_HTTP_TIMEOUT_S = 20.0


def create_http_client(timeout: float = DEFAULT_HTTP_TIMEOUT_S) -> httpx.AsyncClient:
    return httpx.AsyncClient(http2=True, timeout=timeout, follow_redirects=True)


def build_sources(http_client: httpx.AsyncClient, settings: Settings) -> list[PriceSource]:
    """Creates the enabled sources, primary (Binance) first."""
    api = settings.api
    sources: list[PriceSource] = []

    if api.binance_enabled:
        sources.append(
            BinanceSource(
                http_client,
                WeightedRateLimiter(api.binance_weight_per_minute, 60.0),
                base_url=api.binance_base_url,
                ticker_timeout_s=api.ticker_timeout_s,
                history_timeout_s=api.history_timeout_s,
                markets_ttl_s=api.markets_ttl_s,
            )
        )
    if api.coincap_enabled:
        sources.append(
            CoinCapSource(
                http_client,
                base_url=api.coincap_base_url,
                api_key=get_api_key("coincap"),
                usd_rates=settings.conversion.usd_rates,
                ticker_timeout_s=api.ticker_timeout_s,
                history_timeout_s=api.history_timeout_s,
            )
        )

    for source in sources:
        logger.info(f"Price source enabled: {source.venue_name}")
    if not sources:
        logger.error("All price sources are disabled in the configuration.")
    return sources
