from typing import Any

import httpx
from loguru import logger

from coinboard.adapters.base import PriceSource, PriceSourceError, UnsupportedPairError
from coinboard.catalog import canonical_fiat
from coinboard.periods import get_period
from coinboard.types import ChartDataPoint, CryptoPrice
from coinboard.utils.rate_limiter import WeightedRateLimiter
from coinboard.utils.time import (
    from_millis,
    get_current_rfc3339_timestamp,
    now_ms,
    to_rfc3339,
)

# CoinCap identifies assets by slug rather than ticker symbol.
ASSET_IDS: dict[str, str] = {
    "btc": "bitcoin",
    "eth": "ethereum",
    "ton": "toncoin",
    "sol": "solana",
    "ada": "cardano",
    "dot": "polkadot",
    "matic": "polygon",
    "avax": "avalanche",
    "link": "chainlink",
    "atom": "cosmos",
    "xrp": "xrp",
    "doge": "dogecoin",
    "bnb": "binance-coin",
    "ltc": "litecoin",
    "trx": "tron",
    "usdt": "tether",
    "usdc": "usd-coin",
}

FIAT_RATE_IDS: dict[str, str] = {
    "eur": "euro",
    "rub": "russian-ruble",
    "uah": "ukrainian-hryvnia",
    "kzt": "kazakhstani-tenge",
    "try": "turkish-lira",
    "gbp": "british-pound-sterling",
}

USD_CODES = frozenset({"usd", "usdt"})

HISTORY_INTERVALS: dict[str, str] = {"1h": "h1", "1d": "d1"}


class CoinCapSource(PriceSource):
    """Secondary price source backed by the CoinCap REST API.

    CoinCap quotes everything in USD. Other currencies are converted with
    CoinCap's own fiat rates, or with configured static rates when those are
    unavailable.
    """

    _BASE_API_URL: str = "https://rest.coincap.io/v3"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        rate_limiter: WeightedRateLimiter | None = None,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        usd_rates: dict[str, float] | None = None,
        ticker_timeout_s: float = 10.0,
        history_timeout_s: float = 20.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(http_client, rate_limiter, **kwargs)
        self.base_url = (base_url or self._BASE_API_URL).rstrip("/")
        self.usd_rates = dict(usd_rates or {})
        self.ticker_timeout_s = ticker_timeout_s
        self.history_timeout_s = history_timeout_s
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        self._asset_ids: dict[str, str] = dict(ASSET_IDS)

    @property
    def venue_name(self) -> str:
        return "coincap"

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        return await self._get_json(
            f"{self.base_url}/{path}",
            params=params,
            timeout=timeout or self.ticker_timeout_s,
            headers=self._headers,
        )

    async def resolve_asset_id(self, crypto: str) -> str:
        """Maps a ticker symbol to a CoinCap asset slug, searching if needed."""
        key = crypto.strip().lower()
        if not key:
            err_msg = "Empty crypto symbol"
            raise UnsupportedPairError(err_msg)
        if key in self._asset_ids:
            return self._asset_ids[key]

        data = await self._get("assets", {"search": key, "limit": 10})
        assets = data.get("data") if isinstance(data, dict) else None
        for asset in assets if isinstance(assets, list) else []:
            if not isinstance(asset, dict):
                continue
            if str(asset.get("symbol", "")).lower() == key and asset.get("id"):
                self._asset_ids[key] = asset["id"]
                logger.debug(f"[{self.venue_name}] Resolved {key} to '{asset['id']}'.")
                return asset["id"]

        err_msg = f"CoinCap has no asset with symbol {key.upper()}"
        raise UnsupportedPairError(err_msg)

    async def usd_rate(self, fiat: str) -> float:
        """Units of `fiat` per one US dollar."""
        code = canonical_fiat(fiat)
        if code in USD_CODES:
            return 1.0

        rate_id = FIAT_RATE_IDS.get(code)
        if rate_id:
            try:
                data = await self._get(f"rates/{rate_id}")
                rate_usd = float(data["data"]["rateUsd"])
                if rate_usd > 0:
                    return 1 / rate_usd
            except (PriceSourceError, KeyError, TypeError, ValueError) as e:
                logger.warning(
                    f"[{self.venue_name}] Live rate for {code.upper()} unavailable: {e}"
                )

        static_rate = self.usd_rates.get(code)
        if static_rate:
            logger.warning(
                f"[{self.venue_name}] Using static rate 1 USD = {static_rate} "
                f"{code.upper()}."
            )
            return float(static_rate)

        err_msg = f"No USD conversion rate for {code.upper()}"
        raise UnsupportedPairError(err_msg)

    async def get_ticker(self, crypto: str, fiat: str) -> CryptoPrice:
        asset_id = await self.resolve_asset_id(crypto)
        data = await self._get(f"assets/{asset_id}")
        asset = data.get("data") if isinstance(data, dict) else None
        if not isinstance(asset, dict) or not asset:
            err_msg = f"[{self.venue_name}] No data for asset '{asset_id}'"
            raise PriceSourceError(err_msg)

        factor = await self.usd_rate(fiat)
        try:
            price = float(asset["priceUsd"]) * factor
            change_pct = float(asset.get("changePercent24Hr") or 0)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            err_msg = f"[{self.venue_name}] Malformed asset data for '{asset_id}': {e}"
            raise PriceSourceError(err_msg) from e

        return CryptoPrice(
            id=asset.get("id", asset_id),
            symbol=asset.get("symbol", crypto.upper()),
            name=asset.get("name", crypto.upper()),
            current_price=price,
            price_change_24h=change_pct / 100 * price,
            price_change_percentage_24h=change_pct,
            last_updated=get_current_rfc3339_timestamp(),
            source=self.venue_name,
        )

    async def get_history(
        self, crypto: str, fiat: str, period: str
    ) -> list[ChartDataPoint]:
        config = get_period(period)
        asset_id = await self.resolve_asset_id(crypto)
        end_ms = now_ms()
        start_ms = end_ms - int(config.span.total_seconds() * 1000)

        data = await self._get(
            f"assets/{asset_id}/history",
            {
                "interval": HISTORY_INTERVALS[config.interval],
                "start": start_ms,
                "end": end_ms,
            },
            timeout=self.history_timeout_s,
        )
        rows = data.get("data") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            err_msg = f"[{self.venue_name}] Unexpected history payload for '{asset_id}'"
            raise PriceSourceError(err_msg)

        factor = await self.usd_rate(fiat)
        try:
            points = [
                ChartDataPoint(
                    timestamp=int(row["time"]),
                    price=float(row["priceUsd"]) * factor,
                    date=to_rfc3339(from_millis(int(row["time"]))),
                    formatted_date="",
                )
                for row in rows[-config.limit :]
            ]
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            err_msg = f"[{self.venue_name}] Malformed history row for '{asset_id}': {e}"
            raise PriceSourceError(err_msg) from e

        logger.info(
            f"[{self.venue_name}] Fetched {len(points)} points for {asset_id} ({period})."
        )
        return points
