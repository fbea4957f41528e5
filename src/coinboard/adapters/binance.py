import asyncio
import time
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger

from coinboard.adapters.base import PriceSource, PriceSourceError, UnsupportedPairError
from coinboard.catalog import canonical_fiat
from coinboard.periods import PeriodConfig, get_period
from coinboard.types import ChartDataPoint, CryptoPrice, RouteLeg, SymbolRoute
from coinboard.utils.rate_limiter import WeightedRateLimiter
from coinboard.utils.time import from_millis, get_current_rfc3339_timestamp, to_rfc3339

# Quote assets tried for each user-facing currency, most liquid first.
QUOTE_CANDIDATES: dict[str, tuple[str, ...]] = {
    "usd": ("USDT", "USDC", "FDUSD"),
    "usdt": ("USDT",),
    "eur": ("EUR",),
    "rub": ("RUB",),
    "uah": ("UAH",),
    "kzt": ("KZT",),
    "try": ("TRY",),
    "gbp": ("GBP",),
}

# Intermediate assets for two-leg routes, e.g. TON -> USDT -> UAH.
BRIDGE_ASSETS: tuple[str, ...] = ("USDT", "USDC")

# Binance request weights.
EXCHANGE_INFO_WEIGHT = 20
TICKER_WEIGHT = 2
KLINES_WEIGHT = 2


class BinanceSource(PriceSource):
    """Primary price source backed by the Binance public REST API.

    The list of trading symbols is loaded from /exchangeInfo and cached. A
    crypto/currency request is resolved to a route: the crypto quoted directly
    in one of the currency's quote assets, or, failing that, bridged through a
    stablecoin (the currency leg may be quoted either way round).
    """

    _BASE_API_URL: str = "https://api.binance.com/api/v3"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        rate_limiter: WeightedRateLimiter | None = None,
        *,
        base_url: str | None = None,
        ticker_timeout_s: float = 10.0,
        history_timeout_s: float = 20.0,
        markets_ttl_s: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
        **kwargs: Any,
    ) -> None:
        super().__init__(http_client, rate_limiter, **kwargs)
        self.base_url = (base_url or self._BASE_API_URL).rstrip("/")
        self.ticker_timeout_s = ticker_timeout_s
        self.history_timeout_s = history_timeout_s
        self.markets_ttl_s = markets_ttl_s
        self._clock = clock
        self._pairs: set[tuple[str, str]] = set()
        self._markets_loaded_at: float | None = None
        self._markets_lock = asyncio.Lock()

    @property
    def venue_name(self) -> str:
        return "binance"

    # --- Market list ---

    async def ensure_markets(self) -> bool:
        """Loads the trading symbols if the cache is empty or stale.

        A failed load is not cached, so the next call tries again; a stale
        cache is kept in that case.

        Returns:
            True if a market list (fresh or stale) is available.
        """
        async with self._markets_lock:
            loaded_at = self._markets_loaded_at
            if loaded_at is not None and self._clock() - loaded_at < self.markets_ttl_s:
                return True

            try:
                data = await self._get_json(
                    f"{self.base_url}/exchangeInfo",
                    timeout=self.history_timeout_s,
                    weight=EXCHANGE_INFO_WEIGHT,
                )
                pairs = {
                    (s["baseAsset"], s["quoteAsset"])
                    for s in data["symbols"]
                    if s.get("status") == "TRADING"
                }
            except PriceSourceError as e:
                logger.error(f"[{self.venue_name}] Could not load market list: {e}")
                return loaded_at is not None
            except (KeyError, TypeError, AttributeError) as e:
                logger.error(
                    f"[{self.venue_name}] Unexpected exchangeInfo payload: "
                    f"{type(e).__name__}: {e}"
                )
                return loaded_at is not None

            self._pairs = pairs
            self._markets_loaded_at = self._clock()
            coins = {base for base, _ in pairs}
            logger.success(
                f"[{self.venue_name}] Market list loaded "
                f"({len(pairs)} symbols, {len(coins)} coins)."
            )
            return True

    async def list_base_assets(self) -> list[str]:
        """Returns the lower-case base assets of all trading symbols."""
        await self.ensure_markets()
        return sorted({base.lower() for base, _ in self._pairs})

    # --- Symbol resolution ---

    async def resolve_route(self, crypto: str, fiat: str) -> SymbolRoute:
        """Maps a crypto and a user-facing currency code to Binance symbols.

        Raises:
            UnsupportedPairError: If the currency is unknown or no route exists.
        """
        base = crypto.strip().upper()
        fiat_code = canonical_fiat(fiat)
        quotes = QUOTE_CANDIDATES.get(fiat_code)
        if not base or not quotes:
            err_msg = f"Unsupported pair: {crypto}/{fiat}"
            raise UnsupportedPairError(err_msg)

        if not await self.ensure_markets():
            # Without a market list, let the API decide on the obvious symbol.
            logger.warning(
                f"[{self.venue_name}] Market list unavailable; trying "
                f"{base}{quotes[0]} directly."
            )
            leg = RouteLeg(f"{base}{quotes[0]}", base, quotes[0])
            return SymbolRoute(base, fiat_code, (leg,))

        return self.find_route(base, fiat_code)

    def find_route(self, base: str, fiat_code: str) -> SymbolRoute:
        """Resolves a route against the cached market list."""
        quotes = QUOTE_CANDIDATES.get(fiat_code, ())

        for quote in quotes:
            if (base, quote) in self._pairs:
                return SymbolRoute(base, fiat_code, (self._leg(base, quote),))

        for bridge in BRIDGE_ASSETS:
            if bridge == base or (base, bridge) not in self._pairs:
                continue
            first = self._leg(base, bridge)
            for quote in quotes:
                if quote == bridge:
                    continue
                if (bridge, quote) in self._pairs:
                    second = self._leg(bridge, quote)
                elif (quote, bridge) in self._pairs:
                    second = self._leg(quote, bridge, inverted=True)
                else:
                    continue
                logger.debug(
                    f"[{self.venue_name}] {base}/{fiat_code.upper()} bridged via "
                    f"{bridge}: {first.symbol}, {second.symbol}"
                )
                return SymbolRoute(base, fiat_code, (first, second))

        err_msg = f"No Binance market for {base}/{fiat_code.upper()}"
        raise UnsupportedPairError(err_msg)

    @staticmethod
    def _leg(base: str, quote: str, inverted: bool = False) -> RouteLeg:
        return RouteLeg(f"{base}{quote}", base, quote, inverted)

    # --- Ticker ---

    async def get_ticker(self, crypto: str, fiat: str) -> CryptoPrice:
        route = await self.resolve_route(crypto, fiat)
        tickers = await asyncio.gather(
            *(self._fetch_ticker(leg.symbol) for leg in route.legs)
        )

        try:
            if route.is_direct and not route.legs[0].inverted:
                ticker = tickers[0]
                price = float(ticker["lastPrice"])
                change = float(ticker["priceChange"])
                change_pct = float(ticker["priceChangePercent"])
            else:
                price, growth = 1.0, 1.0
                for leg, ticker in zip(route.legs, tickers, strict=True):
                    last = float(ticker["lastPrice"])
                    pct = float(ticker["priceChangePercent"]) / 100
                    if leg.inverted:
                        last = 1 / last
                        pct = 1 / (1 + pct) - 1
                    price *= last
                    growth *= 1 + pct
                change = price - price / growth
                change_pct = (growth - 1) * 100
        except (KeyError, TypeError, ValueError, ZeroDivisionError) as e:
            err_msg = f"[{self.venue_name}] Malformed ticker for {route.symbol}: {e}"
            raise PriceSourceError(err_msg) from e

        return CryptoPrice(
            id=route.symbol.lower(),
            symbol=route.crypto,
            name=route.crypto,
            current_price=price,
            price_change_24h=change,
            price_change_percentage_24h=change_pct,
            last_updated=get_current_rfc3339_timestamp(),
            source=self.venue_name,
        )

    async def _fetch_ticker(self, symbol: str) -> dict[str, Any]:
        data = await self._request(
            "ticker/24hr",
            {"symbol": symbol},
            timeout=self.ticker_timeout_s,
            weight=TICKER_WEIGHT,
        )
        if not isinstance(data, dict) or not data:
            err_msg = f"[{self.venue_name}] No ticker data for {symbol}"
            raise PriceSourceError(err_msg)
        return data

    # --- History ---

    async def get_history(
        self, crypto: str, fiat: str, period: str
    ) -> list[ChartDataPoint]:
        config = get_period(period)
        route = await self.resolve_route(crypto, fiat)
        series = await asyncio.gather(
            *(self._fetch_closes(leg.symbol, config) for leg in route.legs)
        )

        combined: dict[int, float] | None = None
        for leg, closes in zip(route.legs, series, strict=True):
            if leg.inverted:
                closes = {t: 1 / p for t, p in closes.items() if p}
            if combined is None:
                combined = closes
            else:
                # Legs are aligned on candle open time; gaps are dropped.
                combined = {
                    t: p * closes[t] for t, p in combined.items() if t in closes
                }

        points = [
            ChartDataPoint(
                timestamp=ts,
                price=price,
                date=to_rfc3339(from_millis(ts)),
                formatted_date="",
            )
            for ts, price in sorted((combined or {}).items())
        ]
        logger.info(
            f"[{self.venue_name}] Fetched {len(points)} points for "
            f"{route.symbol} ({period})."
        )
        return points

    async def _fetch_closes(self, symbol: str, config: PeriodConfig) -> dict[int, float]:
        data = await self._request(
            "klines",
            {"symbol": symbol, "interval": config.interval, "limit": config.limit},
            timeout=self.history_timeout_s,
            weight=KLINES_WEIGHT,
        )
        if not isinstance(data, list):
            err_msg = f"[{self.venue_name}] Unexpected klines payload for {symbol}"
            raise PriceSourceError(err_msg)
        try:
            # Kline format: [Open time, Open, High, Low, Close, Volume, ...]
            return {int(k[0]): float(k[4]) for k in data}
        except (IndexError, KeyError, TypeError, ValueError) as e:
            err_msg = f"[{self.venue_name}] Malformed kline for {symbol}: {e}"
            raise PriceSourceError(err_msg) from e

    async def _request(
        self, endpoint: str, params: dict[str, Any], timeout: float, weight: int
    ) -> Any:
        """GETs an endpoint, reporting Binance's 'Invalid symbol' as unsupported."""
        try:
            return await self._get_json(
                f"{self.base_url}/{endpoint}",
                params=params,
                timeout=timeout,
                weight=weight,
            )
        except PriceSourceError as e:
            if "invalid symbol" in str(e).lower():
                err_msg = f"Binance does not list {params.get('symbol')}"
                raise UnsupportedPairError(err_msg) from e
            raise
