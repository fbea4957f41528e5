import httpx
import pytest

from coinboard.adapters.base import PriceSourceError, UnsupportedPairError
from coinboard.adapters.binance import BinanceSource

EXCHANGE_INFO = "/api/v3/exchangeInfo"
TICKER = "/api/v3/ticker/24hr"
KLINES = "/api/v3/klines"


def _symbol(base: str, quote: str, status: str = "TRADING") -> dict[str, str]:
    return {
        "symbol": f"{base}{quote}",
        "status": status,
        "baseAsset": base,
        "quoteAsset": quote,
    }


MARKETS = {
    "symbols": [
        _symbol("BTC", "USDT"),
        _symbol("BTC", "RUB"),
        _symbol("TON", "USDT"),
        _symbol("USDT", "UAH"),
        _symbol("EUR", "USDT"),
        _symbol("ETH", "USDC"),
        _symbol("XRP", "RUB", status="BREAK"),
    ]
}

TICKERS = {
    "BTCUSDT": {"lastPrice": "60000.00", "priceChange": "1200.00", "priceChangePercent": "2.04"},
    "TONUSDT": {"lastPrice": "5.00", "priceChange": "0.45", "priceChangePercent": "10.0"},
    "USDTUAH": {"lastPrice": "40.00", "priceChange": "0.00", "priceChangePercent": "0.0"},
    "EURUSDT": {"lastPrice": "1.25", "priceChange": "0.00", "priceChangePercent": "0.0"},
}


def _ticker_handler(request: httpx.Request) -> httpx.Response:
    symbol = request.url.params["symbol"]
    if symbol not in TICKERS:
        return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."})
    return httpx.Response(200, json={"symbol": symbol, **TICKERS[symbol]})


def _kline(open_time: int, close: str) -> list:
    return [open_time, "0", "0", "0", close, "0", open_time + 1, "0", 0, "0", "0", "0"]


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def source(http_client: httpx.AsyncClient) -> BinanceSource:
    return BinanceSource(http_client, retry_delay_s=0)


@pytest.fixture
def markets(fake_api) -> None:
    fake_api.routes[EXCHANGE_INFO] = MARKETS
    fake_api.routes[TICKER] = _ticker_handler


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
@pytest.mark.parametrize(
    ("crypto", "fiat", "expected"),
    [
        ("btc", "usd", "BTCUSDT"),
        ("BTC ", "RUB", "BTCRUB"),
        ("btc", "rur", "BTCRUB"),
        ("eth", "usd", "ETHUSDC"),
    ],
)
async def test_resolve_route_direct(
    source: BinanceSource, crypto: str, fiat: str, expected: str
) -> None:
    route = await source.resolve_route(crypto, fiat)
    assert route.is_direct
    assert route.symbol == expected


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_resolve_route_bridged_through_stablecoin(source: BinanceSource) -> None:
    route = await source.resolve_route("ton", "uah")
    assert not route.is_direct
    assert route.symbol == "TONUSDT*USDTUAH"
    assert [leg.inverted for leg in route.legs] == [False, False]


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_resolve_route_inverted_currency_leg(source: BinanceSource) -> None:
    route = await source.resolve_route("ton", "euro")
    assert route.symbol == "TONUSDT*EURUSDT"
    assert route.legs[1].inverted


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_resolve_route_unsupported(source: BinanceSource) -> None:
    # XRPRUB exists but is not trading.
    with pytest.raises(UnsupportedPairError):
        await source.resolve_route("xrp", "rub")
    with pytest.raises(UnsupportedPairError):
        await source.resolve_route("btc", "jpy")
    with pytest.raises(UnsupportedPairError):
        await source.resolve_route("  ", "usd")


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_markets_are_cached_until_ttl(fake_api, http_client) -> None:
    clock = FakeClock()
    source = BinanceSource(http_client, retry_delay_s=0, markets_ttl_s=60, clock=clock)

    await source.resolve_route("btc", "usd")
    await source.resolve_route("btc", "rub")
    assert len(fake_api.calls(EXCHANGE_INFO)) == 1

    clock.now += 61
    await source.resolve_route("btc", "usd")
    assert len(fake_api.calls(EXCHANGE_INFO)) == 2


@pytest.mark.asyncio
async def test_failed_market_load_is_not_cached(fake_api, source: BinanceSource) -> None:
    fake_api.routes[EXCHANGE_INFO] = 503

    route = await source.resolve_route("btc", "rub")
    # Without a market list the obvious symbol is tried.
    assert route.symbol == "BTCRUB"
    failed_calls = len(fake_api.calls(EXCHANGE_INFO))
    assert failed_calls == 3  # retried on 503

    fake_api.routes[EXCHANGE_INFO] = MARKETS
    route = await source.resolve_route("ton", "uah")
    assert route.symbol == "TONUSDT*USDTUAH"
    assert len(fake_api.calls(EXCHANGE_INFO)) == failed_calls + 1


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_list_base_assets(source: BinanceSource) -> None:
    assert await source.list_base_assets() == ["btc", "eth", "eur", "ton", "usdt"]


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_get_ticker_direct(source: BinanceSource) -> None:
    price = await source.get_ticker("btc", "usd")

    assert price.id == "btcusdt"
    assert price.symbol == "BTC"
    assert price.current_price == 60000.0
    assert price.price_change_24h == 1200.0
    assert price.price_change_percentage_24h == 2.04
    assert price.source == "binance"
    assert price.last_updated.endswith("Z")


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_get_ticker_bridged_combines_legs(source: BinanceSource) -> None:
    price = await source.get_ticker("ton", "uah")

    assert price.current_price == pytest.approx(200.0)
    assert price.price_change_percentage_24h == pytest.approx(10.0)
    # 200 now, 200 / 1.1 a day ago.
    assert price.price_change_24h == pytest.approx(200 - 200 / 1.1)


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_get_ticker_inverted_leg(source: BinanceSource) -> None:
    price = await source.get_ticker("ton", "eur")
    assert price.current_price == pytest.approx(4.0)
    assert price.price_change_percentage_24h == pytest.approx(10.0)


@pytest.mark.asyncio
async def test_invalid_symbol_is_unsupported(fake_api, source: BinanceSource) -> None:
    # Market list down: the optimistic symbol is rejected by the API.
    fake_api.routes[EXCHANGE_INFO] = 500
    fake_api.routes[TICKER] = _ticker_handler

    with pytest.raises(UnsupportedPairError, match="XYZRUB"):
        await source.get_ticker("xyz", "rub")


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_transient_errors_are_retried(fake_api, source: BinanceSource) -> None:
    failures = iter([502, 429])

    def flaky(request: httpx.Request) -> httpx.Response:
        status = next(failures, None)
        if status is not None:
            return httpx.Response(status)
        return _ticker_handler(request)

    fake_api.routes[TICKER] = flaky
    price = await source.get_ticker("btc", "usd")

    assert price.current_price == 60000.0
    assert len(fake_api.calls(TICKER)) == 3


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_persistent_server_error_raises(fake_api, source: BinanceSource) -> None:
    fake_api.routes[TICKER] = 500
    with pytest.raises(PriceSourceError) as exc_info:
        await source.get_ticker("btc", "usd")
    assert not isinstance(exc_info.value, UnsupportedPairError)


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_get_history_direct(fake_api, source: BinanceSource) -> None:
    fake_api.routes[KLINES] = [_kline(1_700_000_000_000, "100.5"), _kline(1_700_003_600_000, "101")]

    points = await source.get_history("btc", "usd", "1d")

    request = fake_api.calls(KLINES)[0]
    assert request.url.params["symbol"] == "BTCUSDT"
    assert request.url.params["interval"] == "1h"
    assert request.url.params["limit"] == "24"
    assert [p.price for p in points] == [100.5, 101.0]
    assert points[0].timestamp == 1_700_000_000_000
    assert points[0].date == "2023-11-14T22:13:20.000Z"
    assert points[0].formatted_date == ""


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_get_history_bridged_aligns_open_times(fake_api, source: BinanceSource) -> None:
    def klines(request: httpx.Request) -> httpx.Response:
        if request.url.params["symbol"] == "TONUSDT":
            rows = [_kline(1, "5"), _kline(2, "6"), _kline(3, "7")]
        else:
            rows = [_kline(2, "1.25"), _kline(3, "1.4")]
        return httpx.Response(200, json=rows)

    fake_api.routes[KLINES] = klines
    points = await source.get_history("ton", "eur", "30d")

    assert [p.timestamp for p in points] == [2, 3]
    assert [p.price for p in points] == pytest.approx([6 / 1.25, 7 / 1.4])


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
async def test_get_history_unknown_period(source: BinanceSource) -> None:
    with pytest.raises(ValueError, match="Unsupported chart period"):
        await source.get_history("btc", "usd", "2w")


@pytest.mark.asyncio
@pytest.mark.usefixtures("markets")
@pytest.mark.parametrize(
    "payload",
    [[{"open": 1}], [[1, "2"]], [["x", "0", "0", "0", "5"]], {"rows": []}],
)
async def test_malformed_klines_raise_source_error(
    fake_api, source: BinanceSource, payload
) -> None:
    fake_api.routes[KLINES] = payload

    with pytest.raises(PriceSourceError):
        await source.get_history("btc", "usd", "1d")
