import random

import httpx
import pytest
from keyring.errors import KeyringError

from coinboard import cli
from coinboard.adapters.binance import BinanceSource
from coinboard.adapters.coincap import CoinCapSource
from coinboard.charts import ChartService
from coinboard.formatting import NBSP
from coinboard.pricing import PriceService

MARKETS = {
    "symbols": [
        {"symbol": "BTCUSDT", "status": "TRADING", "baseAsset": "BTC", "quoteAsset": "USDT"},
        {"symbol": "BTCRUB", "status": "TRADING", "baseAsset": "BTC", "quoteAsset": "RUB"},
    ]
}


@pytest.fixture
def sources(http_client: httpx.AsyncClient) -> list:
    return [
        BinanceSource(http_client, retry_delay_s=0),
        CoinCapSource(http_client, usd_rates={"rub": 95.0}, retry_delay_s=0),
    ]


@pytest.fixture
def coincap_routes(fake_api) -> None:
    fake_api.routes["/v3/assets/toncoin"] = {
        "data": {
            "id": "toncoin",
            "symbol": "TON",
            "name": "Toncoin",
            "priceUsd": "5.5",
            "changePercent24Hr": "4.0",
        }
    }
    fake_api.routes["/v3/rates/ukrainian-hryvnia"] = {"data": {"rateUsd": "0.025"}}
    fake_api.routes["/v3/assets/bitcoin/history"] = {
        "data": [
            {"priceUsd": "60000", "time": 1_704_412_800_000},
            {"priceUsd": "61000", "time": 1_704_499_200_000},
        ]
    }


@pytest.mark.asyncio
@pytest.mark.usefixtures("coincap_routes")
async def test_pair_missing_on_binance_is_priced_by_coincap(fake_api, sources) -> None:
    fake_api.routes["/api/v3/exchangeInfo"] = MARKETS

    price = await PriceService(sources).get_crypto_price("ton", "uah")

    assert price is not None
    assert price.source == "coincap"
    # 5.5 USD at 40 UAH per USD.
    assert price.current_price == pytest.approx(220.0)
    assert price.price_change_percentage_24h == 4.0
    assert fake_api.calls("/api/v3/ticker/24hr") == []


@pytest.mark.asyncio
@pytest.mark.usefixtures("coincap_routes")
async def test_binance_outage_falls_back_for_charts(fake_api, sources) -> None:
    fake_api.routes["/api/v3/exchangeInfo"] = MARKETS
    fake_api.routes["/api/v3/klines"] = 503

    response = await ChartService(sources, rng=random.Random(0)).get_historical_data(
        "btc", "usd", "30d"
    )

    assert response.error is None
    assert response.source == "coincap"
    assert [p.price for p in response.data] == [60000.0, 61000.0]
    assert len(fake_api.calls("/api/v3/klines")) == 3


@pytest.mark.asyncio
async def test_total_outage_yields_placeholder_chart_and_no_price(fake_api, sources) -> None:
    for path in ("/api/v3/exchangeInfo", "/api/v3/ticker/24hr", "/api/v3/klines"):
        fake_api.routes[path] = 500

    price = await PriceService(sources).get_crypto_price("btc", "rub")
    chart = await ChartService(sources, rng=random.Random(0)).get_historical_data(
        "btc", "rub", "1d"
    )

    assert price is None
    assert chart.source == "placeholder"
    assert chart.error is not None
    assert len(chart.data) == 24


def test_cli_price_command(mocker, capsys) -> None:
    price = mocker.Mock(
        current_price=6_500_000.0,
        price_change_24h=-1000.0,
        price_change_percentage_24h=-0.5,
        source="binance",
    )
    mocker.patch("coinboard.cli.build_sources", return_value=[mocker.Mock()])
    mocker.patch("coinboard.cli.setup_logging")
    mocker.patch.object(cli.PriceService, "get_crypto_price", return_value=price)

    assert cli.main(["--locale", "ru", "price", "btc", "rub"]) == 0

    out = capsys.readouterr().out
    assert "BTC/RUB" in out
    assert f"6{NBSP}500{NBSP}000,00" in out
    assert "-0,50%" in out


def test_cli_convert_without_rate_fails(mocker, capsys) -> None:
    mocker.patch("coinboard.cli.build_sources", return_value=[mocker.Mock()])
    mocker.patch("coinboard.cli.setup_logging")
    mocker.patch.object(cli.PriceService, "get_crypto_price", return_value=None)

    assert cli.main(["convert", "1", "btc", "usd"]) == 1
    assert "unavailable" in capsys.readouterr().out


def test_cli_halving_command(mocker, capsys) -> None:
    mocker.patch("coinboard.cli.setup_logging")

    assert cli.main(["--locale", "en", "halving"]) == 0

    out = capsys.readouterr().out
    assert "2024" in out
    assert "840,000" in out


@pytest.mark.asyncio
async def test_malformed_payloads_fall_through_to_none_and_error(fake_api, sources) -> None:
    fake_api.routes["/api/v3/exchangeInfo"] = MARKETS
    fake_api.routes["/api/v3/klines"] = [{"open": 1}]
    fake_api.routes["/v3/assets"] = {"data": ["pepe"]}
    fake_api.routes["/v3/assets/bitcoin/history"] = {"data": [{"time": "soon"}]}

    price = await PriceService(sources).get_crypto_price("pepe", "usd")
    chart = await ChartService(sources, placeholder_on_failure=False).get_historical_data(
        "btc", "usd", "7d"
    )

    assert price is None
    assert chart.data == []
    assert "binance" in chart.error
    assert "coincap" in chart.error


def test_cli_set_key_stores_prompted_key(mocker, capsys) -> None:
    mocker.patch("coinboard.cli.setup_logging")
    mocker.patch("coinboard.cli.getpass.getpass", return_value=" abc123 ")
    set_password = mocker.patch("coinboard.config.keyring.set_password")

    assert cli.main(["set-key", "coincap"]) == 0

    set_password.assert_called_once_with("coinboard-api-keys", "coincap_key", "abc123")
    assert "Stored the coincap API key" in capsys.readouterr().out


def test_cli_set_key_reports_keyring_failure(mocker, capsys) -> None:
    mocker.patch("coinboard.cli.setup_logging")
    mocker.patch(
        "coinboard.config.keyring.set_password", side_effect=KeyringError("locked")
    )

    assert cli.main(["set-key", "coincap", "--key", "abc123"]) == 1
    assert "Could not store" in capsys.readouterr().out
