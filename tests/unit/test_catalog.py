import pytest

from coinboard.catalog import (
    DEFAULT_CRYPTOS,
    canonical_fiat,
    crypto_initial,
    crypto_name,
    filter_fiat_options,
    filter_symbols,
    fiat_symbol,
    get_crypto_icon_url,
    get_fiat_option,
)


@pytest.mark.parametrize(
    ("code", "expected"),
    [("EUR", "eur"), (" euro ", "eur"), ("RUR", "rub"), ("usdt", "usdt"), ("jpy", "jpy")],
)
def test_canonical_fiat(code: str, expected: str) -> None:
    assert canonical_fiat(code) == expected


def test_fiat_lookup() -> None:
    assert get_fiat_option("RUB").symbol == "₽"
    assert get_fiat_option("xyz") is None
    assert fiat_symbol("euro") == "€"
    assert fiat_symbol("chf") == "CHF"


def test_crypto_names_and_icons() -> None:
    assert crypto_name("BTC") == "Bitcoin"
    assert crypto_name("pepe") == "PEPE"
    assert "btc" in DEFAULT_CRYPTOS
    assert get_crypto_icon_url("TON").endswith("ton_symbol.png")
    assert get_crypto_icon_url("unknowncoin") is None


def test_filter_symbols() -> None:
    symbols = ["BTC", "WBTC", "ETH", "ETHFI"]
    assert filter_symbols(symbols, "btc") == ["BTC", "WBTC"]
    assert filter_symbols(symbols, " eth") == ["ETH", "ETHFI"]
    assert filter_symbols(symbols, "") == symbols


def test_filter_fiat_options() -> None:
    assert [f.code for f in filter_fiat_options("eu")] == ["eur"]
    assert [f.code for f in filter_fiat_options("рубль")] == ["rub"]
    assert len(filter_fiat_options("")) == 7


@pytest.mark.parametrize(
    ("symbol", "expected"), [("btc", "B"), (" ton", "T"), ("1inch", "1"), ("", "?")]
)
def test_crypto_initial(symbol: str, expected: str) -> None:
    assert crypto_initial(symbol) == expected
