"""Static catalogue of the coins and currencies the dashboard offers."""

from collections.abc import Iterable

from coinboard.types import FiatOption

FIAT_OPTIONS: tuple[FiatOption, ...] = (
    FiatOption("rub", "₽", "Российский рубль"),
    FiatOption("usd", "$", "Доллар США"),
    FiatOption("eur", "€", "Евро"),
    FiatOption("uah", "₴", "Украинская гривна"),
    FiatOption("kzt", "₸", "Казахстанский тенге"),
    FiatOption("try", "₺", "Турецкая лира"),
    FiatOption("gbp", "£", "Фунт стерлингов"),
)

FIAT_ALIASES: dict[str, str] = {
    "euro": "eur",
    "rur": "rub",
}

CRYPTO_NAMES: dict[str, str] = {
    "btc": "Bitcoin",
    "eth": "Ethereum",
    "ton": "TON",
    "sol": "Solana",
    "ada": "Cardano",
    "dot": "Polkadot",
    "matic": "Polygon",
    "avax": "Avalanche",
    "link": "Chainlink",
    "atom": "Cosmos",
}

# Used when the exchange market list cannot be loaded.
DEFAULT_CRYPTOS: tuple[str, ...] = tuple(CRYPTO_NAMES)

_COINGECKO_IMAGES = "https://assets.coingecko.com/coins/images"

_CRYPTO_ICON_PATHS: dict[str, str] = {
    "btc": "1/small/bitcoin.png",
    "eth": "279/small/ethereum.png",
    "bnb": "825/small/bnb-icon2_2x.png",
    "sol": "4128/small/solana.png",
    "xrp": "44/small/xrp-symbol-white-128.png",
    "usdt": "325/small/Tether.png",
    "usdc": "6319/small/usdc.png",
    "doge": "5/small/dogecoin.png",
    "ada": "975/small/cardano.png",
    "avax": "12559/small/Avalanche_Circle_RedWhite_Trans.png",
    "trx": "10915/small/tron-logo.png",
    "link": "877/small/chainlink-new-logo.png",
    "ton": "17980/small/ton_symbol.png",
    "dot": "12171/small/polkadot.png",
    "matic": "4713/small/matic-token-icon.png",
    "ltc": "2/small/litecoin.png",
    "shib": "11939/small/shiba.png",
    "dai": "9956/small/Badge_Dai.png",
    "uni": "12504/small/uni-app-icon.png",
    "atom": "1481/small/cosmos_hub.png",
    "near": "10365/small/near.jpg",
    "apt": "26455/small/aptos_round.png",
    "arb": "16547/small/photo_2023-03-29_21.47.00.jpeg",
    "op": "25244/small/Optimism.png",
    "inj": "12863/small/Secondary_Symbol.png",
    "fil": "228/small/filecoin.png",
    "stx": "2069/small/Stacks_logo_full.png",
    "imx": "17233/small/immutable-X-symbol-BLK.png",
    "sui": "26375/small/sui_asset.jpeg",
    "sei": "28205/small/Sei_Logo_-_Transparent.png",
    "wld": "25124/small/worldcoin.jpeg",
    "fdusd": "26181/small/fdusd.png",
    "pepe": "29850/small/pepe-token.jpeg",
    "wbtc": "7598/small/wrapped_bitcoin_wbtc.png",
    "steth": "13442/small/steth_logo.png",
}


def canonical_fiat(code: str) -> str:
    """Normalizes a user-facing currency code ('EURO ' -> 'eur')."""
    key = code.strip().lower()
    return FIAT_ALIASES.get(key, key)


def get_fiat_option(code: str) -> FiatOption | None:
    key = canonical_fiat(code)
    return next((f for f in FIAT_OPTIONS if f.code == key), None)


def fiat_symbol(code: str) -> str:
    """The currency sign for a code, or the upper-cased code when unknown."""
    option = get_fiat_option(code)
    return option.symbol if option else code.strip().upper()


def crypto_name(symbol: str) -> str:
    key = symbol.strip().lower()
    return CRYPTO_NAMES.get(key, key.upper())


def get_crypto_icon_url(symbol: str) -> str | None:
    """Icon URL for a coin symbol; None means the UI should draw a fallback."""
    path = _CRYPTO_ICON_PATHS.get(symbol.strip().lower())
    return f"{_COINGECKO_IMAGES}/{path}" if path else None


def crypto_initial(symbol: str) -> str:
    """The letter drawn in place of a missing coin icon."""
    letter = next((ch for ch in symbol.strip() if ch.isalnum()), "?")
    return letter.upper()


def filter_symbols(symbols: Iterable[str], query: str) -> list[str]:
    """Case-insensitive substring search over coin symbols."""
    items = list(symbols)
    q = query.strip().upper()
    if not q:
        return items
    return [s for s in items if q in s.upper()]


def filter_fiat_options(query: str) -> list[FiatOption]:
    """Substring search over currency codes and labels."""
    q = query.strip().lower()
    if not q:
        return list(FIAT_OPTIONS)
    return [f for f in FIAT_OPTIONS if q in f.code.lower() or q in f.label.lower()]
