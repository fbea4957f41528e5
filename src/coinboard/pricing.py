from collections.abc import Sequence

from loguru import logger

from coinboard.adapters.base import PriceSource, PriceSourceError, UnsupportedPairError
from coinboard.adapters.binance import BinanceSource
from coinboard.catalog import DEFAULT_CRYPTOS, FIAT_OPTIONS
from coinboard.types import CryptoPrice


class PriceService:
    """Current prices with source fallback.

    Sources are tried in order; the first one that can price the pair wins.
    A source that does not list the pair, or fails outright, hands over to
    the next one.
    """

    def __init__(self, sources: Sequence[PriceSource]) -> None:
        self.sources = list(sources)
        if not self.sources:
            logger.warning("No price sources configured; prices are unavailable.")

    async def get_crypto_price(self, crypto: str, currency: str) -> CryptoPrice | None:
        """Fetches the 24h ticker of `crypto` in `currency`.

        Returns:
            The first successful ticker, or None if every source failed.
        """
        for source in self.sources:
            try:
                price = await source.get_ticker(crypto, currency)
            except UnsupportedPairError as e:
                logger.info(f"[{source.venue_name}] {e}; trying next source.")
                continue
            except PriceSourceError as e:
                logger.warning(f"[{source.venue_name}] Price request failed: {e}")
                continue
            logger.debug(
                f"[{source.venue_name}] {price.symbol}/{currency.upper()} = "
                f"{price.current_price}"
            )
            return price

        logger.error(f"No source could price {crypto.upper()}/{currency.upper()}.")
        return None

    async def get_supported_cryptos(self) -> list[str]:
        """Upper-case coin symbols the converter offers.

        Taken from the Binance market list when available, otherwise the
        static default list.
        """
        for source in self.sources:
            if isinstance(source, BinanceSource):
                symbols = await source.list_base_assets()
                if symbols:
                    return [s.upper() for s in symbols]
        return [s.upper() for s in DEFAULT_CRYPTOS]

    @staticmethod
    def get_supported_currencies() -> list[str]:
        return [f.code for f in FIAT_OPTIONS]
