"""Crypto/fiat converter state, independent of any widget toolkit."""

import math
from enum import StrEnum

from loguru import logger

from coinboard.broadcast import CryptoBroadcaster
from coinboard.catalog import canonical_fiat
from coinboard.formatting import (
    format_crypto,
    format_fiat,
    format_rate_label,
    strip_trailing_zeros,
)
from coinboard.preferences import SELECTED_CRYPTO_KEY, PreferenceStore

DEFAULT_CRYPTO = "BTC"
DEFAULT_FIAT = "rub"
DEFAULT_AMOUNT = "1"
MAX_CRYPTO_LENGTH = 10


class Direction(StrEnum):
    CRYPTO_TO_FIAT = "crypto_to_fiat"
    FIAT_TO_CRYPTO = "fiat_to_crypto"


def normalize_crypto(value: str) -> str:
    """'  eth ' -> 'ETH', truncated to 10 characters."""
    return value.strip().upper()[:MAX_CRYPTO_LENGTH]


def parse_amount(text: str) -> float | None:
    """Parses a user-typed amount; a comma is accepted as the decimal separator."""
    try:
        value = float(text.strip().replace(",", ".", 1))
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def _is_usable_rate(rate: float | None) -> bool:
    return rate is not None and math.isfinite(rate) and rate > 0


class Converter:
    """Two-way conversion between a coin and a fiat currency.

    The input amount is kept as typed; the converted amount is derived from
    it and the current rate on demand.
    """

    def __init__(
        self,
        crypto: str | None = None,
        fiat: str = DEFAULT_FIAT,
        amount: str = DEFAULT_AMOUNT,
        preferences: PreferenceStore | None = None,
        broadcaster: CryptoBroadcaster | None = None,
    ) -> None:
        self.preferences = preferences
        self.broadcaster = broadcaster
        self.direction = Direction.CRYPTO_TO_FIAT
        self.fiat = canonical_fiat(fiat)
        self.amount = amount
        self.crypto = self._initial_crypto(crypto)

    def _initial_crypto(self, explicit: str | None) -> str:
        if explicit and explicit.strip():
            return normalize_crypto(explicit)
        if self.preferences is not None:
            stored = self.preferences.get(SELECTED_CRYPTO_KEY)
            if isinstance(stored, str) and stored.strip():
                return normalize_crypto(stored)
        return DEFAULT_CRYPTO

    @property
    def from_is_crypto(self) -> bool:
        return self.direction is Direction.CRYPTO_TO_FIAT

    def to_amount(self, rate: float | None) -> float | None:
        """The converted amount, or None for bad input or an unusable rate."""
        value = parse_amount(self.amount)
        if value is None or not _is_usable_rate(rate):
            return None
        if self.direction is Direction.CRYPTO_TO_FIAT:
            return value * rate
        return value / rate

    def display_to_amount(self, rate: float | None, locale: str = "ru") -> str:
        result = self.to_amount(rate)
        if result is None:
            return ""
        if self.from_is_crypto:
            return format_fiat(result, self.fiat, locale)
        return format_crypto(result, locale=locale)

    def swap(self, rate: float | None) -> None:
        """Flips the direction, carrying the converted amount into the input."""
        result = self.to_amount(rate)
        to_is_crypto = not self.from_is_crypto
        self.direction = (
            Direction.FIAT_TO_CRYPTO if self.from_is_crypto else Direction.CRYPTO_TO_FIAT
        )
        if result is None:
            return
        if to_is_crypto and result < 1:
            self.amount = strip_trailing_zeros(f"{result:.8f}")
        else:
            self.amount = f"{result:.2f}"

    def rate_label(self, rate: float | None, locale: str = "ru") -> str | None:
        if not _is_usable_rate(rate):
            return None
        return format_rate_label(self.crypto, self.fiat, rate, locale)

    def clear(self) -> None:
        self.amount = ""

    def select_fiat(self, fiat: str) -> None:
        self.fiat = canonical_fiat(fiat)

    async def select_crypto(self, crypto: str) -> str:
        """Switches the coin, remembers it and tells the other views."""
        self.crypto = normalize_crypto(crypto) or DEFAULT_CRYPTO
        logger.info(f"Converter coin set to {self.crypto}.")
        if self.preferences is not None:
            await self.preferences.set(SELECTED_CRYPTO_KEY, self.crypto)
        if self.broadcaster is not None:
            self.broadcaster.broadcast_crypto(self.crypto)
        return self.crypto
