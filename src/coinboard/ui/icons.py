import asyncio
from collections.abc import Iterable

import httpx
from loguru import logger
from PySide6.QtCore import QRectF, Qt
from PySide6.QtGui import QColor, QFont, QIcon, QPainter, QPixmap

from coinboard.catalog import crypto_initial, get_crypto_icon_url

# Background colours for letter icons, picked by symbol.
_LETTER_COLOURS = ("#f7931a", "#627eea", "#26a17b", "#8247e5", "#e84142", "#0098ea")


def letter_icon(symbol: str, size: int = 24) -> QIcon:
    """A round badge with the coin's first letter, for coins without an image."""
    key = symbol.strip().lower()
    colour = _LETTER_COLOURS[sum(map(ord, key)) % len(_LETTER_COLOURS)]

    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)
    painter = QPainter(pixmap)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor(colour))
        painter.drawEllipse(0, 0, size, size)
        font = QFont()
        font.setBold(True)
        font.setPixelSize(max(8, size // 2))
        painter.setFont(font)
        painter.setPen(QColor("white"))
        painter.drawText(
            QRectF(0, 0, size, size), Qt.AlignmentFlag.AlignCenter, crypto_initial(key)
        )
    finally:
        painter.end()
    return QIcon(pixmap)


class CoinIconCache:
    """Coin icons downloaded over the shared HTTP client and kept for the session.

    `fetch_image` does the network work; `icon` never blocks and falls back to
    a letter badge until (or unless) an image is available. Coins without a
    known icon URL are cached as "no image" so they are not looked up again.
    Failed downloads are not cached.
    """

    def __init__(
        self, http_client: httpx.AsyncClient, size: int = 24, timeout_s: float = 10.0
    ) -> None:
        self._http_client = http_client
        self.size = size
        self.timeout_s = timeout_s
        self._images: dict[str, bytes | None] = {}
        self._icons: dict[str, QIcon] = {}

    async def fetch_image(self, symbol: str) -> bytes | None:
        key = symbol.strip().lower()
        if key in self._images:
            return self._images[key]

        url = get_crypto_icon_url(key)
        if url is None:
            self._images[key] = None
            return None
        try:
            response = await self._http_client.get(url, timeout=self.timeout_s)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Could not fetch the {key.upper()} icon: {e}")
            return None

        self._images[key] = response.content
        self._icons.pop(key, None)
        return response.content

    async def prefetch(self, symbols: Iterable[str]) -> None:
        await asyncio.gather(*(self.fetch_image(s) for s in symbols))

    def icon(self, symbol: str) -> QIcon:
        key = symbol.strip().lower()
        cached = self._icons.get(key)
        if cached is not None:
            return cached

        icon = None
        data = self._images.get(key)
        if data:
            pixmap = QPixmap()
            if pixmap.loadFromData(data):
                icon = QIcon(
                    pixmap.scaled(
                        self.size,
                        self.size,
                        Qt.AspectRatioMode.KeepAspectRatio,
                        Qt.TransformationMode.SmoothTransformation,
                    )
                )
            else:
                logger.warning(f"The {key.upper()} icon is not a readable image.")
        # A letter badge is replaced once `fetch_image` gets the real image.
        self._icons[key] = icon if icon is not None else letter_icon(key, self.size)
        return self._icons[key]
