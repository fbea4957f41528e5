from PySide6.QtCore import Signal, Slot
from PySide6.QtGui import QDoubleValidator, QIcon
from PySide6.QtWidgets import (
    QGridLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from coinboard.catalog import fiat_symbol
from coinboard.converter import Converter
from coinboard.ui.icons import CoinIconCache


class ConverterView(QWidget):
    """Amount input, swap button and the converted amount.

    The view renders a `Converter`; the main window feeds it the rate and runs
    the coin/currency selection flows, which it starts on the `*_requested`
    signals.
    """

    crypto_requested = Signal()
    fiat_requested = Signal()

    def __init__(
        self,
        converter: Converter,
        parent: QWidget | None = None,
        locale: str = "ru",
        icons: CoinIconCache | None = None,
    ) -> None:
        super().__init__(parent)
        self.converter = converter
        self._locale = locale
        self._icons = icons
        self._rate: float | None = None
        self._setup_ui()
        self.refresh()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        grid = QGridLayout()

        self._from_input = QLineEdit(self.converter.amount)
        validator = QDoubleValidator(0.0, 1e15, 8, self)
        validator.setNotation(QDoubleValidator.Notation.StandardNotation)
        self._from_input.setValidator(validator)
        self._from_input.textEdited.connect(self._on_amount_edited)
        self._clear_button = QPushButton("×")
        self._clear_button.setFixedWidth(32)
        self._clear_button.clicked.connect(self._on_clear)
        self._from_selector = QPushButton()
        self._from_selector.clicked.connect(self._on_from_selector)

        self._to_output = QLineEdit()
        self._to_output.setReadOnly(True)
        self._to_selector = QPushButton()
        self._to_selector.clicked.connect(self._on_to_selector)

        self._swap_button = QPushButton("⇅")
        self._swap_button.setToolTip("Swap conversion direction")
        self._swap_button.clicked.connect(self._on_swap)

        grid.addWidget(QLabel("From"), 0, 0)
        grid.addWidget(self._from_input, 0, 1)
        grid.addWidget(self._clear_button, 0, 2)
        grid.addWidget(self._from_selector, 0, 3)
        grid.addWidget(self._swap_button, 1, 1)
        grid.addWidget(QLabel("To"), 2, 0)
        grid.addWidget(self._to_output, 2, 1)
        grid.addWidget(self._to_selector, 2, 3)
        layout.addLayout(grid)

        self._rate_label = QLabel("")
        layout.addWidget(self._rate_label)
        layout.addStretch()

    @property
    def rate(self) -> float | None:
        return self._rate

    def set_rate(self, rate: float | None) -> None:
        self._rate = rate
        self.refresh()

    async def change_crypto(self, crypto: str) -> None:
        """Switches the coin; the old pair's rate is dropped until a new one arrives."""
        await self.converter.select_crypto(crypto)
        self.set_rate(None)

    def change_fiat(self, fiat: str) -> None:
        self.converter.select_fiat(fiat)
        self.set_rate(None)

    def refresh(self) -> None:
        c = self.converter
        crypto_text = f"{c.crypto} ▼"
        fiat_text = f"{fiat_symbol(c.fiat)} {c.fiat.upper()} ▼"
        crypto_icon = self._icons.icon(c.crypto) if self._icons else QIcon()
        self._from_selector.setText(crypto_text if c.from_is_crypto else fiat_text)
        self._from_selector.setIcon(crypto_icon if c.from_is_crypto else QIcon())
        self._to_selector.setText(fiat_text if c.from_is_crypto else crypto_text)
        self._to_selector.setIcon(QIcon() if c.from_is_crypto else crypto_icon)
        if self._from_input.text() != c.amount:
            self._from_input.setText(c.amount)
        self._to_output.setText(c.display_to_amount(self._rate, self._locale))
        self._rate_label.setText(c.rate_label(self._rate, self._locale) or "")

    @Slot(str)
    def _on_amount_edited(self, text: str) -> None:
        self.converter.amount = text
        self.refresh()

    @Slot()
    def _on_clear(self) -> None:
        self.converter.clear()
        self.refresh()

    @Slot()
    def _on_swap(self) -> None:
        self.converter.swap(self._rate)
        self.refresh()

    @Slot()
    def _on_from_selector(self) -> None:
        if self.converter.from_is_crypto:
            self.crypto_requested.emit()
        else:
            self.fiat_requested.emit()

    @Slot()
    def _on_to_selector(self) -> None:
        if self.converter.from_is_crypto:
            self.fiat_requested.emit()
        else:
            self.crypto_requested.emit()
