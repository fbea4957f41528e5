from collections.abc import Sequence

from loguru import logger
from PySide6.QtCore import QSize, Qt, Slot
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QVBoxLayout,
    QWidget,
)

from coinboard.catalog import (
    FIAT_OPTIONS,
    crypto_name,
    filter_fiat_options,
    filter_symbols,
)
from coinboard.ui.icons import CoinIconCache


class SelectorDialog(QDialog):
    """A searchable list of choices; the coin and currency pickers share it.

    Each entry is a (value, text) pair. Subclasses decide how the search box
    filters the values.
    """

    def __init__(
        self,
        title: str,
        prompt: str,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._entries: list[tuple[str, str]] = []
        self._selected: str | None = None

        self.setWindowTitle(title)
        self.setMinimumSize(360, 480)

        layout = QVBoxLayout(self)
        self._search_input = QLineEdit()
        self._search_input.setPlaceholderText("Search...")
        self._search_input.textChanged.connect(self._filter_list)

        self._list_widget = QListWidget()
        self._list_widget.itemDoubleClicked.connect(self.accept)

        self._status_label = QLabel("")
        self._status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        button_box.accepted.connect(self.accept)
        button_box.rejected.connect(self.reject)

        layout.addWidget(QLabel(prompt))
        layout.addWidget(self._search_input)
        layout.addWidget(self._status_label)
        layout.addWidget(self._list_widget, stretch=1)
        layout.addWidget(button_box)

    def set_entries(self, entries: Sequence[tuple[str, str]]) -> None:
        self._entries = list(entries)
        self._filter_list(self._search_input.text())

    def matching_values(self, query: str) -> list[str]:
        return [value for value, _ in self._entries]

    def icon_for(self, value: str) -> QIcon | None:
        return None

    @Slot(str)
    def _filter_list(self, text: str) -> None:
        self._list_widget.clear()
        texts = dict(self._entries)
        matches = self.matching_values(text)
        for value in matches:
            item = QListWidgetItem(texts.get(value, value))
            item.setData(Qt.ItemDataRole.UserRole, value)
            icon = self.icon_for(value)
            if icon is not None:
                item.setIcon(icon)
            self._list_widget.addItem(item)
        self._status_label.setText("" if matches else "Nothing found")

    def accept(self) -> None:
        selected_items = self._list_widget.selectedItems()
        if not selected_items:
            QMessageBox.warning(self, "No Selection", "Please select an item to continue.")
            return
        self._selected = selected_items[0].data(Qt.ItemDataRole.UserRole)
        logger.info(f"User selected: {self._selected}")
        super().accept()

    def selected_value(self) -> str | None:
        return self._selected


class CoinSelectorDialog(SelectorDialog):
    def __init__(
        self,
        symbols: Sequence[str],
        parent: QWidget | None = None,
        icons: CoinIconCache | None = None,
    ) -> None:
        super().__init__("Select Coin", "Search by ticker (e.g. BTC):", parent)
        self._icons = icons
        if icons is not None:
            self._list_widget.setIconSize(QSize(icons.size, icons.size))
        self.set_entries([(s.upper(), f"{s.upper()}  {crypto_name(s)}") for s in symbols])

    def matching_values(self, query: str) -> list[str]:
        return filter_symbols((value for value, _ in self._entries), query)

    def icon_for(self, value: str) -> QIcon | None:
        return self._icons.icon(value) if self._icons else None

    @staticmethod
    def get_coin(
        symbols: Sequence[str],
        parent: QWidget | None = None,
        icons: CoinIconCache | None = None,
    ) -> str | None:
        dialog = CoinSelectorDialog(symbols, parent, icons)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            return dialog.selected_value()
        return None


class CurrencySelectorDialog(SelectorDialog):
    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__("Select Currency", "Search by code or name:", parent)
        self.set_entries(
            [(f.code, f"{f.symbol}  {f.code.upper()}  {f.label}") for f in FIAT_OPTIONS]
        )

    def matching_values(self, query: str) -> list[str]:
        return [f.code for f in filter_fiat_options(query)]

    @staticmethod
    def get_currency(parent: QWidget | None = None) -> str | None:
        dialog = CurrencySelectorDialog(parent)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            return dialog.selected_value()
        return None
