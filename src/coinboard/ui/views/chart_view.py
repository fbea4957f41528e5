from datetime import datetime, timezone

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtWidgets import (
    QButtonGroup,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from coinboard.axis import compute_price_axis
from coinboard.formatting import (
    format_axis_date,
    format_change,
    format_price,
    format_timestamp,
    format_tooltip_date,
    pair_label,
)
from coinboard.periods import PERIOD_LABELS, TIME_PERIODS
from coinboard.types import ChartResponse, CryptoPrice
from coinboard.utils.time import to_datetime

pg.setConfigOptions(antialias=True, useOpenGL=False)
pg.setConfigOption("background", "#161A25")
pg.setConfigOption("foreground", "#D8D9DD")

UP_COLOR = "#26A69A"
DOWN_COLOR = "#EF5350"
LINE_COLOR = "#F7931A"


class DateAxis(pg.AxisItem):
    """Bottom axis showing Unix-second ticks as period-dependent date labels."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.period = "1y"
        self.locale = "ru"

    def tickStrings(  # noqa: N802
        self, values: list[float], _scale: float, _spacing: float
    ) -> list[str]:
        return [
            format_axis_date(
                datetime.fromtimestamp(v, tz=timezone.utc), self.period, self.locale
            )
            for v in values
        ]


class ChartView(QWidget):
    """Price header, period buttons and a close-price line chart."""

    period_changed = Signal(str)

    def __init__(
        self,
        parent: QWidget | None = None,
        period: str = "1y",
        locale: str = "ru",
    ) -> None:
        super().__init__(parent)
        self._period = period
        self._locale = locale
        self._times: np.ndarray = np.empty(0)
        self._prices: np.ndarray = np.empty(0)
        self._setup_ui()

    @property
    def period(self) -> str:
        return self._period

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        # --- Price header ---
        header = QHBoxLayout()
        self._pair_label = QLabel("")
        self._pair_label.setStyleSheet("font-size: 18px; font-weight: bold;")
        self._price_label = QLabel("Loading...")
        self._price_label.setStyleSheet("font-size: 22px;")
        self._change_label = QLabel("")
        self._updated_label = QLabel("")
        self._updated_label.setAlignment(Qt.AlignmentFlag.AlignRight)
        header.addWidget(self._pair_label)
        header.addWidget(self._price_label)
        header.addWidget(self._change_label)
        header.addStretch()
        header.addWidget(self._updated_label)
        layout.addLayout(header)

        # --- Period buttons ---
        buttons = QHBoxLayout()
        self._period_group = QButtonGroup(self)
        self._period_group.setExclusive(True)
        labels = PERIOD_LABELS.get(self._locale, PERIOD_LABELS["ru"])
        for key in TIME_PERIODS:
            button = QPushButton(labels[key])
            button.setCheckable(True)
            button.setChecked(key == self._period)
            button.setProperty("period", key)
            self._period_group.addButton(button)
            buttons.addWidget(button)
        self._period_group.buttonClicked.connect(self._on_period_clicked)
        buttons.addStretch()
        layout.addLayout(buttons)

        # --- Plot ---
        self._date_axis = DateAxis(orientation="bottom")
        self._date_axis.period = self._period
        self._date_axis.locale = self._locale
        self._plot = pg.PlotWidget(axisItems={"bottom": self._date_axis})
        self._plot.showGrid(x=False, y=True, alpha=0.3)
        self._plot.setMouseEnabled(x=False, y=False)
        self._plot.hideButtons()
        self._line = pg.PlotDataItem(pen=pg.mkPen(LINE_COLOR, width=2))
        self._plot.addItem(self._line)
        self._hover = pg.TextItem(anchor=(0, 1))
        self._plot.addItem(self._hover)
        self._hover.hide()
        self._plot.scene().sigMouseMoved.connect(self._on_mouse_moved)
        layout.addWidget(self._plot, stretch=1)

        # --- Footer ---
        footer = QHBoxLayout()
        self._min_label = QLabel("")
        self._max_label = QLabel("")
        self._status_label = QLabel("")
        self._status_label.setStyleSheet(f"color: {DOWN_COLOR};")
        footer.addWidget(self._min_label)
        footer.addWidget(self._max_label)
        footer.addStretch()
        footer.addWidget(self._status_label)
        layout.addLayout(footer)

    def set_pair(self, crypto: str, currency: str) -> None:
        self._pair_label.setText(pair_label(crypto, currency))
        self._price_label.setText("Loading...")
        self._change_label.clear()

    def set_price(self, price: CryptoPrice | None, error: str | None = None) -> None:
        if price is None:
            self._price_label.setText(error or "Price unavailable")
            self._change_label.clear()
            return

        self._price_label.setText(format_price(price.current_price, self._locale))
        color = UP_COLOR if price.price_change_24h >= 0 else DOWN_COLOR
        self._change_label.setStyleSheet(f"color: {color};")
        self._change_label.setText(
            f"{format_change(price.price_change_24h, self._locale)} "
            f"({format_change(price.price_change_percentage_24h, self._locale)}%)"
        )
        updated = to_datetime(price.last_updated).astimezone()
        self._updated_label.setText(format_timestamp(updated, self._locale))

    def set_chart(self, response: ChartResponse) -> None:
        """Draws a chart response; its error, if any, is shown under the plot."""
        self._status_label.setText(response.error or "")
        if not response.data:
            self.clear_chart()
            return

        self._times = np.array([p.timestamp / 1000 for p in response.data])
        self._prices = np.array([p.price for p in response.data])
        self._line.setData(self._times, self._prices)

        axis = compute_price_axis(self._prices.tolist())
        self._plot.setXRange(self._times[0], self._times[-1], padding=0)
        self._plot.setYRange(axis.lower, axis.upper, padding=0)
        self._min_label.setText(f"Min: {format_price(axis.min_price, self._locale)}")
        self._max_label.setText(f"Max: {format_price(axis.max_price, self._locale)}")

    def clear_chart(self) -> None:
        self._times = np.empty(0)
        self._prices = np.empty(0)
        self._line.setData([], [])
        self._min_label.clear()
        self._max_label.clear()
        self._hover.hide()

    @Slot(object)
    def _on_period_clicked(self, button: QPushButton) -> None:
        period = button.property("period")
        if period == self._period:
            return
        self._period = period
        self._date_axis.period = period
        self.period_changed.emit(period)

    @Slot(object)
    def _on_mouse_moved(self, pos) -> None:
        if self._times.size == 0 or not self._plot.sceneBoundingRect().contains(pos):
            self._hover.hide()
            return
        x = self._plot.getPlotItem().vb.mapSceneToView(pos).x()
        i = int(np.clip(np.searchsorted(self._times, x), 0, self._times.size - 1))
        when = datetime.fromtimestamp(self._times[i], tz=timezone.utc).astimezone()
        self._hover.setText(
            f"{format_tooltip_date(when, self._period, self._locale)}\n"
            f"{format_price(self._prices[i], self._locale)}"
        )
        self._hover.setPos(self._times[i], self._prices[i])
        self._hover.show()
