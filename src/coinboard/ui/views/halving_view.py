from datetime import datetime

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import Qt, QTimer, Slot
from PySide6.QtWidgets import QGridLayout, QLabel, QVBoxLayout, QWidget

from coinboard.formatting import day_label, format_block, format_short_date
from coinboard.halving import (
    HALVING_STEPS,
    HalvingCountdown,
    build_step_chart,
    halving_points,
)
from coinboard.types import HalvingStatus, StepPoint

COMPLETED_COLOR = "#26A69A"
UPCOMING_COLOR = "#F7931A"


class HalvingView(QWidget):
    """Countdown to the next Bitcoin halving and the block-reward step chart."""

    def __init__(self, parent: QWidget | None = None, locale: str = "ru") -> None:
        super().__init__(parent)
        self._locale = locale
        self._countdown = HalvingCountdown()
        self._points: list[StepPoint] = []
        self._setup_ui()

        self._timer = QTimer(self)
        self._timer.setInterval(1000)
        self._timer.timeout.connect(self._tick)
        self._timer.start()
        self._tick()
        self.refresh_chart()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        self._title_label = QLabel("")
        self._title_label.setStyleSheet("font-size: 16px;")
        layout.addWidget(self._title_label)

        grid = QGridLayout()
        self._value_labels: list[QLabel] = []
        self._unit_labels: list[QLabel] = []
        for col, unit in enumerate(("", "hours", "minutes", "seconds")):
            value = QLabel("0")
            value.setAlignment(Qt.AlignmentFlag.AlignCenter)
            value.setStyleSheet("font-size: 28px; font-weight: bold;")
            unit_label = QLabel(unit)
            unit_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
            grid.addWidget(value, 0, col)
            grid.addWidget(unit_label, 1, col)
            self._value_labels.append(value)
            self._unit_labels.append(unit_label)
        layout.addLayout(grid)

        self._plot = pg.PlotWidget()
        self._plot.setLabel("left", "Block reward, BTC")
        self._plot.showGrid(x=True, y=True, alpha=0.3)
        self._plot.setMouseEnabled(x=False, y=False)
        self._plot.hideButtons()
        self._line = pg.PlotDataItem(pen=pg.mkPen(UPCOMING_COLOR, width=2))
        self._markers = pg.ScatterPlotItem(
            size=10, hoverable=True, tip=lambda x, y, data: data
        )
        self._plot.addItem(self._line)
        self._plot.addItem(self._markers)
        layout.addWidget(self._plot, stretch=1)

    @Slot()
    def _tick(self) -> None:
        state = self._countdown.tick()
        if state.expired or state.next_date is None:
            self._title_label.setText("All scheduled halvings have passed.")
            self._timer.stop()
            return

        r = state.remaining
        self._title_label.setText(f"Next halving: {format_short_date(state.next_date)}")
        for label, value in zip(
            self._value_labels, (r.days, r.hours, r.minutes, r.seconds), strict=True
        ):
            label.setText(str(value))
        self._unit_labels[0].setText(day_label(r.days, self._locale))

    def refresh_chart(self, now: datetime | None = None) -> None:
        self._points = build_step_chart(HALVING_STEPS, now=now)
        years = np.array([p.year for p in self._points], dtype=float)
        rewards = np.array([p.reward for p in self._points])
        self._line.setData(years, rewards)

        spots = []
        for p in halving_points(self._points):
            color = (
                COMPLETED_COLOR if p.status is HalvingStatus.COMPLETED else UPCOMING_COLOR
            )
            after = p.reward_after if p.reward_after is not None else p.reward
            spots.append(
                {
                    "pos": (p.year, p.reward),
                    "brush": pg.mkBrush(color),
                    "data": (
                        f"{format_short_date(p.date)}\n"
                        f"Block {format_block(p.block, self._locale)}\n"
                        f"{p.reward:g} → {after:g} BTC"
                    ),
                }
            )
        self._markers.setData(spots)
