"""Chart periods: how much history each period shows and at what resolution."""

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class PeriodConfig:
    interval: str  # Binance kline interval
    limit: int  # number of candles

    @property
    def interval_delta(self) -> timedelta:
        return timedelta(hours=1) if self.interval == "1h" else timedelta(days=1)

    @property
    def span(self) -> timedelta:
        return self.interval_delta * self.limit


TIME_PERIODS: dict[str, PeriodConfig] = {
    "1d": PeriodConfig("1h", 24),
    "7d": PeriodConfig("1h", 168),
    "30d": PeriodConfig("1d", 30),
    "3m": PeriodConfig("1d", 90),
    "1y": PeriodConfig("1d", 365),
}

PERIOD_LABELS: dict[str, dict[str, str]] = {
    "ru": {"1d": "1д", "7d": "7д", "30d": "30д", "3m": "3м", "1y": "1г"},
    "en": {"1d": "1D", "7d": "7D", "30d": "30D", "3m": "3M", "1y": "1Y"},
}


def get_period(period: str) -> PeriodConfig:
    """Looks up a period key, raising ValueError for unknown keys."""
    try:
        return TIME_PERIODS[period]
    except KeyError:
        err_msg = f"Unsupported chart period: {period}"
        raise ValueError(err_msg) from None
