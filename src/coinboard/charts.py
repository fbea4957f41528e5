import random
from collections.abc import Sequence
from datetime import tzinfo

from loguru import logger

from coinboard.adapters.base import PriceSource, PriceSourceError
from coinboard.formatting import format_axis_date
from coinboard.periods import PERIOD_LABELS, TIME_PERIODS, PeriodConfig
from coinboard.types import ChartDataPoint, ChartResponse
from coinboard.utils.time import from_millis, now_ms, to_rfc3339

PLACEHOLDER_MIN_PRICE = 50_000.0
PLACEHOLDER_MAX_PRICE = 100_000.0
# Largest relative move between two placeholder points.
PLACEHOLDER_VOLATILITY = 0.05


class ChartService:
    """Historical price series for the chart view.

    Sources are tried in order and the first non-empty series wins. When
    every source fails, a placeholder random walk is returned together with
    an error message so the chart still has something to draw.
    """

    def __init__(
        self,
        sources: Sequence[PriceSource],
        *,
        locale: str = "ru",
        tz: tzinfo | None = None,
        placeholder_on_failure: bool = True,
        rng: random.Random | None = None,
    ) -> None:
        self.sources = list(sources)
        self.locale = locale
        self.tz = tz
        self.placeholder_on_failure = placeholder_on_failure
        self._rng = rng or random.Random()  # noqa: S311

    async def get_historical_data(
        self, crypto: str, currency: str, period: str
    ) -> ChartResponse:
        """Fetches the close-price series of `crypto` in `currency` for `period`.

        Never raises for source failures; they end up in `ChartResponse.error`.
        """
        config = TIME_PERIODS.get(period)
        if config is None:
            logger.warning(f"Unsupported chart period requested: {period}")
            return ChartResponse(error=f"Unsupported chart period: {period}")

        errors: list[str] = []
        for source in self.sources:
            try:
                points = await source.get_history(crypto, currency, period)
            except PriceSourceError as e:
                logger.warning(f"[{source.venue_name}] History request failed: {e}")
                errors.append(f"{source.venue_name}: {e}")
                continue
            if not points:
                logger.warning(
                    f"[{source.venue_name}] Empty history for "
                    f"{crypto.upper()}/{currency.upper()} ({period})."
                )
                errors.append(f"{source.venue_name}: no data")
                continue
            return ChartResponse(
                data=self._with_labels(points, period), source=source.venue_name
            )

        reason = "; ".join(errors) or "no price sources configured"
        err_msg = (
            f"Failed to load chart data for {crypto.upper()}/{currency.upper()}: {reason}"
        )
        logger.error(err_msg)
        if not self.placeholder_on_failure:
            return ChartResponse(error=err_msg)

        placeholder = generate_placeholder_data(config, self._rng)
        return ChartResponse(
            data=self._with_labels(placeholder, period),
            error=err_msg,
            source="placeholder",
        )

    def _with_labels(
        self, points: Sequence[ChartDataPoint], period: str
    ) -> list[ChartDataPoint]:
        return [
            ChartDataPoint(
                timestamp=p.timestamp,
                price=p.price,
                date=p.date,
                formatted_date=format_axis_date(
                    from_millis(p.timestamp), period, self.locale, self.tz
                ),
            )
            for p in points
        ]

    @staticmethod
    def get_supported_periods() -> list[str]:
        return list(TIME_PERIODS)

    def get_period_label(self, period: str) -> str:
        """The button label for a period; unknown keys are returned as-is."""
        labels = PERIOD_LABELS.get(self.locale, PERIOD_LABELS["ru"])
        return labels.get(period, period)


def generate_placeholder_data(
    config: PeriodConfig,
    rng: random.Random | None = None,
    end_ms: int | None = None,
) -> list[ChartDataPoint]:
    """A random walk of `config.limit` points ending at `end_ms`.

    Prices start between 50 000 and 100 000 and are rounded to cents.
    """
    rng = rng or random.Random()  # noqa: S311
    end_ms = end_ms if end_ms is not None else now_ms()
    step_ms = int(config.interval_delta.total_seconds() * 1000)

    price = rng.uniform(PLACEHOLDER_MIN_PRICE, PLACEHOLDER_MAX_PRICE)
    points = []
    for i in range(config.limit):
        timestamp = end_ms - (config.limit - 1 - i) * step_ms
        points.append(
            ChartDataPoint(
                timestamp=timestamp,
                price=round(price, 2),
                date=to_rfc3339(from_millis(timestamp)),
                formatted_date="",
            )
        )
        price *= 1 + rng.uniform(-PLACEHOLDER_VOLATILITY, PLACEHOLDER_VOLATILITY)
    return points
