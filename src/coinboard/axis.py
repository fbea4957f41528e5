"""Y-axis scaling for price charts."""

import math
from collections.abc import Sequence

from coinboard.types import PriceAxis

PADDING_RATIO = 0.1

# (range threshold, step): the first threshold the range exceeds wins.
STEP_THRESHOLDS: tuple[tuple[float, float], ...] = (
    (10_000, 1000),
    (5_000, 500),
    (1_000, 100),
    (100, 50),
)


def dynamic_step(price_range: float, reference_price: float = 0.0) -> float:
    """Picks a rounding step for the axis bounds from the visible price range.

    Ranges above 100 use fixed steps. Narrower ranges (cheap coins, calm
    days) use half of the range's order of magnitude, so a 0.04 range on a
    0.5 coin rounds to 0.005 rather than to 50. A flat series has no range,
    so the step comes from the price itself.
    """
    for threshold, step in STEP_THRESHOLDS:
        if price_range > threshold:
            return step
    if price_range > 0:
        return 10 ** math.floor(math.log10(price_range)) / 2
    if reference_price > 0:
        return 10 ** math.floor(math.log10(reference_price)) / 100
    return 1.0


def _clean(value: float, step: float) -> float:
    """Rounds away float noise such as 0.30000000000000004."""
    digits = max(0, -math.floor(math.log10(step))) + 2
    return round(value, digits)


def round_down(value: float, step: float) -> float:
    return _clean(math.floor(value / step) * step, step)


def round_up(value: float, step: float) -> float:
    return _clean(math.ceil(value / step) * step, step)


def compute_price_axis(prices: Sequence[float]) -> PriceAxis:
    """Computes padded, rounded y-axis bounds for a price series.

    Raises:
        ValueError: If `prices` is empty.
    """
    if not prices:
        err_msg = "Cannot scale an axis for an empty price series."
        raise ValueError(err_msg)

    min_price = min(prices)
    max_price = max(prices)
    price_range = max_price - min_price
    padding = price_range * PADDING_RATIO
    step = dynamic_step(price_range, max(abs(min_price), abs(max_price)))

    lower = round_down(min_price - padding, step)
    upper = round_up(max_price + padding, step)
    if upper <= lower:
        upper = _clean(lower + step, step)

    return PriceAxis(
        min_price=min_price,
        max_price=max_price,
        lower=lower,
        upper=upper,
        step=step,
    )
