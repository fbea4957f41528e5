import pytest

from coinboard.axis import compute_price_axis, dynamic_step, round_down, round_up


@pytest.mark.parametrize(
    ("price_range", "expected"),
    [
        (25_000, 1000),
        (10_000.01, 1000),
        (10_000, 500),
        (6_000, 500),
        (2_000, 100),
        (500, 50),
        (100.5, 50),
        (100, 50),
        (40, 5),
        (0.04, 0.005),
    ],
)
def test_dynamic_step(price_range: float, expected: float) -> None:
    assert dynamic_step(price_range) == pytest.approx(expected)


def test_dynamic_step_flat_series_uses_price() -> None:
    assert dynamic_step(0, reference_price=60_000) == pytest.approx(100)
    assert dynamic_step(0, reference_price=0.5) == pytest.approx(0.001)
    assert dynamic_step(0) == 1.0


def test_rounding_helpers_remove_float_noise() -> None:
    assert round_down(0.31, 0.1) == 0.3
    assert round_up(0.21, 0.1) == 0.3


def test_axis_for_bitcoin_year() -> None:
    axis = compute_price_axis([38_500.0, 52_000.0, 73_700.0])

    # Range 35 200, padding 3 520, step 1000.
    assert axis.min_price == 38_500.0
    assert axis.max_price == 73_700.0
    assert axis.step == 1000
    assert axis.lower == 34_000
    assert axis.upper == 78_000


def test_axis_for_cheap_coin() -> None:
    axis = compute_price_axis([0.52, 0.55, 0.56])

    assert axis.step == pytest.approx(0.005)
    assert axis.lower == pytest.approx(0.515)
    assert axis.upper == pytest.approx(0.565)
    assert axis.lower < axis.min_price < axis.max_price < axis.upper


def test_axis_for_flat_series() -> None:
    axis = compute_price_axis([1.0, 1.0, 1.0])

    assert axis.upper > axis.lower
    assert axis.lower <= 1.0 <= axis.upper


def test_axis_empty_raises() -> None:
    with pytest.raises(ValueError, match="empty"):
        compute_price_axis([])
