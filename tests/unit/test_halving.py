from datetime import datetime, timedelta, timezone

import pytest

from coinboard.halving import (
    END_YEAR,
    HALVING_DATES,
    HALVING_STEPS,
    HalvingCountdown,
    build_step_chart,
    find_next_halving,
    halving_points,
    step_status,
    time_until,
)
from coinboard.types import Countdown, HalvingStatus, HalvingStep


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_schedule_is_consistent() -> None:
    for prev, step in zip(HALVING_STEPS, HALVING_STEPS[1:], strict=False):
        assert step.date > prev.date
        assert step.block - prev.block == 210_000
        assert step.reward_before == prev.reward_after
        assert step.reward_after == step.reward_before / 2


def test_find_next_halving() -> None:
    assert find_next_halving(_utc(2024, 1, 1)) == _utc(2024, 4, 20)
    assert find_next_halving(_utc(2024, 4, 20)) == _utc(2028, 4, 20)
    assert find_next_halving(_utc(2040, 1, 1)) is None


def test_time_until() -> None:
    now = _utc(2024, 4, 18, 10, 30, 15)
    assert time_until(_utc(2024, 4, 20), now) == Countdown(1, 13, 29, 45)
    assert time_until(_utc(2024, 4, 20), _utc(2024, 5, 1)).is_zero


def test_countdown_advances_to_following_halving() -> None:
    countdown = HalvingCountdown(HALVING_DATES)

    state = countdown.tick(_utc(2024, 4, 19, 23, 59, 59))
    assert state.next_date == _utc(2024, 4, 20)
    assert state.remaining == Countdown(0, 0, 0, 1)
    assert not state.expired

    state = countdown.tick(_utc(2024, 4, 20, 0, 0, 1))
    assert state.next_date == _utc(2028, 4, 20)
    assert not state.expired


def test_countdown_expires_after_last_halving() -> None:
    countdown = HalvingCountdown([_utc(2024, 4, 20)])
    state = countdown.tick(_utc(2024, 4, 20) + timedelta(seconds=1))

    assert state.expired
    assert state.next_date is None
    assert state.remaining.is_zero


def test_step_status() -> None:
    step = HalvingStep(2024, _utc(2024, 4, 20), 6.25, 3.125, 840_000)
    assert step_status(step, _utc(2025, 1, 1)) is HalvingStatus.COMPLETED
    assert step_status(step, _utc(2023, 1, 1)) is HalvingStatus.UPCOMING


def test_step_chart_shape() -> None:
    points = build_step_chart(HALVING_STEPS, now=_utc(2025, 1, 1))
    markers = halving_points(points)

    assert len(markers) == len(HALVING_STEPS)
    assert len(points) == 1 + 3 * (len(HALVING_STEPS) - 1) + 1
    assert points[0].year == 2009
    assert points[0].reward == 50
    assert points[-1].year == END_YEAR
    assert points[-1].reward == HALVING_STEPS[-1].reward_after

    keys = [(p.year, -p.reward) for p in points]
    assert keys == sorted(keys)


def test_step_chart_drops_vertically_at_each_halving() -> None:
    points = build_step_chart(HALVING_STEPS, now=_utc(2025, 1, 1))
    at_2024 = [p for p in points if p.year == 2024]

    assert [p.reward for p in at_2024] == [6.25, 6.25, 3.125]
    marker = next(p for p in at_2024 if p.is_halving)
    assert marker.reward_after == 3.125
    assert marker.block == 840_000
    assert marker.status is HalvingStatus.COMPLETED

    marker_2028 = next(p for p in points if p.year == 2028 and p.is_halving)
    assert marker_2028.status is HalvingStatus.UPCOMING


def test_step_chart_carries_reward_over_gaps() -> None:
    steps = (
        HalvingStep(2009, _utc(2009, 1, 3), 50, 50, 0),
        HalvingStep(2012, _utc(2012, 11, 28), 50, 25, 210_000),
        # Deliberately inconsistent: the next step starts from another reward.
        HalvingStep(2016, _utc(2016, 7, 9), 20, 10, 420_000),
    )
    points = build_step_chart(steps, end_year=2020, now=_utc(2025, 1, 1))

    assert [(p.year, p.reward) for p in points if p.year == 2016] == [
        (2016, 25),
        (2016, 20),
        (2016, 20),
        (2016, 10),
    ]
    assert (points[-1].year, points[-1].reward) == (2020, 10)


def test_step_chart_empty() -> None:
    assert build_step_chart(()) == []


@pytest.mark.parametrize("step", HALVING_STEPS)
def test_steps_are_timezone_aware(step: HalvingStep) -> None:
    assert step.date.tzinfo is not None
