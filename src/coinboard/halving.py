"""Bitcoin halving schedule, countdown and block-reward step chart."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from coinboard.types import Countdown, HalvingStatus, HalvingStep, StepPoint

# The genesis block followed by each halving. Dates from 2028 on are
# projections; the reward halves at every step.
HALVING_STEPS: tuple[HalvingStep, ...] = (
    HalvingStep(2009, datetime(2009, 1, 3, tzinfo=timezone.utc), 50.0, 50.0, 0),
    HalvingStep(2012, datetime(2012, 11, 28, tzinfo=timezone.utc), 50.0, 25.0, 210_000),
    HalvingStep(2016, datetime(2016, 7, 9, tzinfo=timezone.utc), 25.0, 12.5, 420_000),
    HalvingStep(2020, datetime(2020, 5, 11, tzinfo=timezone.utc), 12.5, 6.25, 630_000),
    HalvingStep(2024, datetime(2024, 4, 20, tzinfo=timezone.utc), 6.25, 3.125, 840_000),
    HalvingStep(2028, datetime(2028, 4, 20, tzinfo=timezone.utc), 3.125, 1.5625, 1_050_000),
    HalvingStep(2032, datetime(2032, 4, 20, tzinfo=timezone.utc), 1.5625, 0.78125, 1_260_000),
    HalvingStep(2036, datetime(2036, 4, 20, tzinfo=timezone.utc), 0.78125, 0.390625, 1_470_000),
)

HALVING_DATES: tuple[datetime, ...] = tuple(step.date for step in HALVING_STEPS)

# The step line is extended past the last listed halving up to this year.
END_YEAR = 2039


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_next_halving(
    now: datetime | None = None, dates: Sequence[datetime] = HALVING_DATES
) -> datetime | None:
    """The first scheduled date strictly after `now`, or None if all have passed."""
    now = now or _utcnow()
    return next((d for d in dates if d > now), None)


def time_until(target: datetime, now: datetime | None = None) -> Countdown:
    """Splits the time left until `target` into days, hours, minutes, seconds.

    A target that is not in the future yields an all-zero countdown.
    """
    now = now or _utcnow()
    remaining = int((target - now).total_seconds())
    if remaining <= 0:
        return Countdown()
    days, rest = divmod(remaining, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes, seconds = divmod(rest, 60)
    return Countdown(days, hours, minutes, seconds)


@dataclass(frozen=True)
class CountdownState:
    next_date: datetime | None
    remaining: Countdown
    expired: bool


class HalvingCountdown:
    """Tracks the countdown to the next halving, one tick at a time.

    When the tracked halving passes, the countdown moves on to the following
    one; it only reports `expired` once no future date is left.
    """

    def __init__(self, dates: Sequence[datetime] = HALVING_DATES) -> None:
        self._dates = tuple(sorted(dates))
        self._target: datetime | None = None
        self._started = False

    @property
    def target(self) -> datetime | None:
        return self._target

    def tick(self, now: datetime | None = None) -> CountdownState:
        now = now or _utcnow()
        if not self._started or (self._target is not None and self._target <= now):
            previous = self._target
            self._target = find_next_halving(now, self._dates)
            self._started = True
            if previous is not None and self._target != previous:
                logger.info(f"Halving of {previous:%Y-%m-%d} reached; next: {self._target}")

        if self._target is None:
            return CountdownState(None, Countdown(), expired=True)
        return CountdownState(self._target, time_until(self._target, now), expired=False)


def step_status(step: HalvingStep, now: datetime | None = None) -> HalvingStatus:
    now = now or _utcnow()
    return HalvingStatus.COMPLETED if step.date <= now else HalvingStatus.UPCOMING


def build_step_chart(
    steps: Sequence[HalvingStep] = HALVING_STEPS,
    end_year: int = END_YEAR,
    now: datetime | None = None,
) -> list[StepPoint]:
    """Builds the vertices of the block-reward step line.

    For each halving there is a point at the old reward (the line arriving),
    a halving marker at the same spot carrying the new reward for tooltips,
    and a point at the new reward right after the drop. When the next step
    does not start on that reward, the line is carried to the next halving's
    year first. The last step runs on to `end_year`. Points are ordered by
    year, higher reward first, so a plain polyline drops vertically at each
    halving.
    """
    if not steps:
        return []
    now = now or _utcnow()

    def point(
        step: HalvingStep,
        year: int,
        reward: float,
        is_halving: bool,
        reward_after: float | None = None,
    ) -> StepPoint:
        return StepPoint(
            year=year,
            reward=reward,
            date=step.date,
            block=step.block,
            status=step_status(step, now),
            is_halving=is_halving,
            reward_after=reward_after,
        )

    first = steps[0]
    data = [point(first, first.year, first.reward_before, is_halving=True)]

    for i, step in enumerate(steps[1:], start=1):
        next_step = steps[i + 1] if i + 1 < len(steps) else None

        has_before_point = any(
            p.year == step.year and p.reward == step.reward_before for p in data
        )
        if not has_before_point:
            data.append(point(step, step.year, step.reward_before, is_halving=False))

        data.append(
            point(
                step,
                step.year,
                step.reward_before,
                is_halving=True,
                reward_after=step.reward_after,
            )
        )
        data.append(point(step, step.year, step.reward_after, is_halving=False))

        if next_step is None:
            data.append(point(step, end_year, step.reward_after, is_halving=False))
        elif step.reward_after != next_step.reward_before:
            data.append(point(step, next_step.year, step.reward_after, is_halving=False))

    return sorted(data, key=lambda p: (p.year, -p.reward))


def halving_points(points: Sequence[StepPoint]) -> list[StepPoint]:
    """The markers of the step chart, one per listed step."""
    return [p for p in points if p.is_halving]
