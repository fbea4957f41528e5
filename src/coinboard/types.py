"""Data models shared between the price sources, services and front ends."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


@dataclass(frozen=True)
class CryptoPrice:
    """A 24h ticker snapshot for one crypto priced in one currency."""

    id: str
    symbol: str
    name: str
    current_price: float
    price_change_24h: float
    price_change_percentage_24h: float
    last_updated: str
    source: str = ""


@dataclass(frozen=True)
class ChartDataPoint:
    """A single close price on a chart series."""

    timestamp: int  # milliseconds since the Unix epoch
    price: float
    date: str
    formatted_date: str


@dataclass
class ChartResponse:
    """The outcome of a historical data request.

    `error` may be set even when `data` is non-empty (placeholder series).
    """

    data: list[ChartDataPoint] = field(default_factory=list)
    error: str | None = None
    source: str = ""


@dataclass(frozen=True)
class FiatOption:
    code: str
    symbol: str
    label: str


@dataclass(frozen=True)
class RouteLeg:
    """One exchange symbol on a pricing route.

    An inverted leg is quoted the other way round (e.g. EURUSDT when pricing
    in EUR through USDT), so its price contributes as 1 / price.
    """

    symbol: str
    base: str
    quote: str
    inverted: bool = False


@dataclass(frozen=True)
class SymbolRoute:
    crypto: str
    fiat: str
    legs: tuple[RouteLeg, ...]

    @property
    def symbol(self) -> str:
        """A display identifier for the route, e.g. 'TONUSDT' or 'TONUSDT*USDTUAH'."""
        return "*".join(leg.symbol for leg in self.legs)

    @property
    def is_direct(self) -> bool:
        return len(self.legs) == 1


class HalvingStatus(StrEnum):
    COMPLETED = "completed"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class HalvingStep:
    year: int
    date: datetime
    reward_before: float
    reward_after: float
    block: int


@dataclass(frozen=True)
class StepPoint:
    """A vertex of the block-reward step line."""

    year: int
    reward: float
    date: datetime
    block: int
    status: HalvingStatus
    is_halving: bool
    reward_after: float | None = None


@dataclass(frozen=True)
class Countdown:
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @property
    def is_zero(self) -> bool:
        return not (self.days or self.hours or self.minutes or self.seconds)


@dataclass(frozen=True)
class PriceAxis:
    min_price: float
    max_price: float
    lower: float
    upper: float
    step: float
