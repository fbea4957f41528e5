from datetime import datetime, timezone

import pytest

from coinboard.utils.time import from_millis, to_datetime, to_rfc3339


@pytest.mark.parametrize(
    "value",
    [1_700_000_000, 1_700_000_000_000, 1_700_000_000_000_000, "2023-11-14T22:13:20Z"],
)
def test_to_datetime_units(value) -> None:
    assert to_datetime(value) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


def test_to_datetime_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        to_datetime("yesterday")
    with pytest.raises(ValueError):
        to_datetime(True)
    with pytest.raises(ValueError):
        to_datetime([1])


def test_rfc3339_round_trip_format() -> None:
    assert to_rfc3339(from_millis(1_700_000_000_500)) == "2023-11-14T22:13:20.500Z"
