import json
from pathlib import Path

import pytest

from coinboard.preferences import PreferenceStore


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_set_get_and_reload(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "prefs.json"
    store = PreferenceStore(path)
    await store.set("crypto", "ETH")

    assert store.get("crypto") == "ETH"
    assert path.exists()

    reloaded = PreferenceStore(path)
    await reloaded.load()
    assert reloaded.get("crypto") == "ETH"
    assert reloaded.get("missing") is None


@pytest.mark.asyncio
async def test_entries_expire(tmp_path: Path) -> None:
    clock = FakeClock()
    store = PreferenceStore(tmp_path / "prefs.json", max_age_s=60, clock=clock)
    await store.set("crypto", "SOL")

    clock.now += 59
    assert store.get("crypto") == "SOL"
    clock.now += 2
    assert store.get("crypto") is None


@pytest.mark.asyncio
async def test_expired_entries_are_not_written(tmp_path: Path) -> None:
    clock = FakeClock()
    path = tmp_path / "prefs.json"
    store = PreferenceStore(path, clock=clock)
    await store.set("old", 1, max_age_s=10)
    clock.now += 20
    await store.set("new", 2)

    assert set(json.loads(path.read_text(encoding="utf-8"))) == {"new"}


@pytest.mark.asyncio
async def test_missing_file_loads_empty(tmp_path: Path) -> None:
    store = PreferenceStore(tmp_path / "absent.json")
    await store.load()
    assert store.get("crypto") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
async def test_corrupt_file_loads_empty(tmp_path: Path, content: str) -> None:
    path = tmp_path / "prefs.json"
    path.write_text(content, encoding="utf-8")

    store = PreferenceStore(path)
    await store.load()
    assert store.get("crypto") is None


@pytest.mark.asyncio
async def test_malformed_entries_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text(
        json.dumps({"crypto": {"value": "BTC", "expires": None}, "bad": "x"}),
        encoding="utf-8",
    )

    store = PreferenceStore(path)
    await store.load()
    assert store.get("crypto") == "BTC"
    assert store.get("bad") is None
