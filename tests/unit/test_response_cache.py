"""Tests for the in-process response cache."""

from __future__ import annotations

from datetime import timedelta

import pytest

from backend.app.infra.cache import MemoryResponseCache

pytestmark = [pytest.mark.cache]

SLIDING = timedelta(seconds=120)
ABSOLUTE = timedelta(seconds=600)


class FakeTimer:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture()
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture()
def cache(timer: FakeTimer) -> MemoryResponseCache:
    return MemoryResponseCache(timer=timer)


def test_miss_then_hit(cache: MemoryResponseCache) -> None:
    assert cache.try_get("k") == (False, None)

    cache.set("k", ["v"], sliding=SLIDING, absolute=ABSOLUTE)

    assert cache.try_get("k") == (True, ["v"])


def test_cached_none_is_a_hit(cache: MemoryResponseCache) -> None:
    cache.set("k", None, sliding=SLIDING, absolute=ABSOLUTE)

    assert cache.try_get("k") == (True, None)


def test_idle_item_expires_after_sliding_window(
    cache: MemoryResponseCache, timer: FakeTimer
) -> None:
    cache.set("k", "v", sliding=SLIDING, absolute=ABSOLUTE)

    timer.advance(119)
    assert cache.try_get("k") == (True, "v")
    timer.advance(119)
    assert cache.try_get("k") == (True, "v")
    timer.advance(120)
    assert cache.try_get("k") == (False, None)


def test_absolute_window_caps_sliding_refresh(
    cache: MemoryResponseCache, timer: FakeTimer
) -> None:
    cache.set("k", "v", sliding=SLIDING, absolute=ABSOLUTE)

    for _ in range(5):
        timer.advance(100)
        assert cache.try_get("k") == (True, "v")
    timer.advance(100)

    assert cache.try_get("k") == (False, None)


def test_remove_and_clear(cache: MemoryResponseCache) -> None:
    cache.set("a", 1, sliding=SLIDING, absolute=ABSOLUTE)
    cache.set("b", 2, sliding=SLIDING, absolute=ABSOLUTE)

    cache.remove("a")
    cache.remove("missing")

    assert cache.try_get("a") == (False, None)
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0


def test_maxsize_evicts_least_recently_used(timer: FakeTimer) -> None:
    cache = MemoryResponseCache(maxsize=2, timer=timer)
    cache.set("a", 1, sliding=SLIDING, absolute=ABSOLUTE)
    cache.set("b", 2, sliding=SLIDING, absolute=ABSOLUTE)
    cache.try_get("a")

    cache.set("c", 3, sliding=SLIDING, absolute=ABSOLUTE)

    assert cache.try_get("b") == (False, None)
    assert cache.try_get("a") == (True, 1)
    assert cache.try_get("c") == (True, 3)


def test_rejects_non_positive_windows(cache: MemoryResponseCache) -> None:
    with pytest.raises(ValueError):
        cache.set("k", "v", sliding=timedelta(0), absolute=ABSOLUTE)
