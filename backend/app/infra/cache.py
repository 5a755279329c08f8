"""In-process response cache with sliding + absolute expiration."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import timedelta
from threading import RLock
from typing import Any, Callable, Hashable, Protocol

from cachetools import TLRUCache

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 10_000


class ResponseCache(Protocol):  # pragma: no cover - interface only
    """Key/value cache consumed by domain services."""

    def try_get(self, key: str) -> tuple[bool, Any]: ...

    def set(
        self,
        key: str,
        value: Any,
        *,
        sliding: timedelta,
        absolute: timedelta,
    ) -> None: ...

    def remove(self, key: str) -> None: ...


@dataclass
class _CacheSlot:
    value: Any
    sliding_seconds: float
    absolute_seconds: float
    sliding_deadline: float


class MemoryResponseCache(ResponseCache):
    """Thread-safe cache backed by :class:`cachetools.TLRUCache`.

    The absolute deadline is fixed when an item is stored and enforced by
    ``TLRUCache``. The sliding deadline is pushed forward on every hit; an
    item that sits idle past it is dropped on the next read.
    """

    def __init__(
        self,
        *,
        maxsize: int = DEFAULT_MAX_ENTRIES,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timer = timer
        self._lock = RLock()
        self._entries: TLRUCache = TLRUCache(
            maxsize=maxsize,
            ttu=self._absolute_deadline,
            timer=timer,
        )

    @staticmethod
    def _absolute_deadline(_key: Hashable, slot: _CacheSlot, now: float) -> float:
        return now + slot.absolute_seconds

    def try_get(self, key: str) -> tuple[bool, Any]:
        with self._lock:
            slot = self._entries.get(key)
            if slot is None:
                return False, None
            now = self._timer()
            if now >= slot.sliding_deadline:
                self._entries.pop(key, None)
                logger.debug("response_cache_idle_expired", extra={"key": key})
                return False, None
            slot.sliding_deadline = now + slot.sliding_seconds
            return True, slot.value

    def set(
        self,
        key: str,
        value: Any,
        *,
        sliding: timedelta,
        absolute: timedelta,
    ) -> None:
        sliding_seconds = sliding.total_seconds()
        absolute_seconds = absolute.total_seconds()
        if sliding_seconds <= 0 or absolute_seconds <= 0:
            raise ValueError("cache expiration windows must be positive")
        with self._lock:
            slot = _CacheSlot(
                value=value,
                sliding_seconds=sliding_seconds,
                absolute_seconds=absolute_seconds,
                sliding_deadline=self._timer() + sliding_seconds,
            )
            self._entries[key] = slot

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)


__all__ = ["MemoryResponseCache", "ResponseCache"]
