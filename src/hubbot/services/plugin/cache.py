from __future__ import annotations
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

from hubbot.config import const

V = TypeVar("V")


@dataclass(slots=True)
class _Entry(Generic[V]):
    value: V
    stored_at: float
    generation: int
    timer: Optional[asyncio.TimerHandle] = None


class TTLCache(Generic[V]):
    """
    Insert-time TTL cache for discovery results.
    - set(key, value) arms a one-shot expiry timer when a loop is running
    - get(key) never renews; entries older than ``ttl`` read as missing
    - the timer only drops the entry it was armed for (generation check)
    """

    def __init__(self, ttl: float = const.CACHE_TTL, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._data: Dict[Hashable, _Entry[V]] = {}
        self._gen = 0

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl:
            self._drop(key, entry.generation)
            return None
        return entry.value

    def set(self, key: Hashable, value: V) -> V:
        self.clear(key)
        self._gen += 1
        entry = _Entry(value=value, stored_at=self._clock(), generation=self._gen)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            entry.timer = loop.call_later(self.ttl, self._drop, key, entry.generation)
        self._data[key] = entry
        return value

    def clear(self, key: Any = None) -> None:
        if key is None:
            for entry in self._data.values():
                if entry.timer is not None:
                    entry.timer.cancel()
            self._data.clear()
            return
        entry = self._data.pop(key, None)
        if entry is not None and entry.timer is not None:
            entry.timer.cancel()

    def _drop(self, key: Hashable, generation: int) -> None:
        entry = self._data.get(key)
        if entry is not None and entry.generation == generation:
            del self._data[key]
            if entry.timer is not None:
                entry.timer.cancel()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._data)
