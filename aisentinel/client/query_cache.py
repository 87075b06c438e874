"""
Shared request cache.

* One in-flight load per key: concurrent callers wait on the same future
  instead of issuing a second request.
* A generation counter stands in for "reload the page". ``new_generation``
  drops every cached entry, and a load that started under an older
  generation still answers its waiters but is never stored.
"""
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from aisentinel.core.logger import get_logger

logger = get_logger("aisentinel.client.query_cache")


@dataclass
class _Entry:
    value: Any
    generation: int
    fetched_at: float


@dataclass
class _InFlight:
    generation: int
    future: Future = field(default_factory=Future)


class QueryCache:
    def __init__(self, stale_time: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.stale_time = stale_time
        self.clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self._entries: Dict[Hashable, _Entry] = {}
        self._inflight: Dict[Hashable, _InFlight] = {}

    @property
    def generation(self) -> int:
        return self._generation

    def _is_fresh(self, entry: _Entry) -> bool:
        if entry.generation != self._generation:
            return False
        if self.stale_time is None:
            return True
        return self.clock() - entry.fetched_at < self.stale_time

    def peek(self, key: Hashable) -> Tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                return True, entry.value
            return False, None

    def is_fetching(self, key: Hashable) -> bool:
        with self._lock:
            inflight = self._inflight.get(key)
            return inflight is not None and inflight.generation == self._generation

    def fetch(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                return entry.value

            inflight = self._inflight.get(key)
            if inflight is not None and inflight.generation == self._generation:
                owner = False
            else:
                inflight = _InFlight(self._generation)
                self._inflight[key] = inflight
                owner = True

        if not owner:
            return inflight.future.result()

        try:
            value = loader()
        except BaseException as e:
            with self._lock:
                if self._inflight.get(key) is inflight:
                    del self._inflight[key]
            inflight.future.set_exception(e)
            raise

        with self._lock:
            attached = self._inflight.get(key) is inflight
            if attached:
                del self._inflight[key]
            if attached and inflight.generation == self._generation:
                self._entries[key] = _Entry(value, inflight.generation, self.clock())
            else:
                logger.info(f"STALE RESULT DISCARDED | key={key} | generation={inflight.generation} | current={self._generation}")
        inflight.future.set_result(value)
        return value

    def invalidate(self, key: Hashable):
        """Forget one key; a load already running for it is not reused."""
        with self._lock:
            self._entries.pop(key, None)
            inflight = self._inflight.pop(key, None)
        if inflight is not None:
            logger.debug(f"IN-FLIGHT LOAD DETACHED | key={key}")

    def new_generation(self) -> int:
        with self._lock:
            self._generation += 1
            self._entries.clear()
            return self._generation
