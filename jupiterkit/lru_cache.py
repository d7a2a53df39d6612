"""A size constrained LRU cache with soft and hard TTLs and secondary keys.

Once the maximal number of entries or the memory limit is exceeded, the least
recently used entries are evicted. Stale entries can be refreshed lazily via
:meth:`LruCache.extended_get`, and entries can be flushed by secondary keys via
:meth:`LruCache.remove_by_secondary`.
"""

from __future__ import annotations

import sys
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from jupiterkit.lru_metrics import CacheMetrics

# Rough per-entry bookkeeping cost (key object, entry record, ordering links).
_ENTRY_OVERHEAD = 128


class EntryTooLargeError(ValueError):
    """Raised when a single entry is larger than the whole cache may be."""


def allocated_size(value: Any) -> int:
    """Returns the approximate number of bytes the payload of ``value`` occupies."""
    if isinstance(value, str):
        return len(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(value)
    size_of = getattr(value, "allocated_size", None)
    if callable(size_of):
        return int(size_of())
    return sys.getsizeof(value)


def _seconds(duration: float | timedelta) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


@dataclass(slots=True)
class _Entry:
    mem_size: int
    soft_deadline: float
    hard_deadline: float
    next_refresh_request: float
    value: Any
    secondary_keys: tuple[str, ...]


class LruCache:
    """Maps string keys to values while keeping within an entry and a memory limit.

    Durations are given in seconds (or as :class:`~datetime.timedelta`); ``clock``
    returns the current time in seconds and defaults to :func:`time.monotonic`.
    """

    def __init__(
        self,
        capacity: int,
        max_memory: int,
        soft_ttl: float | timedelta,
        hard_ttl: float | timedelta,
        refresh_interval: float | timedelta,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._capacity = capacity
        self._max_memory = max_memory
        self._soft_ttl = _seconds(soft_ttl)
        self._hard_ttl = _seconds(hard_ttl)
        self._refresh_interval = _seconds(refresh_interval)
        self._clock = clock
        self._allocated_memory = 0
        self._metrics = CacheMetrics()
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    def put(self, key: str, value: Any, secondary_keys: Iterable[str] | None = None) -> None:
        """Stores ``value`` for ``key``, optionally tagged with secondary keys.

        Raises :class:`EntryTooLargeError` if the entry alone exceeds ``max_memory``.
        """
        secondaries = tuple(secondary_keys) if secondary_keys is not None else ()
        mem_size = (
            len(key.encode("utf-8"))
            + allocated_size(value)
            + sum(len(secondary.encode("utf-8")) for secondary in secondaries)
        )
        if mem_size > self._max_memory:
            raise EntryTooLargeError("The entry to be cached is larger than the whole cache size!")

        now = self._clock()
        entry = _Entry(
            mem_size=mem_size,
            soft_deadline=now + self._soft_ttl,
            hard_deadline=now + self._hard_ttl,
            next_refresh_request=now,
            value=value,
            secondary_keys=secondaries,
        )

        previous = self._entries.pop(key, None)
        if previous is not None:
            self._allocated_memory -= previous.mem_size
        self._entries[key] = entry
        self._allocated_memory += mem_size
        self._metrics.record_write()

        self._enforce_constraints()

    def _enforce_constraints(self) -> None:
        while self._entries and (
            len(self._entries) > self._capacity or self._allocated_memory > self._max_memory
        ):
            _, evicted = self._entries.popitem(last=False)
            self._allocated_memory -= evicted.mem_size

    def _touch(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def get(self, key: str) -> Any | None:
        """Returns the value for ``key``, or ``None`` if absent or past its soft TTL."""
        now = self._clock()
        entry = self._touch(key)
        hit = entry is not None and entry.soft_deadline > now
        self._metrics.record_read(hit)
        return entry.value if hit else None

    def extended_get(self, key: str) -> tuple[bool, bool, Any] | None:
        """Returns ``(active, refresh, value)`` for ``key``, or ``None``.

        Entries past their soft TTL but within their hard TTL are still returned.
        The first caller to see such a stale entry gets ``refresh`` set and
        ``active`` cleared; until the entry is replaced or ``refresh_interval``
        has passed, later callers see it as active without a refresh request.
        """
        now = self._clock()
        entry = self._touch(key)
        if entry is None or entry.hard_deadline <= now:
            self._metrics.record_read(False)
            return None

        self._metrics.record_read(True)
        alive = entry.soft_deadline > now
        refresh = False
        if not alive:
            if entry.next_refresh_request <= now:
                entry.next_refresh_request = now + self._refresh_interval
                refresh = True
            else:
                alive = True
        return alive, refresh, entry.value

    def remove(self, key: str) -> None:
        """Removes the entry for ``key`` if present."""
        self._metrics.record_write()
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._allocated_memory -= entry.mem_size

    def remove_by_secondary(self, secondary_key: str) -> None:
        """Removes every entry tagged with ``secondary_key``."""
        doomed = [
            key for key, entry in self._entries.items() if secondary_key in entry.secondary_keys
        ]
        for key in doomed:
            self.remove(key)

    def keys(self) -> Iterator[str]:
        """Iterates over all keys, least recently used first."""
        return iter(tuple(self._entries))

    def flush(self) -> None:
        """Removes all entries and resets all metrics."""
        self._entries.clear()
        self._allocated_memory = 0
        self._metrics.reset()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def is_empty(self) -> bool:
        """Tells whether the cache holds no entries."""
        return not self._entries

    @property
    def capacity(self) -> int:
        """Maximal number of entries; lowering it evicts entries at once."""
        return self._capacity

    @capacity.setter
    def capacity(self, capacity: int) -> None:
        previous = self._capacity
        self._capacity = capacity
        if previous > capacity:
            self._enforce_constraints()

    @property
    def max_memory(self) -> int:
        """Maximal memory in bytes; lowering it evicts entries at once."""
        return self._max_memory

    @max_memory.setter
    def max_memory(self, max_memory: int) -> None:
        previous = self._max_memory
        self._max_memory = max_memory
        if previous > max_memory:
            self._enforce_constraints()

    @property
    def soft_ttl(self) -> float:
        """Soft time to live in seconds, applied to entries stored from now on."""
        return self._soft_ttl

    @soft_ttl.setter
    def soft_ttl(self, soft_ttl: float | timedelta) -> None:
        self._soft_ttl = _seconds(soft_ttl)

    @property
    def hard_ttl(self) -> float:
        """Hard time to live in seconds, applied to entries stored from now on."""
        return self._hard_ttl

    @hard_ttl.setter
    def hard_ttl(self, hard_ttl: float | timedelta) -> None:
        self._hard_ttl = _seconds(hard_ttl)

    @property
    def refresh_interval(self) -> float:
        """Seconds during which repeated refresh requests are suppressed."""
        return self._refresh_interval

    @refresh_interval.setter
    def refresh_interval(self, refresh_interval: float | timedelta) -> None:
        self._refresh_interval = _seconds(refresh_interval)

    @property
    def allocated_memory(self) -> int:
        """Bytes taken by the keys, values and secondary keys stored."""
        return self._allocated_memory

    def total_allocated_memory(self) -> int:
        """Estimated bytes taken by the cache including its bookkeeping."""
        return (
            self._allocated_memory
            + sys.getsizeof(self._entries)
            + len(self._entries) * _ENTRY_OVERHEAD
        )

    def utilization(self) -> float:
        """Number of entries relative to the capacity, in percent."""
        return len(self._entries) / self._capacity * 100.0

    def memory_utilization(self) -> float:
        """Allocated memory relative to ``max_memory``, in percent."""
        return self._allocated_memory / self._max_memory * 100.0

    def hit_rate(self) -> float:
        """Share of reads that hit an entry, in percent."""
        return self._metrics.hit_rate()

    def write_read_ratio(self) -> float:
        """Share of all operations that were writes, in percent."""
        return self._metrics.write_read_ratio()

    @property
    def reads(self) -> int:
        """Number of reads since the last flush."""
        return self._metrics.reads

    @property
    def writes(self) -> int:
        """Number of writes since the last flush."""
        return self._metrics.writes