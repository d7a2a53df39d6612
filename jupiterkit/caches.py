"""A named set of LRU caches for string keys and values, driven by a config.

The settings of each cache are read from the ``caches`` object of a config
(see :mod:`jupiterkit.cache_settings`). Applying a new config creates new
caches, updates existing ones in place and drops caches which are no longer
configured. If the config has no ``caches`` object at all, or the settings of
a cache are invalid, the current caches are left untouched.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from itertools import islice
from typing import Any

from jupiterkit.cache_settings import CacheSettings, parse_caches_section
from jupiterkit.lru_cache import LruCache

log = logging.getLogger(__name__)

MAX_KEYS = 100
SEPARATOR = "-" * 80 + "\n"


class UnknownCacheError(LookupError):
    """Raised when a cache name is not configured."""


@dataclass(frozen=True)
class ExtendedValue:
    """Result of an extended lookup: ACTIVE, REFRESH and the value (``None`` if absent)."""

    active: bool
    refresh: bool
    value: Any


def _format_size(size: int) -> str:
    amount = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if amount < 1024:
            return f"{size} B" if unit == "B" else f"{amount:.1f} {unit}"
        amount /= 1024
    return f"{amount:.1f} TB"


def _format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    return f"{seconds:g} s"


def _update_cache(name: str, cache: LruCache, settings: CacheSettings) -> None:
    if cache.capacity != settings.size:
        log.info("Updating the size of %s from %s to %s.", name, cache.capacity, settings.size)
        cache.capacity = settings.size

    if cache.max_memory != settings.max_memory:
        log.info(
            "Updating max_memory of %s from %s to %s.",
            name,
            _format_size(cache.max_memory),
            _format_size(settings.max_memory),
        )
        cache.max_memory = settings.max_memory

    if cache.soft_ttl != settings.soft_ttl:
        log.info(
            "Updating soft_ttl of %s from %s to %s.",
            name,
            _format_duration(cache.soft_ttl),
            _format_duration(settings.soft_ttl),
        )
        cache.soft_ttl = settings.soft_ttl
        log.info("Flushing %s due to changed TTL settings...", name)
        cache.flush()

    if cache.hard_ttl != settings.hard_ttl:
        log.info(
            "Updating hard_ttl of %s from %s to %s.",
            name,
            _format_duration(cache.hard_ttl),
            _format_duration(settings.hard_ttl),
        )
        cache.hard_ttl = settings.hard_ttl
        log.info("Flushing %s due to changed TTL settings...", name)
        cache.flush()

    if cache.refresh_interval != settings.refresh_interval:
        log.info(
            "Updating refresh_interval of %s from %s to %s.",
            name,
            _format_duration(cache.refresh_interval),
            _format_duration(settings.refresh_interval),
        )
        cache.refresh_interval = settings.refresh_interval


class CacheSet:
    """Holds the configured caches by name and performs operations on them."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._caches: dict[str, LruCache] = {}

    def configure(self, config: Any) -> None:
        """Creates, updates or drops caches according to the ``caches`` object of ``config``."""
        section = parse_caches_section(config)
        if section is None:
            return

        previous = self._caches
        result: dict[str, LruCache] = {}
        for name, settings in section.items():
            current = previous.pop(name, None)
            if settings is None:
                if current is not None:
                    result[name] = current
                continue
            if current is not None:
                _update_cache(name, current, settings)
                result[name] = current
            else:
                log.info("Creating new cache %s...", name)
                result[name] = LruCache(
                    settings.size,
                    settings.max_memory,
                    settings.soft_ttl,
                    settings.hard_ttl,
                    settings.refresh_interval,
                    clock=self._clock,
                )

        for name in previous:
            log.info("Dropping stale cache %s...", name)

        self._caches = result

    def cache(self, name: str) -> LruCache:
        """Returns the cache called ``name`` or raises :class:`UnknownCacheError`."""
        try:
            return self._caches[name]
        except KeyError:
            raise UnknownCacheError(f"Unknown cache: {name}") from None

    def names(self) -> list[str]:
        """Returns the names of all active caches."""
        return list(self._caches)

    def put(
        self, name: str, key: str, value: str, secondary_keys: Iterable[str] | None = None
    ) -> None:
        """Stores ``value`` for ``key`` in the given cache, optionally with secondary keys."""
        self.cache(name).put(key, value, secondary_keys)

    def get(self, name: str, key: str) -> str | None:
        """Returns the fresh value for ``key`` or ``None``."""
        return self.cache(name).get(key)

    def extended_get(self, name: str, key: str) -> ExtendedValue:
        """Returns ACTIVE, REFRESH and the value; both flags are false if nothing was found."""
        found = self.cache(name).extended_get(key)
        if found is None:
            return ExtendedValue(False, False, None)
        active, refresh, value = found
        return ExtendedValue(active, refresh, value)

    def remove(self, name: str, key: str) -> None:
        """Removes the value for ``key`` from the given cache."""
        self.cache(name).remove(key)

    def remove_by_secondary(self, name: str, secondary_key: str) -> None:
        """Removes all values tagged with ``secondary_key`` from the given cache."""
        self.cache(name).remove_by_secondary(secondary_key)

    def flush(self, name: str) -> None:
        """Wipes all contents of the given cache."""
        self.cache(name).flush()

    def keys(self, name: str, filter: str | None = None) -> list[str]:
        """Returns up to 100 keys of the given cache which contain ``filter``."""
        keys = self.cache(name).keys()
        if filter is not None:
            keys = (key for key in keys if filter in key)
        return list(islice(keys, MAX_KEYS))

    def overview(self) -> str:
        """Renders a table listing all caches with their entry count and memory."""
        lines = [
            "Use 'LRU.STATS <cache>' for detailed metrics.\n\n",
            f"{'Name':<30} {'Num Entries':>12} {'Allocated Memory':>20}\n",
            SEPARATOR,
        ]
        for name, cache in self._caches.items():
            lines.append(
                f"{name:<30} {len(cache):>12} {_format_size(cache.allocated_memory):>20}\n"
            )
        lines.append(SEPARATOR)
        return "".join(lines)

    def stats(self, name: str) -> str:
        """Renders detailed metrics of the given cache."""
        cache = self.cache(name)
        rows = [
            ("Num Entries", f"{len(cache):>20}"),
            ("Max Entries", f"{cache.capacity:>20}"),
            ("Utilization", f"{cache.utilization():>18.2f} %"),
            ("Allocated Memory", f"{_format_size(cache.allocated_memory):>20}"),
            ("Max Memory", f"{_format_size(cache.max_memory):>20}"),
            ("Memory Utilization", f"{cache.memory_utilization():>18.2f} %"),
            ("Total Memory", f"{_format_size(cache.total_allocated_memory()):>20}"),
            ("Reads", f"{cache.reads:>20}"),
            ("Writes", f"{cache.writes:>20}"),
            ("Hit Rate", f"{cache.hit_rate():>18.2f} %"),
            ("Write/Read Ratio", f"{cache.write_read_ratio():>18.2f} %"),
        ]
        return "".join(f"{label:<30} {value}\n" for label, value in rows)