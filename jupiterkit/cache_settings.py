"""Settings of named LRU caches as read from the ``caches`` section of a config."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)

_SIZE_UNITS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3, "t": 1024**4}
_DURATION_UNITS = {"": 1.0, "ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, "d": 86400.0}
_NUMBER_WITH_UNIT = re.compile(r"^\s*(\d+)\s*([a-zA-Z]*)\s*$")


class InvalidCacheSettingsError(ValueError):
    """Raised when the settings of a cache are missing or malformed."""


def _split(text: str, what: str) -> tuple[int, str]:
    match = _NUMBER_WITH_UNIT.match(text)
    if match is None:
        raise ValueError(f"Cannot parse {what}: {text!r}")
    return int(match.group(1)), match.group(2).lower()


def _parse_size(text: str) -> int:
    number, unit = _split(text, "size")
    if unit.endswith("b") and unit != "b":
        unit = unit[:-1]
    elif unit == "b":
        unit = ""
    if unit not in _SIZE_UNITS:
        raise ValueError(f"Unknown size suffix in {text!r}")
    return number * _SIZE_UNITS[unit]


def _parse_duration(text: str) -> float:
    number, unit = _split(text, "duration")
    if unit not in _DURATION_UNITS:
        raise ValueError(f"Unknown duration suffix in {text!r}")
    return number * _DURATION_UNITS[unit]


def _text(mapping: Mapping[str, Any], key: str) -> str:
    value = mapping.get(key)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class CacheSettings:
    """Limits and TTLs of one cache; durations are in seconds, memory in bytes."""

    size: int
    max_memory: int
    soft_ttl: float
    hard_ttl: float
    refresh_interval: float

    @classmethod
    def from_mapping(cls, name: str, mapping: Any) -> CacheSettings:
        """Builds settings from a config object, raising on any missing or bad value."""
        if not isinstance(mapping, Mapping):
            mapping = {}

        size = mapping.get("size")
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise InvalidCacheSettingsError(
                f"Not going to create or update {name} as no cache size was given."
            )

        try:
            max_memory = _parse_size(_text(mapping, "max_memory"))
        except ValueError as error:
            raise InvalidCacheSettingsError(
                f"Not going to create or update {name}. Failed to parse 'max_memory': {error}"
            ) from error

        durations = {}
        for field in ("soft_ttl", "hard_ttl", "refresh_interval"):
            try:
                durations[field] = _parse_duration(_text(mapping, field))
            except ValueError as error:
                raise InvalidCacheSettingsError(
                    f"Not going to create or update {name}. Failed to parse '{field}': {error}"
                ) from error

        return cls(size=size, max_memory=max_memory, **durations)


def parse_caches_section(config: Any) -> dict[str, CacheSettings | None] | None:
    """Reads the ``caches`` object of a config.

    Returns ``None`` if the config has no ``caches`` object, so that existing
    caches can be left untouched. Otherwise maps each cache name to its
    settings, or to ``None`` where the settings are invalid.
    """
    section = config.get("caches") if isinstance(config, Mapping) else None
    if not isinstance(section, Mapping):
        log.info("Config does not contain a 'caches' object. Skipping config update.")
        return None

    result: dict[str, CacheSettings | None] = {}
    for raw_name, entry in section.items():
        name = raw_name if isinstance(raw_name, str) else ""
        try:
            result[name] = CacheSettings.from_mapping(name, entry)
        except InvalidCacheSettingsError as error:
            log.error("%s", error)
            result[name] = None
    return result