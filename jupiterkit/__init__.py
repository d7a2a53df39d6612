"""Service registry, TTL-aware LRU caches and a file repository with change events."""

__version__ = "0.1.0"