# jupiterkit

Building blocks for a long-running data service. The package is pure Python
and has no dependencies outside the standard library.

- **`jupiterkit.platform.Platform`** is a small service registry. You register
  a service under its type and look it up with `find`, which returns `None`
  when the service is missing, or with `require`, which raises
  `ServiceUnavailableError`. `terminate()` releases every service and clears
  the `is_running()` flag. Once the platform is terminated, `require` always
  raises.
- **`jupiterkit.lru_cache.LruCache`** is an LRU cache with two limits: the
  number of entries and the memory used. Each entry has a soft TTL, a hard TTL
  and optional secondary keys.
- **`jupiterkit.caches.CacheSet`** is a set of named `LruCache`s. It is
  configured from a mapping, such as a parsed YAML document with a `caches:`
  section, and it renders text reports.
- **`jupiterkit.cache_settings`** parses and checks the settings of each
  cache (`CacheSettings`, `parse_caches_section`).
- **`jupiterkit.repository.Repository`** is a directory of data files. It has
  a registry of loaders and broadcasts file events to its listeners. The
  event types are in **`jupiterkit.repo_files`**: `RepositoryFile`,
  `FileEvent`, `FileEventKind`, `BackgroundEvent` and `BackgroundEventKind`.

## Installation

```
pip install .
```

## LruCache

Durations are given in seconds, or as `datetime.timedelta`. Memory is given
in bytes. The optional `clock` argument returns the current time in seconds
and defaults to `time.monotonic`.

```python
from jupiterkit.lru_cache import LruCache

lru = LruCache(128, 1024, soft_ttl=60, hard_ttl=3600, refresh_interval=2)
lru.put("Foo", "Bar")
assert lru.get("Foo") == "Bar"

lru.put("Baz", "Qux", secondary_keys=["group"])
lru.remove_by_secondary("group")
assert "Baz" not in lru
```

- A string counts as its UTF-8 length in bytes, and so do the key and the
  secondary keys. `bytes` counts as its length. Other objects are measured
  with `allocated_size()` if they have that method, and with
  `sys.getsizeof` otherwise.
- `put` raises `EntryTooLargeError` when one entry alone is larger than
  `max_memory`. When a limit is exceeded, the least recently used entries are
  evicted.
- `get` and `extended_get` mark the entry as most recently used.
- `capacity` and `max_memory` can be set. Lowering either one evicts entries
  at once. `soft_ttl`, `hard_ttl` and `refresh_interval` can also be set, and
  the new values apply to entries stored from then on.
- The cache reports several metrics: `reads`, `writes`, `hit_rate()`,
  `write_read_ratio()`, `utilization()`, `memory_utilization()`,
  `allocated_memory` and `total_allocated_memory()`, which is an estimate.
  `flush()` removes all entries and resets the counters.

### extended_get

`extended_get(key)` returns `None` when there is no entry for the key, or
when the entry is past its hard TTL. Otherwise it returns
`(active, refresh, value)`:

| state of the entry | active | refresh |
|--------------------|--------|---------|
| fresh (within soft TTL) | True | False |
| stale, and no refresh was requested within `refresh_interval` | False | True |
| stale, and a refresh was already requested within `refresh_interval` | True | False |

Only one caller at a time is asked to recompute a stale value. The other
callers keep getting the stale value, reported as active, until the value is
`put` again or `refresh_interval` has passed.

## CacheSet

```python
from jupiterkit.caches import CacheSet

caches = CacheSet()
caches.configure({
    "caches": {
        "test": {
            "size": 10000,
            "max_memory": "16m",
            "soft_ttl": "15m",
            "hard_ttl": "30m",
            "refresh_interval": "10s",
        }
    }
})

caches.put("test", "foo", "bar")
assert caches.get("test", "foo") == "bar"
assert caches.keys("test", "fo") == ["foo"]

result = caches.extended_get("test", "foo")   # ExtendedValue(active, refresh, value)
print(caches.overview())
print(caches.stats("test"))
```

- **Sizes** are an integer with an optional suffix. The suffixes are `k`, `m`,
  `g` and `t`, in powers of 1024, and each may be followed by `b`. A plain `b`
  is also accepted.
- **Durations** are an integer with an optional suffix: `ms`, `s`, `m`, `h`
  or `d`. A duration with no suffix is in seconds.
- `size` must be a positive integer.
- When a cache's settings are invalid, an error is logged. A new cache is not
  created, and an existing cache keeps its old settings.
- When the config has no `caches` object at all, the current caches are kept
  as they are.
- A cache that is no longer listed in the config is dropped.
- If a TTL of an existing cache changes, the cache is flushed.
- `CacheSet.extended_get` always returns an `ExtendedValue`. When nothing is
  found, both flags are `False` and the value is `None`.
- `keys(name, filter=None)` returns at most 100 keys.
- An unknown cache name raises `UnknownCacheError`.

## Platform

```python
from jupiterkit.platform import Platform

class Service:
    value = 42

platform = Platform()
platform.register(Service(), Service)
assert platform.require(Service).value == 42
platform.terminate()
assert platform.find(Service) is None
```

## Repository

```python
from jupiterkit.platform import Platform
from jupiterkit.repository import Repository, create
from jupiterkit.repo_files import FileEvent, FileEventKind, RepositoryFile

platform = Platform()
repository = create(platform, "data")           # registered under Repository
path = repository.resolve("/my-data/test.csv")  # data/my-data/test.csv

repository.register_loader("csv", my_loader)
repository.find_loader("csv")                    # raises UnknownLoaderError if unknown

listener = repository.listener()
repository.send_file_event(FileEvent(FileEventKind.CHANGED, some_file))
event = listener.recv(timeout=2)                 # raises TimeoutError if nothing arrives
```

- The base directory defaults to `repository`. `resolve` and
  `ensure_base_dir` create it when needed.
- Each listener buffers up to `buffer_size` events, 128 by default. When the
  buffer overflows, the oldest events are dropped and counted in
  `listener.lagged`.
- While any listener's buffer is full, `send_file_event` pauses for
  `retry_pause` seconds, up to ten times. After that it sends the event
  anyway.

## What this package does not do

- There is no network server or command protocol. The caches and the
  repository are plain Python objects that you call directly.
- The repository does not scan its directory, download files, store or delete
  files on request, or run loaders. It resolves paths, keeps loaders by name
  and broadcasts the events you send to it. Detecting changes and acting on
  them is left to the code that uses it.
- Config files are not watched or loaded. `CacheSet.configure` takes a mapping
  that is already parsed.

## Running the tests

```
pip install -e .[test]
pytest
```