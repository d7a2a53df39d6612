import pytest

from jupiterkit.caches import CacheSet, ExtendedValue, UnknownCacheError


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _config(**overrides):
    settings = {
        "size": 10000,
        "max_memory": "16m",
        "soft_ttl": "15m",
        "hard_ttl": "30m",
        "refresh_interval": "10s",
    }
    settings.update(overrides)
    return {"caches": {"test": settings}}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def caches(clock):
    cache_set = CacheSet(clock=clock)
    cache_set.configure(_config())
    return cache_set


def test_put_get_keys_remove(caches):
    caches.put("test", "foo", "bar")
    assert caches.get("test", "foo") == "bar"
    assert caches.keys("test") == ["foo"]
    assert caches.keys("test", "fo") == ["foo"]
    assert caches.keys("test", "xx") == []
    caches.remove("test", "foo")
    assert caches.get("test", "foo") is None


def test_puts_removes(caches):
    caches.put("test", "foo", "bar", ["A"])
    caches.put("test", "foo1", "bar1", ["A", "B"])
    caches.put("test", "foo2", "bar2", ["B"])
    caches.remove_by_secondary("test", "A")
    assert caches.keys("test") == ["foo2"]
    caches.remove_by_secondary("test", "B")
    assert caches.get("test", "foo2") is None


def test_put_get_xget(caches, clock):
    caches.put("test", "foo", "bar")
    clock.advance(16 * 60)
    assert caches.get("test", "foo") is None
    assert caches.extended_get("test", "foo") == ExtendedValue(False, True, "bar")
    assert caches.extended_get("test", "foo") == ExtendedValue(True, False, "bar")
    clock.advance(12)
    assert caches.extended_get("test", "foo") == ExtendedValue(False, True, "bar")
    clock.advance(16 * 60)
    assert caches.extended_get("test", "foo") == ExtendedValue(False, False, None)


def test_put_flush(caches):
    caches.put("test", "foo", "bar")
    caches.flush("test")
    assert caches.get("test", "foo") is None
    assert len(caches.cache("test")) == 0


def test_stats(caches):
    caches.put("test", "foo", "bar")
    overview = caches.overview()
    assert overview.startswith("Use 'LRU.STATS <cache>' for detailed metrics.")
    assert any(line.split()[:2] == ["test", "1"] for line in overview.splitlines())
    details = caches.stats("test").splitlines()
    assert len(details) == 11
    assert details[0].split() == ["Num", "Entries", "1"]
    assert details[1].split() == ["Max", "Entries", "10000"]


def test_keys_limited_to_one_hundred(caches):
    for index in range(150):
        caches.put("test", f"key{index}", "v")
    assert len(caches.keys("test")) == 100
    assert caches.keys("test")[0] == "key0"


def test_unknown_cache_raises(caches):
    with pytest.raises(UnknownCacheError, match="Unknown cache: nope"):
        caches.get("nope", "foo")
    with pytest.raises(UnknownCacheError):
        caches.stats("nope")


def test_missing_caches_section_keeps_caches(caches):
    caches.put("test", "foo", "bar")
    caches.configure({"server": {"port": 1503}})
    assert caches.names() == ["test"]
    assert caches.get("test", "foo") == "bar"


def test_invalid_settings_keep_existing_cache(caches):
    caches.put("test", "foo", "bar")
    caches.configure(_config(size=0))
    assert caches.get("test", "foo") == "bar"
    assert caches.cache("test").capacity == 10000


def test_invalid_settings_do_not_create_cache(clock):
    cache_set = CacheSet(clock=clock)
    cache_set.configure(_config(max_memory="lots"))
    assert cache_set.names() == []


def test_unconfigured_cache_is_dropped(caches):
    caches.configure({"caches": {"other": _config()["caches"]["test"]}})
    assert caches.names() == ["other"]
    with pytest.raises(UnknownCacheError):
        caches.cache("test")


def test_changed_ttl_flushes_cache(caches):
    caches.put("test", "foo", "bar")
    caches.configure(_config(soft_ttl="10m"))
    assert caches.cache("test").soft_ttl == 600
    assert caches.get("test", "foo") is None


def test_unchanged_settings_keep_contents(caches):
    caches.put("test", "foo", "bar")
    caches.configure(_config())
    assert caches.get("test", "foo") == "bar"


def test_shrinking_size_evicts_entries(caches):
    for key in ("a", "b", "c", "d"):
        caches.put("test", key, "v")
    caches.configure(_config(size=2))
    assert caches.cache("test").capacity == 2
    assert caches.keys("test") == ["c", "d"]


def test_changed_refresh_interval_keeps_contents(caches):
    caches.put("test", "foo", "bar")
    caches.configure(_config(refresh_interval="30s"))
    assert caches.cache("test").refresh_interval == 30
    assert caches.get("test", "foo") == "bar"