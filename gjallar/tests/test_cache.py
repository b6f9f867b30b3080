"""Tests for the TTL cache."""

import pytest

from gjallar.cache import TTLCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_cache_key_encodes_every_part() -> None:
    """Keys join account, service, operation, region and identifiers."""

    assert cache_key("111122223333", "sqs", "ListQueues", "us-east-1") == "111122223333-sqs-ListQueues-us-east-1"
    assert cache_key("1", "lambda", "GetPolicy", "eu-west-1", "fn", 2) == "1-lambda-GetPolicy-eu-west-1-fn-2"


def test_set_then_get_round_trip() -> None:
    """A value set is immediately readable."""

    cache = TTLCache()
    cache.set("k", ["a", "b"])

    assert cache.get("k") == (["a", "b"], True)
    assert cache.get("missing") == (None, False)


def test_get_or_fetch_calls_fetcher_once_within_ttl() -> None:
    """A second lookup with the same key does not invoke the fetcher again."""

    cache = TTLCache()
    calls = []

    def fetch():
        calls.append(1)
        return {"Queues": ["q1"]}

    first = cache.get_or_fetch("k", fetch)
    second = cache.get_or_fetch("k", fetch)

    assert first == second == {"Queues": ["q1"]}
    assert len(calls) == 1
    assert cache.stats["hits"] == 1


def test_entries_expire_after_ttl() -> None:
    """Expired entries miss and are fetched again."""

    clock = FakeClock()
    cache = TTLCache(default_ttl=60, clock=clock)
    calls = []
    cache.get_or_fetch("k", lambda: calls.append(1) or "v")

    clock.now += 59
    assert cache.get("k") == ("v", True)

    clock.now += 1
    assert cache.get("k") == (None, False)
    cache.get_or_fetch("k", lambda: calls.append(1) or "v")
    assert len(calls) == 2


def test_per_entry_ttl_overrides_default() -> None:
    """An explicit ttl overrides the default; expired entries are dropped on read."""

    clock = FakeClock()
    cache = TTLCache(default_ttl=3600, clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2)

    clock.now += 10
    assert cache.get("short") == (None, False)
    assert cache.get("long") == (2, True)
    assert len(cache) == 1


def test_failed_fetch_is_not_cached() -> None:
    """Exceptions from the fetcher propagate and leave no entry behind."""

    cache = TTLCache()

    def fail():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        cache.get_or_fetch("k", fail)
    assert len(cache) == 0


def test_invalid_ttl_rejected() -> None:
    """The default TTL must be positive."""

    with pytest.raises(ValueError):
        TTLCache(default_ttl=0)
