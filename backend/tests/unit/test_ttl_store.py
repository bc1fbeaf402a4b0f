"""
Unit tests for TTLStore.
"""

import threading
from datetime import timedelta

import pytest
from freezegun import freeze_time

from backend.src.utils.ttl_store import TTLStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return TTLStore(clock=clock)


class TestPutGet:
    def test_value_visible_until_expiry(self, store, clock):
        store.put("k", "v", ttl=10)
        clock.advance(9.9)
        assert store.get("k") == "v"
        assert "k" in store
        clock.advance(0.1)
        assert store.get("k") is None
        assert "k" not in store

    def test_put_replaces_and_resets_expiry(self, store, clock):
        store.put("k", 1, ttl=5)
        clock.advance(4)
        store.put("k", 2, ttl=5)
        clock.advance(4)
        assert store.get("k") == 2

    def test_non_positive_ttl_rejected(self, store):
        with pytest.raises(ValueError):
            store.put("k", "v", ttl=0)

    def test_default_for_missing(self, store):
        assert store.get("missing", default="d") == "d"


class TestConsume:
    def test_consume_returns_once(self, store):
        store.put("state", {"redirect": "/"}, ttl=60)
        assert store.consume("state") == {"redirect": "/"}
        assert store.consume("state") is None

    def test_consume_expired(self, store, clock):
        store.put("state", "x", ttl=1)
        clock.advance(2)
        assert store.consume("state", default="gone") == "gone"

    def test_concurrent_consumers_get_value_once(self):
        store = TTLStore()
        store.put("state", "value", ttl=60)
        results = []

        def worker():
            results.append(store.consume("state"))

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("value") == 1


class TestIncr:
    def test_fixed_window(self, store, clock):
        assert store.incr("ip", ttl=60) == 1
        clock.advance(30)
        assert store.incr("ip", ttl=60) == 2
        clock.advance(30)
        # Window started at the first increment
        assert store.incr("ip", ttl=60) == 1

    def test_concurrent_increments_are_not_lost(self):
        store = TTLStore()

        def worker():
            for _ in range(100):
                store.incr("counter", ttl=60)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get("counter") == 800


class TestHousekeeping:
    def test_sweep_and_len(self, store, clock):
        store.put("short", 1, ttl=1)
        store.put("long", 2, ttl=100)
        assert len(store) == 2
        clock.advance(5)
        assert len(store) == 1
        assert store.sweep() == 1
        assert store.sweep() == 0

    def test_writes_sweep_keys_never_read_again(self, clock):
        store = TTLStore(clock=clock, sweep_interval=60)
        for n in range(200):
            store.incr(("auth-failures", f"10.0.{n // 256}.{n % 256}"), ttl=900)
        assert len(store._entries) == 200

        clock.advance(901)
        store.incr(("auth-failures", "10.9.9.9"), ttl=900)
        assert len(store._entries) == 1

    def test_writes_sweep_at_most_once_per_interval(self, clock):
        store = TTLStore(clock=clock, sweep_interval=60)
        store.put("short", 1, ttl=1)
        clock.advance(30)
        store.put("other", 2, ttl=100)
        # Expired but the interval has not elapsed yet
        assert len(store._entries) == 2
        clock.advance(30)
        store.put("third", 3, ttl=100)
        assert "short" not in store._entries

    def test_periodic_sweep_can_be_disabled(self, clock):
        store = TTLStore(clock=clock, sweep_interval=None)
        store.put("short", 1, ttl=1)
        clock.advance(3600)
        store.put("other", 2, ttl=10)
        assert len(store._entries) == 2
        assert store.sweep() == 1

    def test_pop_and_clear(self, store):
        store.put("a", 1, ttl=10)
        store.put("b", 2, ttl=10)
        store.pop("a")
        store.pop("never-there")
        assert "a" not in store
        store.clear()
        assert len(store) == 0


class TestRealClock:
    def test_expiry_follows_monotonic_time(self):
        with freeze_time("2026-03-01 12:00:00") as frozen:
            store = TTLStore()
            store.put("k", "v", ttl=30)
            frozen.tick(timedelta(seconds=29))
            assert store.get("k") == "v"
            frozen.tick(timedelta(seconds=2))
            assert store.get("k") is None
