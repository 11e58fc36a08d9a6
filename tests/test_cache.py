"""Tests for the shared stock cache and the TTL cache."""

import asyncio
import threading
import time

import pytest

from stockcrawler.cache import ReadWriteLock, SharedCache, TtlCache
from stockcrawler.errors import CacheLockError, CrawlerErrorCode
from stockcrawler.models.stock import StockRecord


class TestReadWriteLock:
    def test_many_readers(self):
        lock = ReadWriteLock()
        assert lock.acquire_read(0.1)
        assert lock.acquire_read(0.1)
        lock.release_read()
        lock.release_read()

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        assert lock.acquire_write(0.1)
        assert not lock.acquire_read(0.05)
        lock.release_write()
        assert lock.acquire_read(0.1)
        lock.release_read()

    def test_reader_excludes_writer(self):
        lock = ReadWriteLock()
        assert lock.acquire_read(0.1)
        assert not lock.acquire_write(0.05)
        lock.release_read()
        assert lock.acquire_write(0.1)
        lock.release_write()


class TestSharedCache:
    def test_apply_and_read(self, sample_stocks):
        cache = SharedCache()
        assert cache.apply_updates(sample_stocks) == 3
        assert len(cache) == 3
        assert cache.get_snapshot("2330").name == "台積電"
        assert cache.get_snapshot("9999") is None

    def test_read_all_is_a_copy(self, sample_stocks):
        cache = SharedCache()
        cache.apply_updates(sample_stocks)
        snapshot = cache.read_all()
        snapshot["2330"] = StockRecord("2330", "changed")
        del snapshot["1101"]
        assert cache.get_snapshot("2330").name == "台積電"
        assert cache.get_snapshot("1101") is not None

    def test_update_replaces_by_symbol(self, sample_stocks):
        cache = SharedCache()
        cache.apply_updates(sample_stocks)
        cache.apply_updates([StockRecord("2330", "台積電", suspend_listing=True)])
        assert len(cache) == 3
        assert cache.get_snapshot("2330").suspend_listing

    def test_rejects_wrong_type_before_locking(self, sample_stocks):
        cache = SharedCache()
        with pytest.raises(TypeError):
            cache.apply_updates([sample_stocks[0], {"stock_symbol": "2330"}])
        assert len(cache) == 0
        assert not cache.poisoned

    def test_write_timeout(self, sample_stocks):
        cache = SharedCache(lock_timeout=0.05)
        assert cache._lock.acquire_read(0.1)
        try:
            with pytest.raises(CacheLockError) as exc_info:
                cache.apply_updates(sample_stocks)
        finally:
            cache._lock.release_read()
        assert exc_info.value.code == CrawlerErrorCode.LOCK_TIMEOUT
        assert not exc_info.value.fatal
        # a timeout does not poison; the next write goes through
        assert cache.apply_updates(sample_stocks) == 3

    def test_failed_write_poisons(self, sample_stocks):
        cache = SharedCache()
        cache.apply_updates(sample_stocks)
        with pytest.raises(CacheLockError) as exc_info:
            with cache._writing():
                raise RuntimeError("boom")
        assert exc_info.value.fatal
        assert cache.poisoned
        for op in (cache.read_all, lambda: cache.get_snapshot("2330"), lambda: cache.apply_updates(sample_stocks)):
            with pytest.raises(CacheLockError) as later:
                op()
            assert later.value.fatal

    def test_concurrent_readers_and_writer(self, sample_stocks):
        cache = SharedCache(lock_timeout=5)
        cache.apply_updates(sample_stocks)
        errors = []

        def reader():
            try:
                for _ in range(200):
                    snapshot = cache.read_all()
                    assert len(snapshot) in (3, 4)
            except Exception as exc:  # collected for the assertion below
                errors.append(exc)

        def writer():
            for i in range(50):
                cache.apply_updates([StockRecord("3008", f"大立光{i}")])

        threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=writer)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert not errors
        assert cache.get_snapshot("3008").name == "大立光49"

    def test_load_from_store(self, gateway, sample_stocks):
        async def scenario():
            for stock in sample_stocks:
                await gateway.upsert(stock)
            cache = SharedCache()
            count = await cache.load(gateway)
            return cache, count

        cache, count = asyncio.run(scenario())
        assert count == 3
        assert set(cache.read_all()) == {"1101", "2330", "2412"}


class TestTtlCache:
    def test_expiry(self, fake_clock):
        cache = TtlCache(ttl_seconds=60, clock=fake_clock)
        cache.put("k", "v")
        fake_clock.advance(30)
        assert cache.get_or_none("k") == "v"
        fake_clock.advance(31)
        assert cache.get_or_none("k") is None
        assert len(cache) == 0

    def test_expires_exactly_at_ttl(self, fake_clock):
        cache = TtlCache(ttl_seconds=60, clock=fake_clock)
        cache.put("k", "v")
        fake_clock.advance(60)
        assert cache.get_or_none("k") is None

    def test_per_call_ttl(self, fake_clock):
        cache = TtlCache(ttl_seconds=3600, clock=fake_clock)
        cache.put("k", "v")
        fake_clock.advance(10)
        assert cache.get_or_none("k", ttl=5) is None

    def test_put_refreshes_timestamp(self, fake_clock):
        cache = TtlCache(ttl_seconds=60, clock=fake_clock)
        cache.put("k", 1)
        fake_clock.advance(50)
        cache.put("k", 2)
        fake_clock.advance(50)
        assert cache.get_or_none("k") == 2

    def test_clear_all(self):
        cache = TtlCache()
        cache.put("a", 1)
        cache.put("b", 2)
        cache.clear_all()
        assert cache.get_or_none("a") is None
        assert cache.get_or_none("b") is None
        assert len(cache) == 0

    def test_lru_eviction(self):
        cache = TtlCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.get_or_none("a") == 1  # "b" becomes least recent
        cache.put("c", 3)
        assert cache.get_or_none("b") is None
        assert cache.get_or_none("a") == 1
        assert cache.get_or_none("c") == 3

    def test_get_or_compute(self):
        cache = TtlCache()
        calls = []

        async def compute():
            calls.append(1)
            return ["2330"]

        async def scenario():
            first = await cache.get_or_compute("today", compute)
            second = await cache.get_or_compute("today", compute)
            return first, second

        first, second = asyncio.run(scenario())
        assert first == second == ["2330"]
        assert len(calls) == 1

    def test_get_or_compute_caches_none(self, fake_clock):
        cache = TtlCache(ttl_seconds=60, clock=fake_clock)
        calls = []

        async def compute():
            calls.append(1)
            return None

        async def scenario():
            return [await cache.get_or_compute("nothing", compute) for _ in range(3)]

        assert asyncio.run(scenario()) == [None, None, None]
        assert len(calls) == 1

        fake_clock.advance(60)
        asyncio.run(cache.get_or_compute("nothing", compute))
        assert len(calls) == 2

    def test_real_clock(self):
        cache = TtlCache(ttl_seconds=0.05)
        cache.put("k", "v")
        time.sleep(0.08)
        assert cache.get_or_none("k") is None
