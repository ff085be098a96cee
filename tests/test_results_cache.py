"""
Unit tests for ResultsCache.

Tests cache behavior including:
- Store and retrieve
- TTL expiry on read
- Periodic sweep
"""

import asyncio
from datetime import timedelta

import pytest

from swiss_bookkeeping.services.cache import ResultsCache

from conftest import FIXED_NOW


class Clock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = FIXED_NOW

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


class TestResultsCache:
    """Test suite for ResultsCache class."""

    def test_put_and_get(self):
        cache = ResultsCache(ttl_seconds=60)
        result_id = cache.put({"total": 3})

        assert result_id.startswith("result-")
        assert cache.get(result_id) == {"total": 3}
        assert cache.size == 1

    def test_unknown_id(self):
        assert ResultsCache().get("result-missing") is None

    def test_explicit_result_id(self):
        cache = ResultsCache()
        assert cache.put("value", result_id="result-1") == "result-1"
        assert cache.get("result-1") == "value"

    def test_ids_are_unique(self):
        clock = Clock()
        cache = ResultsCache(clock=clock)
        assert cache.new_result_id() != cache.new_result_id()

    def test_retrievable_until_ttl(self):
        clock = Clock()
        cache = ResultsCache(ttl_seconds=60, clock=clock)
        result_id = cache.put("value")

        clock.advance(60)
        assert cache.get(result_id) == "value"

    def test_expired_on_read(self):
        clock = Clock()
        cache = ResultsCache(ttl_seconds=60, clock=clock)
        result_id = cache.put("value")

        clock.advance(61)
        assert cache.get(result_id) is None
        assert cache.size == 0

    def test_sweep_removes_only_expired(self):
        clock = Clock()
        cache = ResultsCache(ttl_seconds=60, clock=clock)
        old_id = cache.put("old")
        clock.advance(45)
        new_id = cache.put("new")
        clock.advance(30)

        assert cache.sweep() == 1
        assert cache.get(old_id) is None
        assert cache.get(new_id) == "new"

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            ResultsCache(ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_sweeper_runs_until_stopped(self):
        clock = Clock()
        cache = ResultsCache(ttl_seconds=1, clock=clock)
        cache.put("value")
        clock.advance(5)

        stop = asyncio.Event()
        task = asyncio.create_task(cache.run_sweeper(0.01, stop))
        for _ in range(100):
            if cache.size == 0:
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert cache.size == 0
        assert task.done()
