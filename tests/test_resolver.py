"""
Tests for bounded concurrent resolution (backup_audit/resolver.py).
"""

import random
import threading
import time

import pytest

from backup_audit.resolver import Resolved, resolve_all


class InFlightCounter:
    """Resolver stub tracking how many calls run at once."""

    def __init__(self, delay=0.01):
        self.delay = delay
        self.current = 0
        self.peak = 0
        self.lock = threading.Lock()

    def __call__(self, item):
        with self.lock:
            self.current += 1
            self.peak = max(self.peak, self.current)
        time.sleep(self.delay * random.random())
        with self.lock:
            self.current -= 1
        return item * 2


class TestResolveAll:
    """Tests for resolve_all."""

    def test_output_order_matches_input(self):
        """Test results line up with inputs regardless of completion order."""
        items = list(range(20))
        assert resolve_all(items, 5, InFlightCounter()) == [i * 2 for i in items]

    def test_bounded_concurrency(self):
        """Test no more than the limit run at once."""
        counter = InFlightCounter(delay=0.02)
        resolve_all(list(range(30)), 3, counter)
        assert 1 <= counter.peak <= 3

    def test_sequential_with_one_worker(self):
        """Test concurrency 1 never overlaps calls."""
        counter = InFlightCounter()
        resolve_all(list(range(10)), 1, counter)
        assert counter.peak == 1

    def test_concurrency_above_item_count(self):
        """Test a large limit with few items still works."""
        assert resolve_all([1, 2], 16, lambda x: x + 1) == [2, 3]

    def test_empty_input(self):
        """Test empty input never calls the resolver."""
        calls = []
        assert resolve_all([], 4, calls.append) == []
        assert calls == []

    def test_invalid_concurrency(self):
        """Test concurrency below one is rejected."""
        with pytest.raises(ValueError):
            resolve_all([1], 0, lambda x: x)

    def test_failure_isolated(self):
        """Test one failing item does not affect the others."""
        def resolve(item):
            if item == 3:
                raise RuntimeError("boom")
            return Resolved(version=item)

        results = resolve_all([1, 2, 3, 4], 2, resolve)
        assert [r.version for r in results] == [1, 2, None, 4]
        assert "boom" in results[2].error

    def test_custom_error_conversion(self):
        """Test on_error turns exceptions into result values."""
        def resolve(item):
            raise ValueError(item)

        results = resolve_all(["a", "b"], 2, resolve, on_error=lambda item, e: f"failed:{item}")
        assert results == ["failed:a", "failed:b"]

    def test_on_result_runs_on_calling_thread(self):
        """Test results are handed back on the caller's thread, once each."""
        caller = threading.current_thread()
        seen = []

        def on_result(index, item, value):
            assert threading.current_thread() is caller
            seen.append((index, item, value))

        resolve_all(list(range(8)), 4, lambda x: x * 10, on_result=on_result)
        assert sorted(seen) == [(i, i, i * 10) for i in range(8)]

    def test_worker_threads_named(self):
        """Test workers run on resolver-named threads."""
        names = resolve_all([1, 2, 3], 2, lambda _: threading.current_thread().name)
        assert all(name.startswith("resolver") for name in names)

    def test_each_item_resolved_once(self):
        """Test no item is claimed twice."""
        calls = []
        lock = threading.Lock()

        def resolve(item):
            with lock:
                calls.append(item)
            return item

        resolve_all(list(range(50)), 8, resolve)
        assert sorted(calls) == list(range(50))
