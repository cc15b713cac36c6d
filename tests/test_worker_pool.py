"""Tests for WorkerPool.

Validates:
- map_batched correctness and error handling
- at most ``batch_size`` calls in flight, batches run back to back
- clean shutdown semantics
"""

from __future__ import annotations

import threading
import time

import pytest

from servicereport.worker_pool import WorkerPool


class _InFlightCounter:
    def __init__(self, delay_s: float = 0.01) -> None:
        self._lock = threading.Lock()
        self._delay_s = delay_s
        self.in_flight = 0
        self.peak = 0

    def __call__(self, item: int) -> int:
        with self._lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            time.sleep(self._delay_s)
            return item * 2
        finally:
            with self._lock:
                self.in_flight -= 1


class TestWorkerPool:
    def test_map_batched_basic(self) -> None:
        pool = WorkerPool(max_workers=2, thread_name_prefix="test")
        try:
            assert pool.map_batched(lambda x: x * 2, [1, 2, 3, 4], batch_size=2) == {
                1: 2,
                2: 4,
                3: 6,
                4: 8,
            }
        finally:
            pool.shutdown()

    def test_map_batched_empty(self) -> None:
        with WorkerPool(max_workers=2) as pool:
            assert pool.map_batched(lambda x: x, [], batch_size=3) == {}

    def test_map_batched_error_handling(self) -> None:
        """Tasks that raise are logged and omitted, not propagated."""

        def _maybe_fail(x: int) -> int:
            if x == 2:
                raise ValueError("boom")
            return x * 10

        with WorkerPool(max_workers=2) as pool:
            result = pool.map_batched(_maybe_fail, [1, 2, 3], batch_size=3)
            assert result == {1: 10, 3: 30}
            assert pool.stats()["failed_tasks"] == 1

    def test_batch_size_caps_in_flight_calls(self) -> None:
        counter = _InFlightCounter()
        with WorkerPool(max_workers=16) as pool:
            result = pool.map_batched(counter, list(range(20)), batch_size=6)
        assert len(result) == 20
        assert counter.peak <= 6

    def test_batches_are_counted(self) -> None:
        with WorkerPool(max_workers=4) as pool:
            pool.map_batched(lambda x: x, list(range(13)), batch_size=6)
            stats = pool.stats()
        assert stats["total_batches"] == 3
        assert stats["total_tasks"] == 13

    def test_non_positive_batch_size_runs_one_at_a_time(self) -> None:
        counter = _InFlightCounter(delay_s=0.0)
        with WorkerPool(max_workers=4) as pool:
            assert len(pool.map_batched(counter, [1, 2, 3], batch_size=0)) == 3
        assert counter.peak == 1

    def test_submit_after_shutdown_raises(self) -> None:
        pool = WorkerPool(max_workers=1)
        pool.shutdown()
        pool.shutdown()
        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)
        assert pool.stats()["alive"] is False

    def test_max_workers_floor(self) -> None:
        with WorkerPool(max_workers=0) as pool:
            assert pool.max_workers == 1
