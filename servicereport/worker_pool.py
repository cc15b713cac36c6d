"""Small thread-pool wrapper with batch-at-a-time execution.

Image prefetching is I/O bound, so a handful of threads keep several
downloads in flight.  ``map_batched`` caps the number of in-flight calls
at ``batch_size`` and waits for every member of a batch to settle before
the next batch is submitted.

Usage::

    pool = WorkerPool(max_workers=6)
    results = pool.map_batched(fetch, urls, batch_size=6)
    pool.shutdown()
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_WORKERS = 6


class WorkerPool:
    """Fixed-size thread pool with lightweight metrics.

    Parameters
    ----------
    max_workers:
        Number of worker threads.
    thread_name_prefix:
        Prefix for worker-thread names (aids debugging).
    """

    def __init__(
        self,
        max_workers: int = DEFAULT_MAX_WORKERS,
        thread_name_prefix: str = "servicereport-worker",
    ) -> None:
        self._max_workers = max(1, int(max_workers))
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix=thread_name_prefix,
        )
        self._total_tasks: int = 0
        self._failed_tasks: int = 0
        self._total_batches: int = 0
        self._total_wait_s: float = 0.0
        self._metrics_lock = threading.Lock()
        self._alive = True

    # -- Public API -----------------------------------------------------------

    def submit(self, fn: Callable[..., R], *args: Any, **kwargs: Any) -> Future[R]:
        """Submit a single callable; returns a ``Future``."""
        if not self._alive:
            raise RuntimeError("WorkerPool is shut down")
        with self._metrics_lock:
            self._total_tasks += 1
        return self._executor.submit(fn, *args, **kwargs)

    def map_batched(
        self,
        fn: Callable[[T], R],
        items: list[T],
        *,
        batch_size: int,
    ) -> dict[T, R]:
        """Run *fn* over *items* in sequential batches of at most *batch_size*.

        All calls of one batch run in parallel; the next batch starts only
        once every call of the current one has settled.  Items whose call
        raises are logged and omitted from the result dict.
        """
        if not items:
            return {}
        size = max(1, int(batch_size))
        t0 = time.monotonic()
        results: dict[T, R] = {}
        for start in range(0, len(items), size):
            batch = items[start : start + size]
            futures = [(self.submit(fn, item), item) for item in batch]
            for fut, item in futures:
                try:
                    results[item] = fut.result()
                except Exception:
                    with self._metrics_lock:
                        self._failed_tasks += 1
                    LOGGER.warning(
                        "WorkerPool task failed for item %r; skipping.",
                        item,
                        exc_info=True,
                    )
            with self._metrics_lock:
                self._total_batches += 1
        elapsed = time.monotonic() - t0
        with self._metrics_lock:
            self._total_wait_s += elapsed
        return results

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the pool.  Safe to call multiple times."""
        self._alive = False
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # -- Observability --------------------------------------------------------

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def stats(self) -> dict[str, Any]:
        return {
            "max_workers": self._max_workers,
            "total_tasks": self._total_tasks,
            "failed_tasks": self._failed_tasks,
            "total_batches": self._total_batches,
            "total_wait_s": round(self._total_wait_s, 4),
            "alive": self._alive,
        }
