"""
Bounded concurrent resolution.

A fixed set of worker threads pulls indices from a shared cursor and runs
the resolve callable for each item. Results are handed back to the calling
thread through a queue, so the caller can apply them one at a time without
any locking of its own. Output order always matches input order.
"""

from __future__ import annotations

import datetime
import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

from .catalog import RatingSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CONCURRENCY = 4

_FAILED = object()


@dataclass(frozen=True)
class Resolved:
    """
    Result of resolving one entry against the remote side.

    Attributes:
        version: Latest build id, or None if it could not be resolved
        observed_at: Build timestamp reported by the oracle, if any
        rating: Review summary; None when not fetched, all-null on failure
        external_ref: Release link found for this entry, if any
        attempts: Number of oracle invocations made
        error: Description of a failure caught at the item boundary
    """
    version: int | None = None
    observed_at: datetime.datetime | None = None
    rating: RatingSummary | None = None
    external_ref: str | None = None
    attempts: int = 0
    error: str | None = None

    @property
    def resolved(self) -> bool:
        return self.version is not None


class _Cursor:
    """Shared index counter handing out each index exactly once."""

    def __init__(self, total: int):
        self._next = 0
        self._total = total
        self._lock = threading.Lock()

    def claim(self) -> int | None:
        with self._lock:
            if self._next >= self._total:
                return None
            index = self._next
            self._next += 1
            return index


def _unresolved(item: object, exc: Exception) -> Resolved:
    return Resolved(error=f"{type(exc).__name__}: {exc}")


def resolve_all(
    items: Sequence[T],
    concurrency: int,
    resolve: Callable[[T], R],
    on_error: Callable[[T, Exception], R] | None = None,
    on_result: Callable[[int, T, R], None] | None = None,
) -> list[R]:
    """Resolve every item with at most ``concurrency`` calls in flight.

    Args:
        items: Items to resolve
        concurrency: Worker count (>= 1); capped at ``len(items)``
        resolve: Blocking per-item resolver, run on worker threads
        on_error: Converts a resolver exception into a result value
            (defaults to an unresolved ``Resolved``)
        on_result: Called on the calling thread as each result arrives,
            in completion order

    Returns:
        Results where index i corresponds to ``items[i]``

    Raises:
        ValueError: If concurrency is less than 1
    """
    if concurrency < 1:
        raise ValueError(f"Invalid concurrency: {concurrency}. Must be at least 1")

    total = len(items)
    if total == 0:
        return []

    convert_error = on_error or _unresolved
    cursor = _Cursor(total)
    done: queue.Queue = queue.Queue()
    results: list = [None] * total
    workers = min(concurrency, total)
    errors: list[Exception] = []

    def resolve_one(item: T) -> R:
        try:
            return resolve(item)
        except Exception as e:
            logger.warning(f"Resolution failed for {item!r}: {e}")
            return convert_error(item, e)

    def work() -> None:
        while True:
            index = cursor.claim()
            if index is None:
                return
            try:
                value = resolve_one(items[index])
            except Exception as e:
                logger.error(f"Error handler failed for {items[index]!r}: {e}")
                errors.append(e)
                value = _FAILED
            done.put((index, value))

    logger.debug(f"Resolving {total} items with {workers} workers")

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="resolver") as executor:
        for _ in range(workers):
            executor.submit(work)

        for _ in range(total):
            index, value = done.get()
            if value is _FAILED:
                continue
            results[index] = value
            if on_result is not None:
                on_result(index, items[index], value)

    if errors:
        raise errors[0]

    return results
