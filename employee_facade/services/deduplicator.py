"""
RequestDeduplicator - coalesces concurrent identical upstream fetches.

While a fetch for a key is in flight, every other caller asking for the same
key awaits that fetch instead of starting its own. This is the stampede guard
for the collection cache.
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    Deduplicates concurrent async requests.

    Usage:
        dedup = RequestDeduplicator()
        employees = await dedup.dedupe("all-employees", client.list_all)

    The shared task is shielded: cancelling one waiter (e.g. its request
    deadline expired) leaves the fetch running for the others. When the last
    waiter is cancelled the fetch is cancelled too.
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._waiters: dict[asyncio.Task[Any], int] = {}
        self._debug = debug
        self._stats = DeduplicatorStats()

    async def dedupe(
        self,
        key: str,
        request_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Execute ``request_fn`` unless a request for ``key`` is already in flight.

        Args:
            key: Unique identifier for this request
            request_fn: Async function to execute if no duplicate exists

        Returns:
            Result of the single in-flight request; its exception is raised
            to every waiter alike.
        """
        task = self._in_flight.get(key)
        if task is not None:
            self._stats.deduplicated += 1
            self._log(f"DEDUPE: Waiting for in-flight request: {key}")
        else:
            self._stats.total += 1
            self._log(f"NEW: Starting request: {key}")
            task = asyncio.create_task(request_fn())
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._cleanup(key, done))

        self._waiters[task] = self._waiters.get(task, 0) + 1
        try:
            return await asyncio.shield(task)
        finally:
            self._leave(key, task)

    def _leave(self, key: str, task: asyncio.Task[Any]) -> None:
        remaining = self._waiters[task] - 1
        if remaining:
            self._waiters[task] = remaining
            return

        del self._waiters[task]
        # Only reachable with the task pending when every waiter was cancelled
        if not task.done():
            if self._in_flight.get(key) is task:
                del self._in_flight[key]
            self._log(f"ABANDON: No waiters left, cancelling request: {key}")
            task.cancel()

    def _cleanup(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            self._stats.failed += 1
        self._log(f"DONE: Request completed: {key}")

    async def cancel_all(self) -> int:
        """Cancel all in-flight requests."""
        tasks = list(self._in_flight.values())
        self._in_flight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            self._log(f"CANCEL_ALL: {len(tasks)} requests cancelled")
        return len(tasks)

    def get_stats(self) -> "DeduplicatorStats":
        """Get deduplication statistics."""
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")


class DeduplicatorStats:
    """Statistics for request deduplication."""

    def __init__(self):
        self.total: int = 0  # Requests actually started
        self.deduplicated: int = 0  # Callers that joined an in-flight request
        self.failed: int = 0  # Started requests that raised
        self.in_flight: int = 0

    @property
    def dedup_rate(self) -> float:
        """Calculate deduplication rate."""
        total = self.total + self.deduplicated
        if total == 0:
            return 0.0
        return self.deduplicated / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_requests": self.total,
            "deduplicated": self.deduplicated,
            "failed": self.failed,
            "in_flight": self.in_flight,
            "dedup_rate": f"{self.dedup_rate:.2%}",
        }
