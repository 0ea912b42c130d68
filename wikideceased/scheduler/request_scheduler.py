"""
Rate-limited request scheduler for summary lookups.

Turns subject-title requests into summary API calls:

- Cache hits are answered immediately and never enter the queue
- At most one network request per distinct title; later callers for a queued
  or in-flight title join its fan-out list
- Global concurrency is capped at max_concurrent
- Dispatch starts are paced at least min_interval_seconds apart (FIFO order)
- Failures of any kind settle as Outcome.UNKNOWN and are never cached

Example:
    scheduler = RequestScheduler(SummaryClient(), ResultCache())
    outcome = await scheduler.request("Ada_Lovelace")
    scheduler.request_with_callback("Alan_Turing", on_outcome)
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from wikideceased.api.summary import SummaryFetchError
from wikideceased.classifier import classify
from wikideceased.storage.result_cache import ResultCache
from wikideceased.utils.config import SchedulerConfig
from wikideceased.utils.logging import get_logger
from wikideceased.utils.schemas import Outcome, SummaryRecord

logger = get_logger(__name__)

OutcomeCallback = Callable[[Outcome], None]


class SummaryFetcher(Protocol):
    """Anything that can fetch a raw summary payload (see SummaryClient)."""

    async def fetch_summary(self, title: str) -> Any: ...


@dataclass
class QueueEntry:
    """One pending or in-flight lookup and everyone waiting on it."""

    title: str
    waiters: list[asyncio.Future[Outcome]] = field(default_factory=list)
    callbacks: list[OutcomeCallback] = field(default_factory=list)
    queued_at: float = field(default_factory=time.monotonic)


class RequestScheduler:
    """Bounded-concurrency, paced queue of summary lookups."""

    def __init__(
        self,
        client: SummaryFetcher,
        cache: ResultCache,
        config: SchedulerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize scheduler.

        Args:
            client: Summary fetcher (SummaryClient in production).
            cache: Result cache consulted before and written after each fetch.
            config: Concurrency and pacing limits.
            clock: Monotonic clock used for pacing.
        """
        self.client = client
        self.cache = cache
        self.config = config or SchedulerConfig()
        self._clock = clock

        self._queue: deque[QueueEntry] = deque()
        # Title -> entry, for every queued or in-flight title
        self._entries: dict[str, QueueEntry] = {}
        self._in_flight: set[str] = set()
        self._active_count = 0
        self._last_dispatch: float | None = None
        self._pacing_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()
        self._dispatched = 0
        self._closed = False

    @property
    def active_count(self) -> int:
        return self._active_count

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    def request_with_callback(
        self, title: str, callback: OutcomeCallback | None = None
    ) -> asyncio.Future[Outcome]:
        """Request an outcome, delivering it to callback as soon as it is known.

        Must be called from within a running event loop.

        Args:
            title: Subject title.
            callback: Invoked once with the outcome (immediately on a cache hit).

        Returns:
            Future resolved with the outcome.
        """
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[Outcome] = loop.create_future()

        cached = self.cache.get(title)
        if cached is not None:
            logger.debug("Using cached result", title=title, outcome=cached.value)
            if callback is not None:
                self._invoke(callback, title, cached)
            waiter.set_result(cached)
            return waiter

        if self._closed:
            if callback is not None:
                self._invoke(callback, title, Outcome.UNKNOWN)
            waiter.set_result(Outcome.UNKNOWN)
            return waiter

        entry = self._entries.get(title)
        if entry is None:
            entry = QueueEntry(title=title)
            self._entries[title] = entry
            self._queue.append(entry)
            logger.debug("Queued summary request", title=title, queue_length=len(self._queue))
        else:
            logger.debug(
                "Joined pending summary request",
                title=title,
                in_flight=title in self._in_flight,
            )

        entry.waiters.append(waiter)
        if callback is not None:
            entry.callbacks.append(callback)

        self._drain()
        return waiter

    async def request(self, title: str) -> Outcome:
        """Request an outcome and wait for it.

        Args:
            title: Subject title.

        Returns:
            Outcome for the title (UNKNOWN if the lookup failed).
        """
        return await self.request_with_callback(title)

    def _drain(self) -> None:
        """Start dispatches while slots are free and entries are queued."""
        if self._closed:
            return

        loop = asyncio.get_running_loop()
        while self._active_count < self.config.max_concurrent and self._queue:
            entry = self._queue.popleft()
            self._active_count += 1
            self._in_flight.add(entry.title)

            task = loop.create_task(self._dispatch(entry))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _pace(self) -> None:
        """Wait until min_interval has passed since the previous dispatch start."""
        async with self._pacing_lock:
            if self._last_dispatch is not None:
                wait_time = self.config.min_interval_seconds - (
                    self._clock() - self._last_dispatch
                )
                if wait_time > 0:
                    logger.debug("Rate limiting: waiting", wait_seconds=round(wait_time, 3))
                    await asyncio.sleep(wait_time)
            self._last_dispatch = self._clock()

    async def _dispatch(self, entry: QueueEntry) -> None:
        outcome = Outcome.UNKNOWN
        try:
            await self._pace()
            self._dispatched += 1
            outcome = await asyncio.wait_for(
                self._fetch_and_classify(entry.title),
                timeout=self.config.request_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "Summary request timed out",
                title=entry.title,
                timeout_seconds=self.config.request_timeout_seconds,
            )
        except Exception as e:
            logger.warning("Summary request failed", title=entry.title, error=str(e))
        finally:
            self._settle(entry, outcome)
            self._active_count -= 1
            self._drain()

    async def _fetch_and_classify(self, title: str) -> Outcome:
        logger.debug("Fetching summary", title=title)
        try:
            payload = await self.client.fetch_summary(title)
        except SummaryFetchError as e:
            logger.info("Summary unavailable", title=title, status=e.status, error=str(e))
            return Outcome.UNKNOWN

        record = SummaryRecord.from_payload(payload)
        if record is None:
            logger.warning("Unusable summary payload", title=title)
            return Outcome.UNKNOWN

        outcome = classify(record)
        self.cache.put(title, outcome)
        logger.info("Classified subject", title=title, outcome=outcome.value)
        return outcome

    def _settle(self, entry: QueueEntry, outcome: Outcome) -> None:
        """Deliver an outcome to every waiter and callback of an entry."""
        self._entries.pop(entry.title, None)
        self._in_flight.discard(entry.title)

        for waiter in entry.waiters:
            if not waiter.done():
                waiter.set_result(outcome)
        for callback in entry.callbacks:
            self._invoke(callback, entry.title, outcome)

    def _invoke(self, callback: OutcomeCallback, title: str, outcome: Outcome) -> None:
        try:
            callback(outcome)
        except Exception as e:
            logger.warning("Outcome callback failed", title=title, error=str(e))

    def stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "queue_length": len(self._queue),
            "active_count": self._active_count,
            "in_flight": sorted(self._in_flight),
            "dispatched": self._dispatched,
            "cached": len(self.cache),
            "max_concurrent": self.config.max_concurrent,
            "min_interval_seconds": self.config.min_interval_seconds,
        }

    async def aclose(self) -> None:
        """Stop dispatching, settle pending callers as UNKNOWN and close the client."""
        self._closed = True

        while self._queue:
            self._settle(self._queue.popleft(), Outcome.UNKNOWN)

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
        logger.debug("Request scheduler closed", dispatched=self._dispatched)
