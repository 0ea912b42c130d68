"""
Link classification service.

Takes batches of candidate links (an initial scan or later insertions),
resolves each to a subject title, requests its outcome from the scheduler and
decorates links whose subject is deceased.

Every link is handled at most once per session: the processed marker is set
before any request is issued, so repeated or overlapping submissions of the
same links are no-ops.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, Callable, Sequence
from functools import partial
from typing import Any

from wikideceased.links.discovery import LinkHandle
from wikideceased.links.titles import title_from_href
from wikideceased.scheduler.request_scheduler import RequestScheduler
from wikideceased.utils.config import ServiceConfig
from wikideceased.utils.logging import LogContext, get_logger
from wikideceased.utils.schemas import Outcome

logger = get_logger(__name__)

Decorate = Callable[[LinkHandle], None]
PreviewPredicate = Callable[[LinkHandle], bool]


class LinkClassificationService:
    """Orchestrates title extraction, lookup and decoration for links."""

    def __init__(
        self,
        scheduler: RequestScheduler,
        decorate: Decorate,
        *,
        origin: str,
        config: ServiceConfig | None = None,
        is_preview: PreviewPredicate | None = None,
    ) -> None:
        """Initialize service.

        Args:
            scheduler: Request scheduler (owns the result cache).
            decorate: Called once for each link whose subject is deceased.
            origin: Site origin that article links must belong to.
            config: Batch size and related settings.
            is_preview: Predicate for links inside preview surfaces.
        """
        self.scheduler = scheduler
        self.decorate = decorate
        self.origin = origin
        self.config = config or ServiceConfig()
        self.is_preview = is_preview

        self._batch_tasks: set[asyncio.Task[None]] = set()
        self._pending: set[asyncio.Future[Outcome]] = set()
        self._stats = {
            "submitted": 0,
            "skipped_preview": 0,
            "rejected": 0,
            "requested": 0,
            "decorated": 0,
        }

    def submit(self, links: Sequence[LinkHandle]) -> int:
        """Submit candidate links for classification.

        Must be called from within a running event loop.

        Args:
            links: Candidate link handles.

        Returns:
            Number of links accepted for classification.
        """
        accepted: list[tuple[LinkHandle, str]] = []
        for link in links:
            if link.is_processed():
                continue
            self._stats["submitted"] += 1

            # Preview links are consumed for good, see DESIGN.md
            if self.is_preview is not None and self.is_preview(link):
                link.mark_processed()
                self._stats["skipped_preview"] += 1
                continue

            title = title_from_href(link.href, self.origin)
            link.mark_processed()
            if title is None:
                self._stats["rejected"] += 1
                continue
            accepted.append((link, title))

        if not accepted:
            return 0

        loop = asyncio.get_running_loop()
        batch_size = self.config.batch_size
        total = (len(accepted) + batch_size - 1) // batch_size
        for index in range(0, len(accepted), batch_size):
            batch = accepted[index : index + batch_size]
            task = loop.create_task(self._process_batch(batch, index // batch_size + 1, total))
            self._batch_tasks.add(task)
            task.add_done_callback(self._batch_tasks.discard)

        logger.debug("Links accepted", accepted=len(accepted), batches=total)
        return len(accepted)

    async def _process_batch(
        self, batch: list[tuple[LinkHandle, str]], number: int, total: int
    ) -> None:
        with LogContext(batch=number):
            for link, title in batch:
                waiter = self.scheduler.request_with_callback(
                    title, partial(self._on_outcome, link, title)
                )
                self._stats["requested"] += 1
                self._pending.add(waiter)
                waiter.add_done_callback(self._pending.discard)
            logger.debug("Processed batch", number=number, total=total, links=len(batch))

    def _on_outcome(self, link: LinkHandle, title: str, outcome: Outcome) -> None:
        if outcome is not Outcome.DECEASED:
            return
        self.decorate(link)
        self._stats["decorated"] += 1
        logger.debug("Decorated link", title=title)

    async def consume(self, feed: AsyncIterable[Sequence[LinkHandle]]) -> None:
        """Submit every batch from a feed of candidate links."""
        async for links in feed:
            self.submit(links)

    async def join(self) -> None:
        """Wait until all submitted links have an outcome."""
        while self._batch_tasks or self._pending:
            await asyncio.gather(*list(self._batch_tasks), *list(self._pending))

    def stats(self) -> dict[str, Any]:
        """Get service counters plus scheduler statistics."""
        return {**self._stats, "scheduler": self.scheduler.stats()}
