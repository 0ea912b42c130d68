"""
wikideceased scheduler module.
Provides the paced, deduplicating summary request queue.
"""

from wikideceased.scheduler.request_scheduler import (
    OutcomeCallback,
    QueueEntry,
    RequestScheduler,
    SummaryFetcher,
)

__all__ = [
    "OutcomeCallback",
    "QueueEntry",
    "RequestScheduler",
    "SummaryFetcher",
]
