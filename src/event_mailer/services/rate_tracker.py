from __future__ import annotations

from event_mailer.application.ports.clock import Clock, day_window
from event_mailer.application.uow import UnitOfWork
from event_mailer.domain.value_objects.limits import SentCounts


async def count_sent_today(uow: UnitOfWork, clock: Clock) -> SentCounts:
    """Count items sent during the current day, keyed by when they were sent.

    Counts are always derived from the store, never cached, so concurrent
    triggers and restarts see the same numbers.
    """
    start, end = day_window(clock)
    counts = await uow.email_queue.count_sent_between(start, end)
    return SentCounts.from_mapping(counts)
