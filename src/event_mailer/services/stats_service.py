from __future__ import annotations

from event_mailer.application.dto.queue import DailyUsage, QueueStats
from event_mailer.application.ports.clock import Clock
from event_mailer.application.uow import UnitOfWork
from event_mailer.domain.value_objects.enums import EmailCategory, QueueStatus
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.services.rate_tracker import count_sent_today


async def get_stats(uow: UnitOfWork, clock: Clock, limits: QueueLimits) -> QueueStats:
    by_status = await uow.email_queue.count_by_status()
    pending_by_date = await uow.email_queue.pending_by_date()
    counts = await count_sent_today(uow, clock)

    return QueueStats(
        pending=by_status.get(QueueStatus.PENDING, 0),
        processing=by_status.get(QueueStatus.PROCESSING, 0),
        failed=by_status.get(QueueStatus.FAILED, 0),
        pending_by_date=dict(sorted(pending_by_date.items())),
        today_limit=DailyUsage(used=counts.total, limit=limits.total),
        today_by_category={
            category: DailyUsage(used=counts.for_category(category), limit=limits.cap_for(category))
            for category in EmailCategory
        },
    )
