from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, timedelta

from event_mailer.application.dto.queue import AdmissionResult, CapacityCheck, NewEmailRequest
from event_mailer.application.exceptions import AdmissionError
from event_mailer.application.ports.clock import Clock
from event_mailer.application.uow import UnitOfWork
from event_mailer.domain.entities.queue_item import QueueItem
from event_mailer.domain.value_objects.enums import EmailCategory
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.services.rate_tracker import count_sent_today

logger = logging.getLogger(__name__)


def plan_schedule(
    count: int,
    *,
    start: date,
    first_day_capacity: int,
    daily_cap: int,
    already_scheduled: dict[date, int] | None = None,
) -> list[date]:
    """Assign ``count`` items to consecutive days, filling each day before the next.

    ``first_day_capacity`` is what is left on ``start``; every later day gets
    ``daily_cap`` minus whatever ``already_scheduled`` holds for it.
    """
    if count <= 0:
        return []
    if daily_cap <= 0:
        raise ValueError("daily_cap must be positive to schedule deferred items")

    already_scheduled = already_scheduled or {}
    dates: list[date] = []
    day = start
    left = max(0, first_day_capacity)
    while len(dates) < count:
        take = min(left, count - len(dates))
        dates.extend([day] * take)
        day += timedelta(days=1)
        left = max(0, daily_cap - already_scheduled.get(day, 0))
    return dates


async def admit(
    category: EmailCategory,
    requests: Sequence[NewEmailRequest],
    uow: UnitOfWork,
    clock: Clock,
    limits: QueueLimits,
    *,
    send_now: bool = True,
) -> AdmissionResult:
    """Split a batch into sends allowed today and items deferred to later days.

    With ``send_now`` the first ``immediate_count`` requests are left to the
    caller to deliver right away; otherwise they are persisted as pending for
    today so the worker picks them up.
    """
    if not requests:
        return AdmissionResult()

    counts = await count_sent_today(uow, clock)
    available = limits.available(category, counts)
    now = clock.now()
    today = now.date()

    fit_today = min(available, len(requests))
    immediate_count = fit_today if send_now else 0
    deferred = requests[immediate_count:]
    if not deferred:
        return AdmissionResult(immediate_count=immediate_count)

    already_scheduled = await uow.email_queue.pending_by_date(category, from_date=today)
    first_day_capacity = available - immediate_count - already_scheduled.get(today, 0)
    dates = plan_schedule(
        len(deferred),
        start=today,
        first_day_capacity=first_day_capacity,
        daily_cap=limits.cap_for(category),
        already_scheduled=already_scheduled,
    )

    items = [
        QueueItem.new(
            recipient_ref=request.recipient_ref,
            email=request.email,
            category=category,
            payload=request.payload,
            scheduled_date=scheduled_date,
            priority=index,
            created_at=now,
        )
        for index, (request, scheduled_date) in enumerate(zip(deferred, dates))
    ]

    try:
        await uow.email_queue_w.add_many(items)
        await uow.commit()
    except Exception as exc:
        await uow.rollback()
        logger.exception("Failed to queue %d %s emails", len(items), category)
        raise AdmissionError("Failed to add emails to queue") from exc

    scheduled_dates = sorted(set(dates))
    logger.info(
        "Admitted %d %s emails: %d immediate, %d queued for %s",
        len(requests),
        category,
        immediate_count,
        len(items),
        ", ".join(d.isoformat() for d in scheduled_dates),
    )
    return AdmissionResult(
        immediate_count=immediate_count,
        queued_count=len(items),
        scheduled_dates=scheduled_dates,
    )


async def check_capacity(
    category: EmailCategory,
    count: int,
    uow: UnitOfWork,
    clock: Clock,
    limits: QueueLimits,
) -> CapacityCheck:
    counts = await count_sent_today(uow, clock)
    available = limits.available(category, counts)
    can_send = available >= count

    if can_send:
        message = f"Can send all {count} emails. {available - count} slots remaining today."
    else:
        message = (
            f"Rate limit reached. Can only send {available} more {category} emails today "
            f"({counts.total}/{limits.total} total used). "
            f"Remaining {count - available} will be queued for later days."
        )
    return CapacityCheck(can_send=can_send, available=available, message=message)
