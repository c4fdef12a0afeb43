from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from event_mailer.application.dto.queue import DrainSummary
from event_mailer.application.ports.clock import Clock
from event_mailer.application.ports.mail import MailTransport, MessageComposer
from event_mailer.application.uow import UnitOfWork
from event_mailer.domain.value_objects.enums import EmailCategory, OutcomeStatus
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.services.delivery_worker import process_next

logger = logging.getLogger(__name__)

_STOP = frozenset({OutcomeStatus.IDLE, OutcomeStatus.RATE_LIMITED})


async def drain_today(
    uow: UnitOfWork,
    mailer: MailTransport,
    composer: MessageComposer,
    clock: Clock,
    limits: QueueLimits,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> DrainSummary:
    """Deliver every eligible item for today until the queue or the budget runs out.

    Each item is attempted at most once per pass; an item that fails under its
    retry ceiling stays pending for the next trigger.
    """
    summary = DrainSummary()
    attempted: set[int] = set()

    logger.info("Draining email queue")
    while True:
        outcome = await process_next(
            uow, mailer, composer, clock, limits, exclude_ids=attempted,
        )
        if outcome.status in _STOP:
            summary.stopped_by = outcome.status
            break

        if outcome.item_id is not None:
            attempted.add(outcome.item_id)

        if outcome.status == OutcomeStatus.SENT:
            summary.sent += 1
        elif outcome.status == OutcomeStatus.RETRY:
            summary.retried += 1
            summary.errors.append(f"{outcome.email}: {outcome.error}")
        elif outcome.status == OutcomeStatus.FAILED:
            summary.failed += 1
            summary.errors.append(f"{outcome.email}: {outcome.error}")
        else:
            summary.errors.append(f"{outcome.email}: {outcome.error}")

        if limits.send_delay_seconds > 0:
            await sleep(limits.send_delay_seconds)

    summary.remaining = await uow.email_queue.count_eligible(
        clock.now().date(), list(EmailCategory), limits.max_attempts,
    )
    logger.info(
        "Queue drain finished (%s): sent=%d failed=%d retried=%d remaining=%d",
        summary.stopped_by, summary.sent, summary.failed, summary.retried, summary.remaining,
    )
    return summary
