from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection
from typing import Any

from event_mailer.application.dto.queue import DeliveryOutcome
from event_mailer.application.exceptions import DeliveryError
from event_mailer.application.ports.clock import Clock
from event_mailer.application.ports.mail import MailTransport, MessageComposer
from event_mailer.application.repositories.recipient import (
    FLAG_CERTIFICATE_SENT,
    FLAG_EVALUATION_SENT,
)
from event_mailer.application.uow import UnitOfWork
from event_mailer.domain.entities.queue_item import QueueItem
from event_mailer.domain.value_objects.enums import (
    CertificateTemplate,
    EmailCategory,
    OutcomeStatus,
    QueueStatus,
)
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.services.rate_tracker import count_sent_today

logger = logging.getLogger(__name__)


async def deliver(
    category: EmailCategory,
    to: str,
    payload: dict[str, Any],
    uow: UnitOfWork,
    mailer: MailTransport,
    composer: MessageComposer,
    timeout: float,
) -> None:
    """Render and send one email. Every failure surfaces as ``DeliveryError``."""
    reference_id = payload.get("reference_id")
    if not reference_id:
        raise DeliveryError("Payload has no reference_id")

    recipient = await uow.recipients.get_by_reference(str(reference_id))
    if recipient is None:
        raise DeliveryError(f"Attendee not found: {reference_id}")

    message = await composer.compose(category, to, payload, recipient)
    try:
        await asyncio.wait_for(mailer.send(message), timeout=timeout)
    except TimeoutError as exc:
        raise DeliveryError(f"Mail transport timed out after {timeout:.0f}s") from exc


async def apply_side_effects(item: QueueItem, uow: UnitOfWork) -> None:
    """Flag the recipient after a successful send. Failures are only logged."""
    if item.recipient_ref is None:
        return
    try:
        if item.category == EmailCategory.EVALUATION:
            await uow.recipients_w.mark_flag(item.recipient_ref, FLAG_EVALUATION_SENT)
        else:
            template = item.payload.get("template_type", CertificateTemplate.PARTICIPATION)
            await uow.recipients_w.mark_flag(
                item.recipient_ref,
                FLAG_CERTIFICATE_SENT,
                {
                    "type": str(template),
                    "sent_at": item.last_attempt_at.isoformat() if item.last_attempt_at else None,
                    "sent_to": item.email,
                },
            )
        await uow.commit()
    except Exception:
        await uow.rollback()
        logger.warning(
            "Side effect failed for queue item %s (recipient %s)",
            item.id, item.recipient_ref, exc_info=True,
        )


async def process_next(
    uow: UnitOfWork,
    mailer: MailTransport,
    composer: MessageComposer,
    clock: Clock,
    limits: QueueLimits,
    *,
    exclude_ids: Collection[int] = (),
) -> DeliveryOutcome:
    """Claim and deliver the oldest eligible pending item."""
    counts = await count_sent_today(uow, clock)
    if limits.total_reached(counts):
        return DeliveryOutcome(
            status=OutcomeStatus.RATE_LIMITED,
            error=f"Daily limit reached ({counts.total}/{limits.total})",
        )

    open_categories = [c for c in EmailCategory if limits.available(c, counts) > 0]
    blocked = [c for c in EmailCategory if c not in open_categories]
    now = clock.now()
    today = now.date()

    item = None
    if open_categories:
        item = await uow.email_queue_w.claim_next(
            today=today,
            categories=open_categories,
            max_attempts=limits.max_attempts,
            claimed_at=now,
            exclude_ids=exclude_ids,
        )
        await uow.commit()

    if item is None:
        if blocked and await uow.email_queue.count_eligible(today, blocked, limits.max_attempts):
            return DeliveryOutcome(
                status=OutcomeStatus.RATE_LIMITED,
                error="Daily limit reached for " + ", ".join(blocked),
            )
        return DeliveryOutcome(status=OutcomeStatus.IDLE)

    logger.debug("Claimed queue item %s (%s, attempt %d)", item.id, item.category, item.attempt + 1)

    try:
        await deliver(
            item.category, item.email, item.payload, uow, mailer, composer,
            limits.send_timeout_seconds,
        )
    except Exception as exc:
        return await _record_failure(item, exc, uow, clock, limits)

    sent = item.delivered(clock.now())
    try:
        stored = await uow.email_queue_w.transition(sent, expected=QueueStatus.PROCESSING)
        await uow.commit()
    except Exception as exc:
        await uow.rollback()
        logger.exception("Sent queue item %s but could not record it", item.id)
        return _outcome(OutcomeStatus.ERROR, item, error=str(exc))

    if not stored:
        logger.warning("Queue item %s changed state while sending", item.id)
    logger.info("Sent %s email to %s (queue item %s)", item.category, item.email, item.id)
    await apply_side_effects(sent, uow)
    return _outcome(OutcomeStatus.SENT, sent)


async def _record_failure(
    item: QueueItem,
    exc: Exception,
    uow: UnitOfWork,
    clock: Clock,
    limits: QueueLimits,
) -> DeliveryOutcome:
    # The claim is already committed; discard whatever the attempt left in the session.
    await uow.rollback()
    failed = item.failed_attempt(clock.now(), limits.max_attempts)
    try:
        await uow.email_queue_w.transition(failed, expected=QueueStatus.PROCESSING)
        await uow.commit()
    except Exception as store_exc:
        await uow.rollback()
        logger.exception("Could not record failed attempt for queue item %s", item.id)
        return _outcome(OutcomeStatus.ERROR, item, error=str(store_exc))

    error = str(exc) or type(exc).__name__
    if failed.status == QueueStatus.FAILED:
        logger.error(
            "Giving up on %s email to %s after %d attempts: %s",
            item.category, item.email, failed.attempt, error,
        )
        return _outcome(OutcomeStatus.FAILED, failed, error=error)

    logger.warning(
        "Attempt %d/%d for %s email to %s failed: %s",
        failed.attempt, limits.max_attempts, item.category, item.email, error,
    )
    return _outcome(OutcomeStatus.RETRY, failed, error=error)


def _outcome(status: OutcomeStatus, item: QueueItem, *, error: str | None = None) -> DeliveryOutcome:
    return DeliveryOutcome(
        status=status,
        item_id=item.id,
        category=item.category,
        email=item.email,
        attempt=item.attempt,
        error=error,
    )
