from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from event_mailer.application.dto.queue import BulkSendResult, DispatchEntry, NewEmailRequest
from event_mailer.application.exceptions import NotFoundError
from event_mailer.application.ports.clock import Clock
from event_mailer.application.ports.mail import MailTransport, MessageComposer
from event_mailer.application.uow import UnitOfWork
from event_mailer.domain.entities.queue_item import QueueItem
from event_mailer.domain.value_objects.enums import CertificateTemplate, EmailCategory, QueueStatus
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.services import admission_service
from event_mailer.services.delivery_worker import apply_side_effects, deliver

logger = logging.getLogger(__name__)


async def send_bulk(
    category: EmailCategory,
    requests: Sequence[NewEmailRequest],
    uow: UnitOfWork,
    mailer: MailTransport,
    composer: MessageComposer,
    clock: Clock,
    limits: QueueLimits,
) -> BulkSendResult:
    """Send what today's budget allows right away and queue the rest."""
    capacity = await admission_service.check_capacity(category, len(requests), uow, clock, limits)
    admission = await admission_service.admit(category, requests, uow, clock, limits)

    successful: list[DispatchEntry] = []
    failed: list[DispatchEntry] = []
    for request in requests[: admission.immediate_count]:
        delivered, error = await _send_immediate(category, request, uow, mailer, composer, clock, limits)
        entry = DispatchEntry(recipient_ref=request.recipient_ref, email=request.email, error=error)
        (successful if delivered else failed).append(entry)

    logger.info(
        "Bulk %s send: %d sent, %d failed, %d queued",
        category, len(successful), len(failed), admission.queued_count,
    )
    return BulkSendResult(
        successful=successful,
        failed=failed,
        admission=admission,
        capacity=capacity,
    )


async def _send_immediate(
    category: EmailCategory,
    request: NewEmailRequest,
    uow: UnitOfWork,
    mailer: MailTransport,
    composer: MessageComposer,
    clock: Clock,
    limits: QueueLimits,
) -> tuple[bool, str | None]:
    """Deliver one request right away, tracked by a queue row claimed before sending.

    Returns whether the email went out and the error to report, if any. A
    failed send leaves the row pending for today so the worker retries it.
    Store errors are reported per request and never abort the batch.
    """
    now = clock.now()
    item = QueueItem.new(
        recipient_ref=request.recipient_ref,
        email=request.email,
        category=category,
        payload=dict(request.payload),
        scheduled_date=now.date(),
        priority=0,
        created_at=now,
    ).claimed(now)

    try:
        [claimed] = await uow.email_queue_w.add_many([item])
        await uow.commit()
    except Exception as exc:
        await uow.rollback()
        logger.exception("Could not record immediate %s email to %s; not sent", category, request.email)
        return False, f"Not sent, queue store unavailable: {exc}"

    try:
        await deliver(
            category, request.email, request.payload, uow, mailer, composer,
            limits.send_timeout_seconds,
        )
    except Exception as exc:
        await uow.rollback()
        error = str(exc) or type(exc).__name__
        logger.warning("Immediate %s email to %s failed: %s", category, request.email, error)
        outcome = claimed.failed_attempt(clock.now(), limits.max_attempts)
        delivered = False
    else:
        error = None
        outcome = claimed.delivered(clock.now())
        delivered = True

    try:
        await uow.email_queue_w.transition(outcome, expected=QueueStatus.PROCESSING)
        await uow.commit()
    except Exception as exc:
        await uow.rollback()
        # The row stays processing with last_attempt_at set; stats expose it.
        logger.exception("Could not record outcome of queue item %s", claimed.id)
        return delivered, error or f"Sent but not recorded: {exc}"

    if delivered:
        await apply_side_effects(outcome, uow)
    return delivered, error


async def build_requests(
    category: EmailCategory,
    attendee_ids: Sequence[int],
    uow: UnitOfWork,
    *,
    event_id: int | None = None,
    template_type: CertificateTemplate | None = None,
) -> list[NewEmailRequest]:
    """Resolve attendee ids into queue requests, keeping the caller's order."""
    recipients = await uow.recipients.list_by_ids(list(dict.fromkeys(attendee_ids)))
    if event_id is not None:
        recipients = [r for r in recipients if r.event.id == event_id]
    if not recipients:
        raise NotFoundError("No matching attendees found")

    by_id = {r.id: r for r in recipients}
    requests: list[NewEmailRequest] = []
    for attendee_id in dict.fromkeys(attendee_ids):
        recipient = by_id.get(attendee_id)
        if recipient is None:
            continue
        payload: dict[str, Any] = {
            "reference_id": recipient.reference_id,
            "event_id": recipient.event.id,
        }
        if category == EmailCategory.CERTIFICATE:
            payload["template_type"] = str(template_type or CertificateTemplate.PARTICIPATION)
        requests.append(NewEmailRequest(recipient_ref=recipient.id, email=recipient.email, payload=payload))

    if len(requests) < len(set(attendee_ids)):
        logger.warning(
            "Skipped %d unknown attendees for %s batch",
            len(set(attendee_ids)) - len(requests), category,
        )
    return requests
