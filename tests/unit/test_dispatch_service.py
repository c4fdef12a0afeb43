from __future__ import annotations

from datetime import timedelta

import pytest

from event_mailer.application.exceptions import NotFoundError
from event_mailer.domain.value_objects.enums import (
    CertificateTemplate,
    EmailCategory,
    OutcomeStatus,
    QueueStatus,
)
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.services import dispatch_service
from event_mailer.services.delivery_worker import process_next
from event_mailer.services.rate_tracker import count_sent_today
from tests.conftest import (
    TODAY,
    FakeComposer,
    FakeMailer,
    FakeUoW,
    make_event,
    make_recipient,
    make_request,
    seed_recipients,
    seed_sent,
)


@pytest.mark.asyncio
async def test_send_bulk_records_immediate_sends(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 3)
    mailer = FakeMailer()

    result = await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, [make_request(i) for i in (1, 2, 3)],
        uow, mailer, FakeComposer(), clock, limits,
    )

    assert [e.recipient_ref for e in result.successful] == [1, 2, 3]
    assert result.failed == []
    assert result.admission.immediate_count == 3
    assert result.capacity.can_send is True
    counts = await count_sent_today(uow, clock)
    assert counts.evaluation == 3
    assert len(uow.recipients_w._flags) == 3


@pytest.mark.asyncio
async def test_send_bulk_queues_overflow(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 45)
    seed_sent(uow, EmailCategory.EVALUATION, 38)

    result = await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, [make_request(i) for i in range(1, 46)],
        uow, FakeMailer(), FakeComposer(), clock, limits,
    )

    assert len(result.successful) == 2
    assert result.admission.queued_count == 43
    assert result.admission.scheduled_dates == [TODAY + timedelta(days=1), TODAY + timedelta(days=2)]
    assert result.capacity.can_send is False
    counts = await count_sent_today(uow, clock)
    assert counts.evaluation == 40


@pytest.mark.asyncio
async def test_failed_immediate_send_is_left_for_worker(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 2)
    mailer = FakeMailer(fail_for={"user2@example.com"})

    result = await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, [make_request(1), make_request(2)],
        uow, mailer, FakeComposer(), clock, limits,
    )

    assert [e.email for e in result.failed] == ["user2@example.com"]
    assert "550" in result.failed[0].error
    [pending] = uow.email_queue.by_status(QueueStatus.PENDING)
    assert (pending.recipient_ref, pending.attempt, pending.scheduled_date) == (2, 1, TODAY)

    mailer.fail_for.clear()
    outcome = await process_next(uow, mailer, FakeComposer(), clock, limits)
    assert outcome.status == OutcomeStatus.SENT
    assert outcome.item_id == pending.id


@pytest.mark.asyncio
async def test_failed_immediate_send_with_single_attempt_is_terminal(clock):
    uow = FakeUoW()
    seed_recipients(uow, 1)

    await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, [make_request(1)],
        uow, FakeMailer(fail_for={"user1@example.com"}), FakeComposer(), clock,
        QueueLimits(max_attempts=1, send_delay_seconds=0),
    )

    [row] = uow.email_queue._rows.values()
    assert row.status == QueueStatus.FAILED


@pytest.mark.asyncio
async def test_build_requests_keeps_order_and_filters_event():
    uow = FakeUoW()
    uow.recipients.add(
        make_recipient(1),
        make_recipient(2, event=make_event(2, "Other")),
        make_recipient(3),
    )

    requests = await dispatch_service.build_requests(
        EmailCategory.CERTIFICATE, [3, 2, 1, 3], uow,
        event_id=1, template_type=CertificateTemplate.AWARDEE,
    )

    assert [r.recipient_ref for r in requests] == [3, 1]
    assert requests[0].payload == {
        "reference_id": "REF-3",
        "event_id": 1,
        "template_type": "awardee",
    }


@pytest.mark.asyncio
async def test_build_requests_without_matches():
    with pytest.raises(NotFoundError):
        await dispatch_service.build_requests(EmailCategory.EVALUATION, [7], FakeUoW())


@pytest.mark.asyncio
async def test_store_error_on_one_request_does_not_abort_batch(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 3)
    uow.email_queue_w.flaky_inserts = 1
    mailer = FakeMailer()

    result = await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, [make_request(i) for i in (1, 2, 3)],
        uow, mailer, FakeComposer(), clock, limits,
    )

    assert [e.recipient_ref for e in result.failed] == [1]
    assert "connection reset" in result.failed[0].error
    assert [e.recipient_ref for e in result.successful] == [2, 3]
    # Nothing goes out without a row that counts it.
    assert [m.to for m in mailer.sent] == ["user2@example.com", "user3@example.com"]
    counts = await count_sent_today(uow, clock)
    assert counts.evaluation == len(mailer.sent)


@pytest.mark.asyncio
async def test_row_is_claimed_before_sending(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 1)
    statuses: list[QueueStatus] = []

    class InspectingMailer(FakeMailer):
        async def send(self, message):
            statuses.extend(item.status for item in uow.email_queue._rows.values())
            await super().send(message)

    await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, [make_request(1)],
        uow, InspectingMailer(), FakeComposer(), clock, limits,
    )

    assert statuses == [QueueStatus.PROCESSING]
    [row] = uow.email_queue._rows.values()
    assert row.status == QueueStatus.SENT


@pytest.mark.asyncio
async def test_unrecorded_outcome_is_reported_and_batch_continues(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 2)
    uow.email_queue_w.flaky_transitions = 1

    result = await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, [make_request(1), make_request(2)],
        uow, FakeMailer(), FakeComposer(), clock, limits,
    )

    assert [e.recipient_ref for e in result.successful] == [1, 2]
    assert "Sent but not recorded" in result.successful[0].error
    assert result.successful[1].error is None
    assert len(uow.email_queue.by_status(QueueStatus.PROCESSING)) == 1
