from __future__ import annotations

import asyncio
from collections import Counter

import pytest

from event_mailer.domain.value_objects.enums import EmailCategory, OutcomeStatus, QueueStatus
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.services import admission_service
from event_mailer.services.batch_processor import drain_today
from event_mailer.services.rate_tracker import count_sent_today
from tests.conftest import (
    FakeComposer,
    FakeMailer,
    FakeUoW,
    make_request,
    seed_pending,
    seed_recipients,
)


async def _no_sleep(_seconds: float) -> None:
    return None


@pytest.mark.asyncio
async def test_failure_in_middle_does_not_abort_drain(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 3)
    items = seed_pending(uow, [1, 2, 3])
    mailer = FakeMailer(fail_for={"user2@example.com"})

    summary = await drain_today(uow, mailer, FakeComposer(), clock, limits)

    assert summary.sent == 2
    assert summary.failed == 0
    assert summary.retried == 1
    assert summary.errors == ["user2@example.com: 550 mailbox unavailable: user2@example.com"]
    # Item 2 stays pending and eligible for the next trigger.
    assert summary.remaining == 1
    assert summary.stopped_by == OutcomeStatus.IDLE
    assert [m.to for m in mailer.sent] == ["user1@example.com", "user3@example.com"]
    retried = uow.email_queue._rows[items[1].id]
    assert (retried.status, retried.attempt) == (QueueStatus.PENDING, 1)


@pytest.mark.asyncio
async def test_failed_counts_only_exhausted_items(clock):
    limits = QueueLimits(max_attempts=1, send_delay_seconds=0)
    uow = FakeUoW()
    seed_recipients(uow, 2)
    seed_pending(uow, [1, 2])

    summary = await drain_today(uow, FakeMailer(fail_for={"user1@example.com"}), FakeComposer(), clock, limits)

    assert (summary.sent, summary.failed, summary.retried, summary.remaining) == (1, 1, 0, 0)


@pytest.mark.asyncio
async def test_drain_stops_at_total_cap(clock):
    limits = QueueLimits(evaluation=40, certificate=80, total=50, send_delay_seconds=0)
    uow = FakeUoW()
    seed_recipients(uow, 120)
    seed_pending(uow, range(1, 41), category=EmailCategory.EVALUATION)
    seed_pending(uow, range(41, 121), category=EmailCategory.CERTIFICATE)

    summary = await drain_today(uow, FakeMailer(), FakeComposer(), clock, limits)

    counts = await count_sent_today(uow, clock)
    assert summary.sent == 50
    assert summary.stopped_by == OutcomeStatus.RATE_LIMITED
    assert counts.total == 50
    assert counts.evaluation <= 40
    assert summary.remaining == 70


@pytest.mark.asyncio
async def test_admit_and_drain_never_exceed_caps(clock, limits):
    uow = FakeUoW()
    seed_recipients(uow, 300)
    await admission_service.admit(
        EmailCategory.EVALUATION,
        [make_request(i) for i in range(1, 101)],
        uow, clock, limits, send_now=False,
    )
    await admission_service.admit(
        EmailCategory.CERTIFICATE,
        [make_request(i, EmailCategory.CERTIFICATE) for i in range(101, 301)],
        uow, clock, limits, send_now=False,
    )

    await drain_today(uow, FakeMailer(), FakeComposer(), clock, limits)
    await drain_today(uow, FakeMailer(), FakeComposer(), clock, limits)

    counts = await count_sent_today(uow, clock)
    assert counts.total <= limits.total
    assert counts.evaluation <= limits.evaluation
    assert counts.certificate <= limits.certificate


@pytest.mark.asyncio
async def test_concurrent_drains_never_send_same_item(clock):
    limits = QueueLimits(evaluation=500, certificate=500, total=1000, send_delay_seconds=0.001)
    uow = FakeUoW()
    seed_recipients(uow, 60)
    seed_pending(uow, range(1, 61))
    mailer = FakeMailer(delay=0.001)

    summaries = await asyncio.gather(
        *(drain_today(uow, mailer, FakeComposer(), clock, limits) for _ in range(3)),
    )

    sent_ids = [item.id for item in uow.email_queue.by_status(QueueStatus.SENT)]
    assert sum(s.sent for s in summaries) == 60
    assert len(sent_ids) == 60
    assert Counter(m.to for m in mailer.sent).most_common(1)[0][1] == 1


@pytest.mark.asyncio
async def test_sleeps_between_attempts(clock):
    limits = QueueLimits(send_delay_seconds=0.5)
    uow = FakeUoW()
    seed_recipients(uow, 2)
    seed_pending(uow, [1, 2])
    delays: list[float] = []

    async def _record(seconds: float) -> None:
        delays.append(seconds)

    await drain_today(uow, FakeMailer(), FakeComposer(), clock, limits, sleep=_record)

    assert delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_empty_queue_is_idle(clock, limits):
    summary = await drain_today(FakeUoW(), FakeMailer(), FakeComposer(), clock, limits, sleep=_no_sleep)

    assert summary.stopped_by == OutcomeStatus.IDLE
    assert (summary.sent, summary.remaining, summary.errors) == (0, 0, [])
