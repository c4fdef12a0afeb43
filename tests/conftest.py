"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import dataclasses
from collections import Counter
from collections.abc import Collection, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, AsyncIterator

import pytest

from event_mailer.application.dto.principal import Principal
from event_mailer.application.dto.queue import NewEmailRequest
from event_mailer.application.exceptions import ConflictError, DeliveryError, NotFoundError
from event_mailer.application.ports.mail import OutgoingEmail
from event_mailer.domain.entities.queue_item import QueueItem
from event_mailer.domain.entities.recipient import EventSummary, Recipient
from event_mailer.domain.value_objects.enums import EmailCategory, PrincipalKind, QueueStatus
from event_mailer.domain.value_objects.limits import QueueLimits

NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


@pytest.fixture
def admin_principal() -> Principal:
    return Principal(kind=PrincipalKind.ADMIN, subject_id=1, roles=["admin"])


@pytest.fixture
def limits() -> QueueLimits:
    return QueueLimits(send_delay_seconds=0)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


def make_event(event_id: int = 1, name: str = "Safety Summit") -> EventSummary:
    return EventSummary(
        id=event_id,
        name=name,
        start_date=date(2025, 3, 3),
        end_date=date(2025, 3, 5),
        venue="Manila",
    )


def make_recipient(
    recipient_id: int = 1,
    *,
    reference_id: str | None = None,
    email: str | None = None,
    event: EventSummary | None = None,
) -> Recipient:
    return Recipient(
        id=recipient_id,
        reference_id=reference_id or f"REF-{recipient_id}",
        personal_name="juan",
        middle_name=None,
        last_name="dela cruz",
        email=email or f"user{recipient_id}@example.com",
        event=event or make_event(),
    )


def make_request(recipient_id: int, category: EmailCategory = EmailCategory.EVALUATION) -> NewEmailRequest:
    payload: dict[str, Any] = {"reference_id": f"REF-{recipient_id}", "event_id": 1}
    if category == EmailCategory.CERTIFICATE:
        payload["template_type"] = "participation"
    return NewEmailRequest(
        recipient_ref=recipient_id,
        email=f"user{recipient_id}@example.com",
        payload=payload,
    )


def make_item(
    recipient_id: int = 1,
    *,
    category: EmailCategory = EmailCategory.EVALUATION,
    scheduled_date: date = TODAY,
    priority: int = 0,
) -> QueueItem:
    return QueueItem.new(
        recipient_ref=recipient_id,
        email=f"user{recipient_id}@example.com",
        category=category,
        payload=dict(make_request(recipient_id, category).payload),
        scheduled_date=scheduled_date,
        priority=priority,
        created_at=NOW - timedelta(days=1),
    )


@dataclass
class FixedClock:
    current: datetime = NOW

    def now(self) -> datetime:
        return self.current


@dataclass
class FakeEmailQueue:
    """Reader side of the in-memory queue store."""

    _rows: dict[int, QueueItem] = field(default_factory=dict)
    _next_id: int = 1

    def by_status(self, status: QueueStatus) -> list[QueueItem]:
        return [item for item in self._rows.values() if item.status == status]

    async def count_sent_between(self, start: datetime, end: datetime) -> dict[str, int]:
        counts: Counter[str] = Counter()
        for item in self.by_status(QueueStatus.SENT):
            if item.last_attempt_at is not None and start <= item.last_attempt_at < end:
                counts[item.category] += 1
        return dict(counts)

    def _eligible(self, today: date, categories: Collection[EmailCategory], max_attempts: int) -> list[QueueItem]:
        return [
            item
            for item in self.by_status(QueueStatus.PENDING)
            if item.scheduled_date <= today and item.attempt < max_attempts and item.category in categories
        ]

    async def count_eligible(self, today: date, categories: Collection[EmailCategory], max_attempts: int) -> int:
        return len(self._eligible(today, categories, max_attempts))

    async def pending_by_date(
        self,
        category: EmailCategory | None = None,
        from_date: date | None = None,
    ) -> dict[date, int]:
        counts: Counter[date] = Counter()
        for item in self.by_status(QueueStatus.PENDING):
            if category is not None and item.category != category:
                continue
            if from_date is not None and item.scheduled_date < from_date:
                continue
            counts[item.scheduled_date] += 1
        return dict(counts)

    async def count_by_status(self) -> dict[str, int]:
        return dict(Counter(item.status for item in self._rows.values()))


@dataclass
class FakeEmailQueueWriter:
    _reader: FakeEmailQueue
    fail_insert: bool = False
    flaky_inserts: int = 0
    flaky_transitions: int = 0

    async def add_many(self, items: Sequence[QueueItem]) -> list[QueueItem]:
        if self.fail_insert:
            raise RuntimeError("insert failed")
        if self.flaky_inserts:
            self.flaky_inserts -= 1
            raise RuntimeError("connection reset")
        stored = []
        for item in items:
            row = dataclasses.replace(item, id=self._reader._next_id)
            self._reader._rows[row.id] = row
            self._reader._next_id += 1
            stored.append(row)
        return stored

    async def claim_next(
        self,
        *,
        today: date,
        categories: Collection[EmailCategory],
        max_attempts: int,
        claimed_at: datetime,
        exclude_ids: Collection[int] = (),
    ) -> QueueItem | None:
        # No await between select and update, so this is atomic for asyncio tasks.
        candidates = [
            item
            for item in self._reader._eligible(today, categories, max_attempts)
            if item.id not in exclude_ids
        ]
        if not candidates:
            return None
        oldest = min(candidates, key=lambda i: (i.scheduled_date, i.priority, i.id))
        claimed = oldest.claimed(claimed_at)
        self._reader._rows[claimed.id] = claimed
        return claimed

    async def transition(self, item: QueueItem, expected: QueueStatus) -> bool:
        if self.flaky_transitions:
            self.flaky_transitions -= 1
            raise RuntimeError("connection reset")
        current = self._reader._rows.get(item.id)
        if current is None or current.status != expected:
            return False
        self._reader._rows[item.id] = item
        return True


@dataclass
class FakeRecipients:
    _by_id: dict[int, Recipient] = field(default_factory=dict)

    def add(self, *recipients: Recipient) -> None:
        for recipient in recipients:
            self._by_id[recipient.id] = recipient

    async def get_by_reference(self, reference_id: str) -> Recipient | None:
        for recipient in self._by_id.values():
            if recipient.reference_id == reference_id:
                return recipient
        return None

    async def list_by_ids(self, ids: list[int]) -> list[Recipient]:
        return [self._by_id[i] for i in sorted(ids) if i in self._by_id]


@dataclass
class FakeRecipientFlags:
    _flags: list[tuple[int, str, dict[str, Any] | None]] = field(default_factory=list)
    fail: bool = False

    async def mark_flag(self, recipient_ref: int, flag: str, detail: dict[str, Any] | None = None) -> None:
        if self.fail:
            raise NotFoundError(f"Attendee {recipient_ref} not found")
        self._flags.append((recipient_ref, flag, detail))


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    email_queue: FakeEmailQueue = field(default_factory=FakeEmailQueue)
    email_queue_w: FakeEmailQueueWriter | None = None
    recipients: FakeRecipients = field(default_factory=FakeRecipients)
    recipients_w: FakeRecipientFlags = field(default_factory=FakeRecipientFlags)
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.email_queue_w is None:
            self.email_queue_w = FakeEmailQueueWriter(self.email_queue)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


@dataclass
class FakeMailer:
    sent: list[OutgoingEmail] = field(default_factory=list)
    fail_for: set[str] = field(default_factory=set)
    delay: float = 0

    async def send(self, message: OutgoingEmail) -> None:
        await asyncio.sleep(self.delay)
        if message.to in self.fail_for:
            raise DeliveryError(f"550 mailbox unavailable: {message.to}")
        self.sent.append(message)


@dataclass
class FakeComposer:
    async def compose(
        self,
        category: EmailCategory,
        to: str,
        payload: dict[str, Any],
        recipient: Recipient,
    ) -> OutgoingEmail:
        return OutgoingEmail(
            to=to,
            subject=f"{category} for {recipient.reference_id}",
            html="<p>hi</p>",
            text="hi",
            sender="Events <no-reply@example.com>",
        )


@dataclass
class NullRunLock:
    busy: bool = False
    holds: int = 0

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        if self.busy:
            raise ConflictError("Queue processing is already running")
        self.holds += 1
        yield


def seed_recipients(uow: FakeUoW, count: int, start: int = 1) -> None:
    uow.recipients.add(*(make_recipient(i) for i in range(start, start + count)))


def seed_sent(uow: FakeUoW, category: EmailCategory, count: int, at: datetime = NOW) -> None:
    """Insert ``count`` rows already sent at ``at``."""
    for i in range(count):
        item = make_item(10_000 + i, category=category).claimed(at).delivered(at)
        row = dataclasses.replace(item, id=uow.email_queue._next_id)
        uow.email_queue._rows[row.id] = row
        uow.email_queue._next_id += 1


def seed_pending(
    uow: FakeUoW,
    recipient_ids: Sequence[int],
    *,
    category: EmailCategory = EmailCategory.EVALUATION,
    scheduled_date: date = TODAY,
) -> list[QueueItem]:
    stored = []
    for priority, recipient_id in enumerate(recipient_ids):
        item = dataclasses.replace(
            make_item(recipient_id, category=category, scheduled_date=scheduled_date, priority=priority),
            id=uow.email_queue._next_id,
        )
        uow.email_queue._rows[item.id] = item
        uow.email_queue._next_id += 1
        stored.append(item)
    return stored
