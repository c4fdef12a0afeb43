from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import date, datetime
from typing import Protocol

from event_mailer.domain.entities.queue_item import QueueItem
from event_mailer.domain.value_objects.enums import EmailCategory, QueueStatus


class EmailQueueReader(Protocol):
    async def count_sent_between(self, start: datetime, end: datetime) -> dict[str, int]:
        """Sent items per category whose ``last_attempt_at`` is in ``[start, end)``."""
        ...

    async def count_eligible(
        self,
        today: date,
        categories: Collection[EmailCategory],
        max_attempts: int,
    ) -> int: ...

    async def pending_by_date(
        self,
        category: EmailCategory | None = None,
        from_date: date | None = None,
    ) -> dict[date, int]: ...

    async def count_by_status(self) -> dict[str, int]: ...


class EmailQueueWriter(Protocol):
    async def add_many(self, items: Sequence[QueueItem]) -> list[QueueItem]: ...

    async def claim_next(
        self,
        *,
        today: date,
        categories: Collection[EmailCategory],
        max_attempts: int,
        claimed_at: datetime,
        exclude_ids: Collection[int] = (),
    ) -> QueueItem | None:
        """Atomically move the oldest eligible pending item to ``processing``."""
        ...

    async def transition(self, item: QueueItem, expected: QueueStatus) -> bool:
        """Persist ``item``'s state only if the row still has ``expected`` status."""
        ...
