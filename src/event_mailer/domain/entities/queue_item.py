from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from event_mailer.domain.value_objects.enums import EmailCategory, QueueStatus

_TRANSITIONS: dict[QueueStatus, frozenset[QueueStatus]] = {
    QueueStatus.PENDING: frozenset({QueueStatus.PROCESSING}),
    QueueStatus.PROCESSING: frozenset({QueueStatus.SENT, QueueStatus.PENDING, QueueStatus.FAILED}),
    QueueStatus.SENT: frozenset(),
    QueueStatus.FAILED: frozenset(),
}


class InvalidTransitionError(Exception):
    def __init__(self, current: QueueStatus, target: QueueStatus) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move queue item from {current} to {target}")


@dataclass(frozen=True, slots=True)
class QueueItem:
    """One outbound email.

    ``email`` is a snapshot taken at enqueue time. ``id`` is ``None`` until the
    store assigns one.
    """

    id: int | None
    recipient_ref: int | None
    email: str
    category: EmailCategory
    payload: dict[str, Any]
    status: QueueStatus
    scheduled_date: date
    priority: int
    attempt: int
    last_attempt_at: datetime | None
    created_at: datetime

    @classmethod
    def new(
        cls,
        *,
        recipient_ref: int | None,
        email: str,
        category: EmailCategory,
        payload: dict[str, Any],
        scheduled_date: date,
        priority: int,
        created_at: datetime,
    ) -> QueueItem:
        return cls(
            id=None,
            recipient_ref=recipient_ref,
            email=email,
            category=category,
            payload=payload,
            status=QueueStatus.PENDING,
            scheduled_date=scheduled_date,
            priority=priority,
            attempt=0,
            last_attempt_at=None,
            created_at=created_at,
        )

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.status]

    def _move(self, target: QueueStatus, **changes: Any) -> QueueItem:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status, target)
        return dataclasses.replace(self, status=target, **changes)

    def claimed(self, at: datetime) -> QueueItem:
        return self._move(QueueStatus.PROCESSING, last_attempt_at=at)

    def delivered(self, at: datetime) -> QueueItem:
        return self._move(QueueStatus.SENT, last_attempt_at=at)

    def failed_attempt(self, at: datetime, max_attempts: int) -> QueueItem:
        """Record one failed delivery; terminal once the ceiling is reached."""
        attempt = self.attempt + 1
        target = QueueStatus.FAILED if attempt >= max_attempts else QueueStatus.PENDING
        return self._move(target, attempt=attempt, last_attempt_at=at)
