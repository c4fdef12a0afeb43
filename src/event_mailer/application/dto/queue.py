from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from event_mailer.domain.value_objects.enums import EmailCategory, OutcomeStatus


@dataclass(frozen=True, slots=True)
class NewEmailRequest:
    recipient_ref: int | None
    email: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AdmissionResult:
    immediate_count: int = 0
    queued_count: int = 0
    scheduled_dates: list[date] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CapacityCheck:
    can_send: bool
    available: int
    message: str


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    status: OutcomeStatus
    item_id: int | None = None
    category: EmailCategory | None = None
    email: str | None = None
    attempt: int | None = None
    error: str | None = None


@dataclass(slots=True)
class DrainSummary:
    sent: int = 0
    failed: int = 0
    retried: int = 0
    remaining: int = 0
    errors: list[str] = field(default_factory=list)
    stopped_by: OutcomeStatus | None = None


@dataclass(frozen=True, slots=True)
class DailyUsage:
    used: int
    limit: int


@dataclass(frozen=True, slots=True)
class QueueStats:
    pending: int
    processing: int
    failed: int
    pending_by_date: dict[date, int]
    today_limit: DailyUsage
    today_by_category: dict[EmailCategory, DailyUsage]


@dataclass(frozen=True, slots=True)
class DispatchEntry:
    recipient_ref: int | None
    email: str
    error: str | None = None


@dataclass(frozen=True, slots=True)
class BulkSendResult:
    successful: list[DispatchEntry]
    failed: list[DispatchEntry]
    admission: AdmissionResult
    capacity: CapacityCheck
