from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, slots=True)
class EventSummary:
    id: int
    name: str
    start_date: date | None
    end_date: date | None
    venue: str | None


@dataclass(frozen=True, slots=True)
class Recipient:
    """Attendee as seen by the mailer; owned by the events application."""

    id: int
    reference_id: str
    personal_name: str
    middle_name: str | None
    last_name: str
    email: str
    event: EventSummary
