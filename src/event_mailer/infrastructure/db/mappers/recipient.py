from __future__ import annotations

from event_mailer.domain.entities.recipient import EventSummary, Recipient
from event_mailer.infrastructure.db.models.attendee import AttendeeModel


def model_to_entity(model: AttendeeModel) -> Recipient:
    event = model.event
    return Recipient(
        id=model.id,
        reference_id=model.reference_id,
        personal_name=model.personal_name,
        middle_name=model.middle_name,
        last_name=model.last_name,
        email=model.email,
        event=EventSummary(
            id=event.id,
            name=event.name,
            start_date=event.start_date,
            end_date=event.end_date,
            venue=event.venue,
        ),
    )
