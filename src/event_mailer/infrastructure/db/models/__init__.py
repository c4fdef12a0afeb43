"""Import all models so Alembic can discover them via Base.metadata."""
from event_mailer.infrastructure.db.models.attendee import AttendeeModel, EventModel
from event_mailer.infrastructure.db.models.email_queue import EmailQueueModel

__all__ = [
    "AttendeeModel",
    "EmailQueueModel",
    "EventModel",
]
