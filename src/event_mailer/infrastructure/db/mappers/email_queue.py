from __future__ import annotations

from event_mailer.domain.entities.queue_item import QueueItem
from event_mailer.domain.value_objects.enums import EmailCategory, QueueStatus
from event_mailer.infrastructure.db.models.email_queue import EmailQueueModel


def model_to_entity(model: EmailQueueModel) -> QueueItem:
    return QueueItem(
        id=model.id,
        recipient_ref=model.attendee_id,
        email=model.email,
        category=EmailCategory(model.category),
        payload=dict(model.payload or {}),
        status=QueueStatus(model.status),
        scheduled_date=model.scheduled_date,
        priority=model.priority,
        attempt=model.attempt,
        last_attempt_at=model.last_attempt_at,
        created_at=model.created_at,
    )


def entity_to_model(entity: QueueItem) -> EmailQueueModel:
    model = EmailQueueModel(
        attendee_id=entity.recipient_ref,
        email=entity.email,
        category=entity.category.value,
        payload=entity.payload,
        status=entity.status.value,
        scheduled_date=entity.scheduled_date,
        priority=entity.priority,
        attempt=entity.attempt,
        last_attempt_at=entity.last_attempt_at,
        created_at=entity.created_at,
    )
    if entity.id is not None:
        model.id = entity.id
    return model
