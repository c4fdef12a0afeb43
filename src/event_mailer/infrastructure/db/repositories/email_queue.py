from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import date, datetime

from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from event_mailer.domain.entities.queue_item import QueueItem
from event_mailer.domain.value_objects.enums import EmailCategory, QueueStatus
from event_mailer.infrastructure.db.mappers import email_queue as mapper
from event_mailer.infrastructure.db.models.email_queue import EmailQueueModel


def _eligible(
    today: date,
    categories: Collection[EmailCategory],
    max_attempts: int,
) -> tuple[ColumnElement[bool], ...]:
    return (
        EmailQueueModel.status == QueueStatus.PENDING.value,
        EmailQueueModel.scheduled_date <= today,
        EmailQueueModel.attempt < max_attempts,
        EmailQueueModel.category.in_([c.value for c in categories]),
    )


class EmailQueueReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count_sent_between(self, start: datetime, end: datetime) -> dict[str, int]:
        stmt = (
            select(EmailQueueModel.category, func.count())
            .where(
                EmailQueueModel.status == QueueStatus.SENT.value,
                EmailQueueModel.last_attempt_at >= start,
                EmailQueueModel.last_attempt_at < end,
            )
            .group_by(EmailQueueModel.category)
        )
        result = await self._session.execute(stmt)
        return {category: count for category, count in result.all()}

    async def count_eligible(
        self,
        today: date,
        categories: Collection[EmailCategory],
        max_attempts: int,
    ) -> int:
        if not categories:
            return 0
        stmt = select(func.count()).select_from(EmailQueueModel).where(
            *_eligible(today, categories, max_attempts)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def pending_by_date(
        self,
        category: EmailCategory | None = None,
        from_date: date | None = None,
    ) -> dict[date, int]:
        stmt = (
            select(EmailQueueModel.scheduled_date, func.count())
            .where(EmailQueueModel.status == QueueStatus.PENDING.value)
            .group_by(EmailQueueModel.scheduled_date)
            .order_by(EmailQueueModel.scheduled_date.asc())
        )
        if category is not None:
            stmt = stmt.where(EmailQueueModel.category == category.value)
        if from_date is not None:
            stmt = stmt.where(EmailQueueModel.scheduled_date >= from_date)
        result = await self._session.execute(stmt)
        return {scheduled: count for scheduled, count in result.all()}

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(EmailQueueModel.status, func.count()).group_by(EmailQueueModel.status)
        result = await self._session.execute(stmt)
        return {status: count for status, count in result.all()}


class EmailQueueWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_many(self, items: Sequence[QueueItem]) -> list[QueueItem]:
        models = [mapper.entity_to_model(item) for item in items]
        self._session.add_all(models)
        await self._session.flush()
        return [mapper.model_to_entity(m) for m in models]

    async def claim_next(
        self,
        *,
        today: date,
        categories: Collection[EmailCategory],
        max_attempts: int,
        claimed_at: datetime,
        exclude_ids: Collection[int] = (),
    ) -> QueueItem | None:
        candidate = (
            select(EmailQueueModel.id)
            .where(*_eligible(today, categories, max_attempts))
            .order_by(
                EmailQueueModel.scheduled_date.asc(),
                EmailQueueModel.priority.asc(),
                EmailQueueModel.id.asc(),
            )
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        if exclude_ids:
            candidate = candidate.where(EmailQueueModel.id.not_in(list(exclude_ids)))

        # Single statement: the status re-check makes concurrent claims of one row impossible.
        stmt = (
            update(EmailQueueModel)
            .where(
                EmailQueueModel.id == candidate.scalar_subquery(),
                EmailQueueModel.status == QueueStatus.PENDING.value,
            )
            .values(status=QueueStatus.PROCESSING.value, last_attempt_at=claimed_at)
            .returning(EmailQueueModel)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def transition(self, item: QueueItem, expected: QueueStatus) -> bool:
        stmt = (
            update(EmailQueueModel)
            .where(
                EmailQueueModel.id == item.id,
                EmailQueueModel.status == expected.value,
            )
            .values(
                status=item.status.value,
                attempt=item.attempt,
                last_attempt_at=item.last_attempt_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1
