from __future__ import annotations

from typing import Any

from sqlalchemy import literal, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from event_mailer.application.exceptions import NotFoundError
from event_mailer.application.repositories.recipient import (
    FLAG_CERTIFICATE_SENT,
    FLAG_EVALUATION_SENT,
)
from event_mailer.domain.entities.recipient import Recipient
from event_mailer.infrastructure.db.mappers import recipient as mapper
from event_mailer.infrastructure.db.models.attendee import AttendeeModel


class RecipientReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_reference(self, reference_id: str) -> Recipient | None:
        stmt = (
            select(AttendeeModel)
            .options(joinedload(AttendeeModel.event))
            .where(AttendeeModel.reference_id == reference_id)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_by_ids(self, ids: list[int]) -> list[Recipient]:
        if not ids:
            return []
        stmt = (
            select(AttendeeModel)
            .options(joinedload(AttendeeModel.event))
            .where(AttendeeModel.id.in_(ids))
            .order_by(AttendeeModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class RecipientFlagWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def mark_flag(
        self,
        recipient_ref: int,
        flag: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        if flag == FLAG_EVALUATION_SENT:
            values: dict[str, Any] = {"hassentevaluation": True}
        elif flag == FLAG_CERTIFICATE_SENT:
            entry = literal([detail or {}], type_=JSONB)
            values = {
                "certificate_sent": AttendeeModel.certificate_sent.op("||", return_type=JSONB)(entry),
            }
        else:
            raise ValueError(f"Unknown recipient flag: {flag}")

        stmt = (
            update(AttendeeModel)
            .where(AttendeeModel.id == recipient_ref)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError(f"Attendee {recipient_ref} not found")
