from __future__ import annotations

from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from event_mailer.infrastructure.db.repositories.email_queue import (
    EmailQueueReaderRepo,
    EmailQueueWriterRepo,
)
from event_mailer.infrastructure.db.repositories.recipient import (
    RecipientFlagWriterRepo,
    RecipientReaderRepo,
)


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.email_queue = EmailQueueReaderRepo(session)
        self.email_queue_w = EmailQueueWriterRepo(session)
        self.recipients = RecipientReaderRepo(session)
        self.recipients_w = RecipientFlagWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
