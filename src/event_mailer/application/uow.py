from __future__ import annotations

from typing import Protocol

from event_mailer.application.repositories.email_queue import EmailQueueReader, EmailQueueWriter
from event_mailer.application.repositories.recipient import RecipientFlagWriter, RecipientReader


class UnitOfWork(Protocol):
    email_queue: EmailQueueReader
    email_queue_w: EmailQueueWriter
    recipients: RecipientReader
    recipients_w: RecipientFlagWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
