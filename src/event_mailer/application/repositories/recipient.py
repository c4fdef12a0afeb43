from __future__ import annotations

from typing import Any, Protocol

from event_mailer.domain.entities.recipient import Recipient

FLAG_EVALUATION_SENT = "has_sent_evaluation"
FLAG_CERTIFICATE_SENT = "certificate_sent"


class RecipientReader(Protocol):
    async def get_by_reference(self, reference_id: str) -> Recipient | None: ...

    async def list_by_ids(self, ids: list[int]) -> list[Recipient]: ...


class RecipientFlagWriter(Protocol):
    async def mark_flag(
        self,
        recipient_ref: int,
        flag: str,
        detail: dict[str, Any] | None = None,
    ) -> None: ...
