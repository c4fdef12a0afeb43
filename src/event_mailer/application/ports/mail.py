from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from event_mailer.domain.entities.recipient import Recipient
from event_mailer.domain.value_objects.enums import EmailCategory


@dataclass(frozen=True, slots=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str
    sender: str
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)


class MailTransport(Protocol):
    async def send(self, message: OutgoingEmail) -> None:
        """Hand ``message`` to the provider; raise ``DeliveryError`` on rejection."""
        ...


class MessageComposer(Protocol):
    async def compose(
        self,
        category: EmailCategory,
        to: str,
        payload: dict[str, Any],
        recipient: Recipient,
    ) -> OutgoingEmail: ...
