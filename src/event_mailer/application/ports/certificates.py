from __future__ import annotations

from typing import Protocol

from event_mailer.domain.entities.recipient import Recipient
from event_mailer.domain.value_objects.enums import CertificateTemplate


class CertificateRenderer(Protocol):
    async def render(self, recipient: Recipient, template: CertificateTemplate) -> bytes:
        """Return the certificate PDF for ``recipient``."""
        ...
