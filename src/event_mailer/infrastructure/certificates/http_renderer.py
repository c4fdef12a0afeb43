from __future__ import annotations

import logging

import httpx

from event_mailer.application.exceptions import DeliveryError
from event_mailer.domain.entities.recipient import Recipient
from event_mailer.domain.value_objects.enums import CertificateTemplate

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate-certificate"


class HttpCertificateRenderer:
    """Fetch certificate PDFs from the certificate generation service."""

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._url = base_url.rstrip("/") + GENERATE_PATH

    async def render(self, recipient: Recipient, template: CertificateTemplate) -> bytes:
        try:
            response = await self._client.post(
                self._url,
                json={"referenceId": recipient.reference_id, "templateType": template.value},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Certificate generation failed for {recipient.reference_id}: {exc}") from exc

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/pdf"):
            raise DeliveryError(f"Certificate service returned {content_type or 'no content type'}, expected a PDF")

        logger.debug("Rendered %s certificate for %s (%d bytes)", template, recipient.reference_id, len(response.content))
        return response.content
