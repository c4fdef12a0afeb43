from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

from event_mailer.application.exceptions import DeliveryError
from event_mailer.application.ports.certificates import CertificateRenderer
from event_mailer.application.ports.mail import Attachment, OutgoingEmail
from event_mailer.domain.entities.recipient import Recipient
from event_mailer.domain.value_objects.enums import CertificateTemplate, EmailCategory
from event_mailer.infrastructure.mail.templates import TEMPLATES
from event_mailer.infrastructure.mail.text import attachment_name, capitalize_words, format_event_date

CERTIFICATE_LABELS: dict[CertificateTemplate, str] = {
    CertificateTemplate.PARTICIPATION: "Participation",
    CertificateTemplate.AWARDEE: "Award",
    CertificateTemplate.ATTENDANCE: "Attendance",
}


class JinjaEmailComposer:
    """Builds evaluation invites and certificate emails from Jinja2 templates."""

    def __init__(
        self,
        certificates: CertificateRenderer,
        *,
        sender: str,
        site_url: str,
        organisation: str = "Events",
    ) -> None:
        self._certificates = certificates
        self._sender = sender
        self._site_url = site_url.rstrip("/")
        self._organisation = organisation
        self._env = Environment(
            loader=DictLoader(TEMPLATES),
            autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    async def compose(
        self,
        category: EmailCategory,
        to: str,
        payload: dict[str, Any],
        recipient: Recipient,
    ) -> OutgoingEmail:
        if category == EmailCategory.EVALUATION:
            return self._evaluation(to, recipient)
        return await self._certificate(to, payload, recipient)

    def _context(self, recipient: Recipient, **extra: Any) -> dict[str, Any]:
        first = capitalize_words(recipient.personal_name)
        last = capitalize_words(recipient.last_name)
        return {
            "full_name": f"{first} {last}".strip(),
            "event_name": recipient.event.name,
            "organisation": self._organisation,
            "year": datetime.now(timezone.utc).year,
            **extra,
        }

    def _render(self, name: str, context: dict[str, Any]) -> str:
        return self._env.get_template(name).render(context)

    def _evaluation(self, to: str, recipient: Recipient) -> OutgoingEmail:
        link = f"{self._site_url}/evaluation/{quote(recipient.reference_id, safe='')}"
        context = self._context(recipient, evaluation_link=link)
        return OutgoingEmail(
            to=to,
            subject=f"Evaluation Form - {recipient.event.name}",
            html=self._render("evaluation.html", context),
            text=self._render("evaluation.txt", context),
            sender=self._sender,
        )

    async def _certificate(
        self,
        to: str,
        payload: dict[str, Any],
        recipient: Recipient,
    ) -> OutgoingEmail:
        raw_template = payload.get("template_type") or CertificateTemplate.PARTICIPATION
        try:
            template = CertificateTemplate(raw_template)
        except ValueError as exc:
            raise DeliveryError(f"Unknown certificate template: {raw_template}") from exc

        label = CERTIFICATE_LABELS[template]
        context = self._context(
            recipient,
            label=label,
            event_date=format_event_date(recipient.event.start_date, recipient.event.end_date),
        )
        pdf = await self._certificates.render(recipient, template)
        return OutgoingEmail(
            to=to,
            subject=f"Certificate of {label} - {recipient.event.name}",
            html=self._render("certificate.html", context),
            text=self._render("certificate.txt", context),
            sender=self._sender,
            attachments=(
                Attachment(
                    filename=f"Certificate_{label}_{attachment_name(context['full_name'])}.pdf",
                    content=pdf,
                    content_type="application/pdf",
                ),
            ),
        )
