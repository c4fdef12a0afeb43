from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib

from event_mailer.application.exceptions import DeliveryError
from event_mailer.application.ports.mail import OutgoingEmail

logger = logging.getLogger(__name__)


def build_message(message: OutgoingEmail) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = message.sender
    msg["To"] = message.to
    msg["Subject"] = message.subject
    msg.set_content(message.text)
    msg.add_alternative(message.html, subtype="html")
    for attachment in message.attachments:
        maintype, _, subtype = attachment.content_type.partition("/")
        msg.add_attachment(
            attachment.content,
            maintype=maintype,
            subtype=subtype or "octet-stream",
            filename=attachment.filename,
        )
    return msg


class SmtpMailTransport:
    """Implements application.ports.mail.MailTransport over SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        start_tls: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username or None
        self._password = password or None
        self._use_tls = use_tls
        self._start_tls = start_tls
        self._timeout = timeout

    async def send(self, message: OutgoingEmail) -> None:
        try:
            await aiosmtplib.send(
                build_message(message),
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                use_tls=self._use_tls,
                start_tls=self._start_tls,
                timeout=self._timeout,
            )
        except aiosmtplib.SMTPException as exc:
            raise DeliveryError(f"SMTP delivery to {message.to} failed: {exc}") from exc
        logger.debug("SMTP accepted message for %s", message.to)
