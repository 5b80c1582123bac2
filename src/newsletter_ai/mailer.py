"""SMTP delivery of newsletter PDFs."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Sequence

from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class SmtpMailer:
    """Sends one message per call; attachments are base64-encoded by EmailMessage."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return self.settings.email_configured

    def build_message(
        self,
        to: Sequence[str],
        subject: str,
        html: str,
        attachments: Sequence[Attachment] = (),
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.settings.from_name, self.settings.from_email or ""))
        message["To"] = ", ".join(to)
        message.set_content("This message contains an HTML body and a PDF attachment.")
        message.add_alternative(html, subtype="html")
        for item in attachments:
            maintype, _, subtype = item.content_type.partition("/")
            message.add_attachment(
                item.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=item.filename,
            )
        return message

    def send(
        self,
        to: Sequence[str],
        subject: str,
        html: str,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        if not self.configured:
            raise RuntimeError("Email service is not configured (SMTP_HOST / FROM_EMAIL).")
        if not to:
            raise ValueError("At least one recipient address is required.")
        message = self.build_message(to, subject, html, attachments)
        settings = self.settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password or "")
            server.send_message(message)
        logger.info("Sent '%s' to %d recipient(s)", subject, len(to))
