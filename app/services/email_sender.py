"""SMTP notification dispatcher for customer-facing documents."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import Config, get_config
from app.services.quote_document import QuoteDocument
from app.utils.validators import normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mime_subtype: str = "pdf"


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    error: str | None = None


class EmailSender:
    """Deliver rendered documents over SMTP; never raises for delivery problems."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    def _build_message(
        self,
        document: QuoteDocument,
        recipient: str,
        cc: list[str],
        attachment: Attachment | None,
    ) -> MIMEMultipart:
        message = MIMEMultipart("mixed")
        message["Subject"] = document.subject
        message["From"] = self.config.SMTP_FROM_EMAIL
        message["To"] = recipient
        if cc:
            message["Cc"] = ", ".join(cc)

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(document.text_body, "plain"))
        body.attach(MIMEText(document.html_body, "html"))
        message.attach(body)

        if attachment is not None:
            part = MIMEApplication(attachment.content, _subtype=attachment.mime_subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            message.attach(part)
        return message

    def send(
        self,
        document: QuoteDocument,
        recipient: str,
        cc: list[str] | None = None,
        attachment: Attachment | None = None,
    ) -> DispatchResult:
        to_email = normalize_email(recipient)
        if to_email is None:
            return DispatchResult(success=False, error="invalid recipient address")
        cc_list = [addr for addr in (normalize_email(value) for value in cc or []) if addr]

        if not self.config.SMTP_SERVER:
            logger.warning("email.smtp_not_configured", extra={"event": "email.smtp_not_configured"})
            return DispatchResult(success=False, error="smtp not configured")

        try:
            message = self._build_message(document, to_email, cc_list, attachment)
            with smtplib.SMTP(self.config.SMTP_SERVER, self.config.SMTP_PORT) as server:
                server.starttls()
                if self.config.SMTP_USERNAME:
                    server.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD or "")
                server.send_message(message, to_addrs=[to_email, *cc_list])
        except (smtplib.SMTPException, OSError) as exc:
            logger.exception("email.send_failed", extra={"event": "email.send_failed"})
            return DispatchResult(success=False, error=str(exc))

        logger.info("email.sent", extra={"event": "email.sent"})
        return DispatchResult(success=True)
