from __future__ import annotations

import dataclasses
import smtplib
from datetime import date

from app.core.config import get_config
from app.models import Contact, Quote
from app.services import email_sender as email_sender_module
from app.services.email_sender import Attachment, EmailSender
from app.services.quote_document import QuoteDocument, format_currency, render_quote_document


class _FakeSMTP:
    instances: list["_FakeSMTP"] = []

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.messages = []
        self.logged_in = None
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def starttls(self):
        return None

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, message, to_addrs=None):
        self.messages.append((message, to_addrs))


class _BrokenSMTP(_FakeSMTP):
    def send_message(self, message, to_addrs=None):
        raise smtplib.SMTPServerDisconnected("gone")


def _document():
    return QuoteDocument(subject="Your quote 2026-Q00001", text_body="Hello", html_body="<p>Hello</p>")


def _smtp_config():
    return dataclasses.replace(get_config(), SMTP_SERVER="smtp.example.com", SMTP_USERNAME="quotes@example.com")


def test_send_delivers_with_cc_and_attachment(monkeypatch):
    _FakeSMTP.instances = []
    monkeypatch.setattr(email_sender_module.smtplib, "SMTP", _FakeSMTP)

    result = EmailSender(_smtp_config()).send(
        _document(),
        " Dana@Example.com ",
        cc=["office@example.com", "not-an-email"],
        attachment=Attachment(filename="quote.pdf", content=b"%PDF-1.4"),
    )

    assert result.success is True
    server = _FakeSMTP.instances[0]
    message, recipients = server.messages[0]
    assert recipients == ["dana@example.com", "office@example.com"]
    assert message["Cc"] == "office@example.com"
    assert server.logged_in[0] == "quotes@example.com"
    assert any(part.get_filename() == "quote.pdf" for part in message.walk())


def test_send_reports_failure_instead_of_raising(monkeypatch):
    monkeypatch.setattr(email_sender_module.smtplib, "SMTP", _BrokenSMTP)

    result = EmailSender(_smtp_config()).send(_document(), "dana@example.com")

    assert result.success is False
    assert "gone" in result.error


def test_send_without_smtp_or_valid_recipient_fails():
    unconfigured = dataclasses.replace(get_config(), SMTP_SERVER=None)

    assert EmailSender(unconfigured).send(_document(), "dana@example.com").success is False
    assert EmailSender(_smtp_config()).send(_document(), "nobody").error == "invalid recipient address"


def test_render_quote_document_lists_selected_items():
    quote = Quote(
        quote_number="2026-Q00042",
        version=2,
        currency="USD",
        subtotal=21000,
        discount_amount=0,
        tax_amount=2100,
        setup_fee=0,
        total_amount=23100,
        monthly_amount=None,
        valid_until=date(2026, 4, 1),
        line_items=[
            {"name": "Quarterly <service>", "total_amount": 12000, "is_selected": True},
            {"name": "Optional fogging", "total_amount": 9000, "is_selected": False},
        ],
    )
    contact = Contact(first_name="Dana", last_name="Whitfield")

    document = render_quote_document(quote, contact, message="Thanks for having us out.")

    assert document.subject == "Your quote 2026-Q00042"
    assert "Hi Dana Whitfield," in document.text_body
    assert "Quarterly <service>: $120.00" in document.text_body
    assert "Optional fogging" not in document.text_body
    assert "valid until April 1, 2026" in document.text_body
    assert "Quarterly &lt;service&gt;" in document.html_body
    assert format_currency(123456, "CAD") == "1,234.56 CAD"
