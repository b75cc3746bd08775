"""Render a quote into the subject/text/html document sent to customers."""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from app.models import Contact, Quote
from app.utils.validators import sanitize_text


@dataclass(frozen=True)
class QuoteDocument:
    subject: str
    text_body: str
    html_body: str


def format_currency(cents: int | None, currency: str = "USD") -> str:
    amount = (cents or 0) / 100
    if currency == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency}"


def format_date(value: date | datetime) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def render_quote_document(
    quote: Quote,
    contact: Contact | None,
    subject: str | None = None,
    message: str | None = None,
    default_validity_days: int = 30,
    today: date | None = None,
) -> QuoteDocument:
    customer_name = contact.display_name if contact is not None else "Valued Customer"
    valid_until = quote.valid_until or ((today or date.today()) + timedelta(days=default_validity_days))
    resolved_subject = sanitize_text(subject, 500) or f"Your quote {quote.quote_number}"
    intro = sanitize_text(message, 10000) or "Thank you for the opportunity to quote your service."

    selected = [item for item in (quote.line_items or []) if item.get("is_selected", True)]
    lines = [f"  - {item['name']}: {format_currency(item['total_amount'], quote.currency)}" for item in selected]

    text_parts = [
        f"Hi {customer_name},",
        "",
        intro,
        "",
        f"Quote {quote.quote_number} (version {quote.version})",
        *lines,
        "",
        f"Subtotal: {format_currency(quote.subtotal, quote.currency)}",
    ]
    if quote.discount_amount:
        text_parts.append(f"Discount: -{format_currency(quote.discount_amount, quote.currency)}")
    if quote.tax_amount:
        text_parts.append(f"Tax: {format_currency(quote.tax_amount, quote.currency)}")
    if quote.setup_fee:
        text_parts.append(f"Setup fee: {format_currency(quote.setup_fee, quote.currency)}")
    text_parts.append(f"Total: {format_currency(quote.total_amount, quote.currency)}")
    if quote.monthly_amount:
        text_parts.append(f"Recurring: {format_currency(quote.monthly_amount, quote.currency)} per month")
    text_parts.extend(["", f"This quote is valid until {format_date(valid_until)}.", "", "Best regards,"])
    text_body = "\n".join(text_parts)

    rows = "".join(
        f"<tr><td>{html.escape(str(item['name']))}</td>"
        f"<td style=\"text-align:right\">{format_currency(item['total_amount'], quote.currency)}</td></tr>"
        for item in selected
    )
    html_body = (
        f"<p>Hi {html.escape(customer_name)},</p>"
        f"<p>{html.escape(intro)}</p>"
        f"<h3>Quote {html.escape(quote.quote_number)}</h3>"
        f"<table>{rows}</table>"
        f"<p><strong>Total: {format_currency(quote.total_amount, quote.currency)}</strong></p>"
        f"<p>This quote is valid until {format_date(valid_until)}.</p>"
        "<p>Best regards,</p>"
    )
    return QuoteDocument(subject=resolved_subject, text_body=text_body, html_body=html_body)
