"""Quote lifecycle engine: status transitions, version chaining and delivery."""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from typing import Any

from app.core.config import Config, get_config
from app.core.enums import (
    QUOTE_EXPIRABLE_STATUSES,
    QUOTE_LOCKED_STATUSES,
    DiscountType,
    QuoteStatus,
)
from app.core.exceptions import (
    DispatchFailure,
    InvalidOperationError,
    NotFoundError,
    ValidationFailure,
)
from app.models import Deal, Quote
from app.models.quote import ENGAGEMENT_FIELDS, NON_COPYABLE_FIELDS
from app.schemas.common import Pagination
from app.schemas.quotes import (
    QUOTE_SORT_FIELDS,
    QuoteAcceptRequest,
    QuoteCreateRequest,
    QuoteListFilters,
    QuoteSendRequest,
    QuoteUpdatePatch,
)
from app.services.base_service import BaseService, Clock
from app.services.contact_directory import ContactDirectory
from app.services.email_sender import Attachment, EmailSender
from app.services.quote_document import render_quote_document
from app.services.quote_pricing import price_line_items, summarize

logger = logging.getLogger(__name__)

# Statuses a plain in-place edit may set; everything else has a dedicated operation.
EDITABLE_STATUSES = frozenset({QuoteStatus.DRAFT, QuoteStatus.PENDING_APPROVAL, QuoteStatus.APPROVED})

PRICING_FIELDS = frozenset(
    {"line_items", "discount_percent", "discount_amount", "discount_type", "tax_rate", "setup_fee", "service_frequency"}
)

MAX_NUMBER_ATTEMPTS = 20


class QuoteService(BaseService):
    """Service for quote CRUD, versioning and customer engagement tracking."""

    def __init__(
        self,
        db=None,
        clock: Clock | None = None,
        dispatcher: EmailSender | None = None,
        contacts: ContactDirectory | None = None,
        config: Config | None = None,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(db=db, clock=clock)
        self.config = config or get_config()
        self.dispatcher = dispatcher or EmailSender(self.config)
        self.contacts = contacts or ContactDirectory(db=self.db, clock=clock)
        self._rng = rng or random.Random()

    def today(self) -> date:
        return self.now().date()

    def is_past_validity(self, quote: Quote) -> bool:
        """A quote stays valid through the whole of its valid_until day."""
        return quote.valid_until is not None and quote.valid_until < self.today()

    def _number_in_use(self, organization_id: str, quote_number: str) -> bool:
        taken = (
            self.db.query(Quote.id)
            .filter(Quote.organization_id == organization_id, Quote.quote_number == quote_number)
            .first()
        )
        return taken is not None

    def _generate_quote_number(self, organization_id: str) -> str:
        year = self.now().year
        for _ in range(MAX_NUMBER_ATTEMPTS):
            candidate = self.config.QUOTE_NUMBER_FORMAT.format(year=year, seq=self._rng.randrange(100000))
            if not self._number_in_use(organization_id, candidate):
                return candidate
        raise InvalidOperationError("Could not allocate a unique quote number.")

    def _require_contact(self, organization_id: str, contact_id: str) -> None:
        if self.contacts.find_by_id(contact_id, organization_id) is None:
            raise NotFoundError("Contact not found")

    def _require_deal(self, organization_id: str, deal_id: str | None) -> None:
        if deal_id is None:
            return
        exists = (
            self.db.query(Deal.id)
            .filter(Deal.id == deal_id, Deal.organization_id == organization_id, Deal.deleted_at.is_(None))
            .first()
        )
        if exists is None:
            raise NotFoundError("Deal not found")

    def _reprice(self, quote: Quote, monthly_override: int | None = None, annual_override: int | None = None) -> None:
        priced = price_line_items(quote.line_items or [], quote.tax_rate or 0.0)
        summary = summarize(
            priced,
            discount_type=quote.discount_type or DiscountType.PERCENTAGE,
            discount_percent=quote.discount_percent or 0.0,
            discount_amount=quote.discount_amount or 0,
            setup_fee=quote.setup_fee or 0,
            service_frequency=quote.service_frequency,
        )
        quote.line_items = priced
        quote.subtotal = summary.subtotal
        quote.discount_amount = summary.discount_amount
        quote.tax_amount = summary.tax_amount
        quote.total_amount = summary.total_amount
        quote.monthly_amount = monthly_override if monthly_override is not None else summary.monthly_amount
        quote.annual_amount = annual_override if annual_override is not None else summary.annual_amount

    def _copy_fields(self, source: Quote) -> dict[str, Any]:
        data = {
            column.key: getattr(source, column.key)
            for column in Quote.__table__.columns
            if column.key not in NON_COPYABLE_FIELDS
        }
        data["line_items"] = [dict(item) for item in source.line_items or []]
        data["tags"] = list(source.tags) if source.tags is not None else None
        data.update(ENGAGEMENT_FIELDS)
        return data

    @staticmethod
    def _infer_discount_type(values: dict[str, Any]) -> None:
        """A non-zero percent wins; a bare amount is a fixed discount."""
        if values.get("discount_type") is not None:
            return
        percent = values.get("discount_percent")
        if percent:
            values["discount_type"] = DiscountType.PERCENTAGE
        elif values.get("discount_amount") is not None:
            values["discount_type"] = DiscountType.FIXED
        elif percent is not None:
            values["discount_type"] = DiscountType.PERCENTAGE

    @staticmethod
    def _content_changes(patch: QuoteUpdatePatch) -> dict[str, Any]:
        content = patch.changes()
        if patch.line_items is not None:
            content["line_items"] = [item.model_dump(mode="json") for item in patch.line_items]
        return content

    def get_quote(self, organization_id: str, quote_id: str, include_deleted: bool = False) -> Quote:
        query = self.db.query(Quote).filter(Quote.id == quote_id, Quote.organization_id == organization_id)
        if not include_deleted:
            query = query.filter(Quote.deleted_at.is_(None))
        quote = query.first()
        if quote is None:
            raise NotFoundError("Quote not found")
        return quote

    def list_quotes(
        self,
        organization_id: str,
        filters: QuoteListFilters | None = None,
        pagination: Pagination | None = None,
    ) -> tuple[list[Quote], int]:
        filters = filters or QuoteListFilters()
        pagination = pagination or Pagination()

        query = self.db.query(Quote).filter(Quote.organization_id == organization_id, Quote.deleted_at.is_(None))
        if filters.status is not None:
            query = query.filter(Quote.status == filters.status)
        if filters.contact_id:
            query = query.filter(Quote.contact_id == filters.contact_id)
        if filters.deal_id:
            query = query.filter(Quote.deal_id == filters.deal_id)

        sort_field = filters.sort_by if filters.sort_by in QUOTE_SORT_FIELDS else "created_at"
        column = getattr(Quote, sort_field)
        ordering = column.asc() if filters.sort_order == "asc" else column.desc()

        total = query.count()
        items = query.order_by(ordering, Quote.version.desc()).offset(pagination.offset).limit(pagination.limit).all()
        return items, total

    def create_quote(self, organization_id: str, payload: QuoteCreateRequest) -> Quote:
        if not organization_id or not str(organization_id).strip():
            raise ValidationFailure("organization_id is required.")
        if payload.status is not None and payload.status not in EDITABLE_STATUSES:
            raise ValidationFailure(f"A new quote cannot start as {payload.status.value}.")
        self._require_contact(organization_id, payload.contact_id)
        self._require_deal(organization_id, payload.deal_id)
        if payload.quote_number and self._number_in_use(organization_id, payload.quote_number):
            raise ValidationFailure("Quote number already in use")

        now = self.now()
        excluded = {"line_items", "quote_number", "status"}
        fields = {key: value for key, value in payload.model_dump(exclude=excluded).items() if value is not None}
        self._infer_discount_type(fields)
        monthly_override = fields.pop("monthly_amount", None)
        annual_override = fields.pop("annual_amount", None)

        valid_from = fields.pop("valid_from", None) or now.date()
        valid_until = fields.pop("valid_until", None) or valid_from + timedelta(days=self.config.QUOTE_DEFAULT_VALIDITY_DAYS)
        fields["currency"] = (fields.get("currency") or self.config.DEFAULT_CURRENCY).upper()

        quote = Quote(
            organization_id=organization_id,
            quote_number=payload.quote_number or self._generate_quote_number(organization_id),
            version=1,
            status=payload.status or QuoteStatus.DRAFT,
            status_changed_at=now,
            valid_from=valid_from,
            valid_until=valid_until,
            line_items=[item.model_dump(mode="json") for item in payload.line_items],
            created_at=now,
            updated_at=now,
            **fields,
        )
        self._reprice(quote, monthly_override, annual_override)

        self.db.add(quote)
        self.commit()
        self.db.refresh(quote)
        logger.info(
            "quote.created",
            extra={
                "event": "quote.created",
                "organization_id": organization_id,
                "quote_id": quote.id,
                "quote_number": quote.quote_number,
            },
        )
        return quote

    def update_quote(
        self,
        organization_id: str,
        quote_id: str,
        patch: QuoteUpdatePatch,
        create_new_version: bool = False,
    ) -> Quote:
        """Apply ``patch`` in place, or spawn the next version of a non-draft quote.

        Versioning returns the new record; the patched record is flipped to
        ``revised`` in the same transaction.
        """
        changes = self._content_changes(patch)
        self._infer_discount_type(changes)
        if "contact_id" in changes and changes["contact_id"] is None:
            raise ValidationFailure("contact_id cannot be cleared.")

        quote = self.get_quote(organization_id, quote_id)
        if changes.get("contact_id") and changes["contact_id"] != quote.contact_id:
            self._require_contact(organization_id, changes["contact_id"])
        if changes.get("deal_id") and changes["deal_id"] != quote.deal_id:
            self._require_deal(organization_id, changes["deal_id"])

        if create_new_version and quote.status != QuoteStatus.DRAFT:
            return self._create_version(quote, changes)

        if quote.status in QUOTE_LOCKED_STATUSES:
            raise InvalidOperationError(
                f"Quote is {quote.status.value}; create a new version to change it."
            )

        now = self.now()
        new_status = changes.pop("status", None)
        if new_status is not None and QuoteStatus(new_status) != quote.status:
            if QuoteStatus(new_status) not in EDITABLE_STATUSES:
                raise InvalidOperationError(
                    f"Status {new_status} is set by its own lifecycle operation, not by an edit."
                )
            quote.status = QuoteStatus(new_status)
            quote.status_changed_at = now

        monthly_override = changes.pop("monthly_amount", None)
        annual_override = changes.pop("annual_amount", None)
        for field, value in changes.items():
            setattr(quote, field, value)
        if PRICING_FIELDS.intersection(changes):
            self._reprice(quote, monthly_override, annual_override)
        else:
            if monthly_override is not None:
                quote.monthly_amount = monthly_override
            if annual_override is not None:
                quote.annual_amount = annual_override
        quote.updated_at = now

        self.commit()
        self.db.refresh(quote)
        logger.info(
            "quote.updated",
            extra={"event": "quote.updated", "organization_id": organization_id, "quote_id": quote.id},
        )
        return quote

    def _create_version(self, original: Quote, changes: dict[str, Any]) -> Quote:
        if original.status == QuoteStatus.REVISED:
            raise InvalidOperationError("This quote version has been revised. Please use the latest version.")

        now = self.now()
        data = self._copy_fields(original)
        changes.pop("status", None)
        monthly_override = changes.pop("monthly_amount", None)
        annual_override = changes.pop("annual_amount", None)
        data.update(changes)
        data.update(
            version=original.version + 1,
            previous_version_id=original.id,
            revision_notes=changes.get("revision_notes"),
            status=QuoteStatus.DRAFT,
            status_changed_at=now,
            created_at=now,
            updated_at=now,
        )
        new_version = Quote(**data)
        if PRICING_FIELDS.intersection(changes):
            self._reprice(new_version, monthly_override, annual_override)

        original.status = QuoteStatus.REVISED
        original.status_changed_at = now
        original.updated_at = now

        self.db.add(new_version)
        self.commit()
        self.db.refresh(new_version)
        logger.info(
            "quote.version_created",
            extra={
                "event": "quote.version_created",
                "organization_id": original.organization_id,
                "quote_id": new_version.id,
                "quote_number": new_version.quote_number,
            },
        )
        return new_version

    def get_version_history(self, organization_id: str, quote_id: str) -> list[Quote]:
        quote = self.get_quote(organization_id, quote_id)
        return (
            self.db.query(Quote)
            .filter(
                Quote.organization_id == organization_id,
                Quote.quote_number == quote.quote_number,
                Quote.deleted_at.is_(None),
            )
            .order_by(Quote.version.desc())
            .all()
        )

    def clone_quote(self, organization_id: str, quote_id: str) -> Quote:
        original = self.get_quote(organization_id, quote_id)
        now = self.now()

        data = self._copy_fields(original)
        data.update(
            quote_number=self._generate_quote_number(organization_id),
            version=1,
            previous_version_id=None,
            revision_notes=None,
            status=QuoteStatus.DRAFT,
            status_changed_at=now,
            created_at=now,
            updated_at=now,
            name=f"{original.name} (Copy)" if original.name else "Copy",
        )
        cloned = Quote(**data)

        self.db.add(cloned)
        self.commit()
        self.db.refresh(cloned)
        logger.info(
            "quote.cloned",
            extra={
                "event": "quote.cloned",
                "organization_id": organization_id,
                "quote_id": cloned.id,
                "quote_number": cloned.quote_number,
            },
        )
        return cloned

    def send_quote(
        self,
        organization_id: str,
        quote_id: str,
        payload: QuoteSendRequest,
        attachment: Attachment | None = None,
    ) -> Quote:
        """Deliver the rendered quote, then mark it sent.

        Nothing on the quote changes unless the dispatcher reports success.
        """
        quote = self.get_quote(organization_id, quote_id)
        if quote.status in QUOTE_LOCKED_STATUSES:
            raise InvalidOperationError(f"Quote is {quote.status.value} and cannot be sent.")

        document = render_quote_document(
            quote,
            quote.contact,
            subject=payload.subject,
            message=payload.message,
            default_validity_days=self.config.QUOTE_DEFAULT_VALIDITY_DAYS,
            today=self.today(),
        )
        try:
            result = self.dispatcher.send(
                document,
                payload.recipient_email,
                cc=payload.cc_emails,
                attachment=attachment if payload.include_pdf else None,
            )
        except Exception as exc:
            logger.exception(
                "quote.send_failed",
                extra={"event": "quote.send_failed", "organization_id": organization_id, "quote_id": quote.id},
            )
            raise DispatchFailure("Failed to send email. Please try again.") from exc

        if not result.success:
            logger.error(
                "quote.send_failed: %s",
                result.error,
                extra={"event": "quote.send_failed", "organization_id": organization_id, "quote_id": quote.id},
            )
            raise DispatchFailure("Failed to send email. Please try again.")

        now = self.now()
        quote.status = QuoteStatus.SENT
        quote.status_changed_at = now
        quote.sent_at = now
        quote.sent_to_email = payload.recipient_email
        quote.updated_at = now

        self.commit()
        self.db.refresh(quote)
        logger.info(
            "quote.sent",
            extra={
                "event": "quote.sent",
                "organization_id": organization_id,
                "quote_id": quote.id,
                "quote_number": quote.quote_number,
            },
        )
        return quote

    def record_view(self, organization_id: str, quote_id: str) -> Quote:
        quote = self.get_quote(organization_id, quote_id)
        now = self.now()

        if quote.status == QuoteStatus.SENT:
            quote.status = QuoteStatus.VIEWED
            quote.status_changed_at = now
        if quote.viewed_at is None:
            quote.viewed_at = now
        quote.viewed_count = (quote.viewed_count or 0) + 1
        quote.updated_at = now

        self.commit()
        self.db.refresh(quote)
        return quote

    def accept_quote(
        self,
        organization_id: str,
        quote_id: str,
        payload: QuoteAcceptRequest,
        origin_address: str | None = None,
    ) -> Quote:
        quote = self.get_quote(organization_id, quote_id)

        if quote.status == QuoteStatus.ACCEPTED:
            raise InvalidOperationError("Quote has already been accepted")
        if quote.status == QuoteStatus.REJECTED:
            raise InvalidOperationError("Quote has been rejected")
        if quote.status == QuoteStatus.EXPIRED:
            raise InvalidOperationError("Quote has expired")
        if quote.status == QuoteStatus.REVISED:
            raise InvalidOperationError("This quote version has been revised. Please use the latest version.")

        now = self.now()
        if self.is_past_validity(quote):
            quote.status = QuoteStatus.EXPIRED
            quote.status_changed_at = now
            quote.updated_at = now
            self.commit()
            logger.info(
                "quote.expired_on_accept",
                extra={"event": "quote.expired_on_accept", "organization_id": organization_id, "quote_id": quote.id},
            )
            raise InvalidOperationError("Quote has expired")

        quote.status = QuoteStatus.ACCEPTED
        quote.status_changed_at = now
        quote.signed_at = now
        quote.signed_by_name = payload.signed_by_name
        quote.signed_by_email = payload.signed_by_email
        quote.signature_data = payload.signature_data
        quote.signature_ip = origin_address
        quote.updated_at = now

        self.commit()
        self.db.refresh(quote)
        logger.info(
            "quote.accepted",
            extra={"event": "quote.accepted", "organization_id": organization_id, "quote_id": quote.id},
        )
        return quote

    def reject_quote(self, organization_id: str, quote_id: str, reason: str | None = None) -> Quote:
        quote = self.get_quote(organization_id, quote_id)
        if quote.status == QuoteStatus.ACCEPTED:
            raise InvalidOperationError("Quote has already been accepted")

        now = self.now()
        quote.status = QuoteStatus.REJECTED
        quote.status_changed_at = now
        quote.rejection_reason = reason
        quote.updated_at = now

        self.commit()
        self.db.refresh(quote)
        logger.info(
            "quote.rejected",
            extra={"event": "quote.rejected", "organization_id": organization_id, "quote_id": quote.id},
        )
        return quote

    def expire_overdue(self, organization_id: str) -> int:
        """Flip every draft/sent/viewed quote past its validity window to expired."""
        now = self.now()
        overdue = (
            self.db.query(Quote)
            .filter(
                Quote.organization_id == organization_id,
                Quote.deleted_at.is_(None),
                Quote.status.in_(list(QUOTE_EXPIRABLE_STATUSES)),
                Quote.valid_until.is_not(None),
                Quote.valid_until < now.date(),
            )
            .all()
        )
        for quote in overdue:
            quote.status = QuoteStatus.EXPIRED
            quote.status_changed_at = now
            quote.updated_at = now
        if overdue:
            self.commit()

        logger.info(
            "quote.batch_expired",
            extra={"event": "quote.batch_expired", "organization_id": organization_id, "count": len(overdue)},
        )
        return len(overdue)

    def remove_quote(self, organization_id: str, quote_id: str) -> None:
        quote = self.get_quote(organization_id, quote_id)
        quote.deleted_at = self.now()
        self.commit()
        logger.info(
            "quote.soft_deleted",
            extra={"event": "quote.soft_deleted", "organization_id": organization_id, "quote_id": quote_id},
        )

