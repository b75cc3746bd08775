"""Quote model module."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.enums import DiscountType, QuoteStatus, ServiceFrequency
from app.models.base import AuditMixin, Base, OrganizationScopedMixin, enum_column, new_id


class Quote(Base, AuditMixin, OrganizationScopedMixin):
    __tablename__ = "quotes"
    __table_args__ = (
        UniqueConstraint("organization_id", "quote_number", "version", name="uq_quotes_org_number_version"),
        Index("idx_quotes_org_status", "organization_id", "status"),
        Index("idx_quotes_org_number", "organization_id", "quote_number"),
        Index("idx_quotes_valid_until", "valid_until"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    quote_number: Mapped[str] = mapped_column(String(50), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    previous_version_id: Mapped[str | None] = mapped_column(String(36))
    revision_notes: Mapped[str | None] = mapped_column(Text)

    deal_id: Mapped[str | None] = mapped_column(ForeignKey("deals.id", ondelete="SET NULL"), index=True)
    contact_id: Mapped[str] = mapped_column(ForeignKey("contacts.id", ondelete="RESTRICT"), nullable=False, index=True)

    name: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)

    status: Mapped[QuoteStatus] = mapped_column(enum_column(QuoteStatus), default=QuoteStatus.DRAFT, nullable=False)
    status_changed_at: Mapped[datetime | None] = mapped_column(DateTime)
    valid_from: Mapped[date | None] = mapped_column(Date)
    valid_until: Mapped[date | None] = mapped_column(Date)

    service_address_line1: Mapped[str | None] = mapped_column(String(255))
    service_address_line2: Mapped[str | None] = mapped_column(String(255))
    service_city: Mapped[str | None] = mapped_column(String(100))
    service_state: Mapped[str | None] = mapped_column(String(50))
    service_postal_code: Mapped[str | None] = mapped_column(String(20))
    service_frequency: Mapped[ServiceFrequency | None] = mapped_column(enum_column(ServiceFrequency))
    contract_length_months: Mapped[int | None] = mapped_column(Integer)
    estimated_start_date: Mapped[date | None] = mapped_column(Date)

    line_items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Pricing summary, integer cents except the percentage rates.
    subtotal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    discount_type: Mapped[DiscountType] = mapped_column(
        enum_column(DiscountType), nullable=False, default=DiscountType.PERCENTAGE
    )
    tax_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tax_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    monthly_amount: Mapped[int | None] = mapped_column(Integer)
    annual_amount: Mapped[int | None] = mapped_column(Integer)
    setup_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    terms_and_conditions: Mapped[str | None] = mapped_column(Text)
    payment_terms: Mapped[str] = mapped_column(String(50), nullable=False, default="NET30")
    warranty_terms: Mapped[str | None] = mapped_column(Text)
    internal_notes: Mapped[str | None] = mapped_column(Text)
    customer_notes: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str] | None] = mapped_column(JSON)
    owner_id: Mapped[str | None] = mapped_column(String(36))

    sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    sent_to_email: Mapped[str | None] = mapped_column(String(320))
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime)
    viewed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    signature_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime)
    signed_by_name: Mapped[str | None] = mapped_column(String(200))
    signed_by_email: Mapped[str | None] = mapped_column(String(320))
    signature_ip: Mapped[str | None] = mapped_column(String(45))
    signature_data: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": row_version}

    contact = relationship("Contact")
    deal = relationship("Deal")


# Columns that describe customer engagement with one specific version; reset on
# every new version or clone.
ENGAGEMENT_FIELDS: dict[str, Any] = {
    "sent_at": None,
    "sent_to_email": None,
    "viewed_at": None,
    "viewed_count": 0,
    "signed_at": None,
    "signed_by_name": None,
    "signed_by_email": None,
    "signature_ip": None,
    "signature_data": None,
    "rejection_reason": None,
}

# Columns never copied when a quote row is duplicated into a new version or clone.
NON_COPYABLE_FIELDS = frozenset(
    {"id", "created_at", "updated_at", "deleted_at", "row_version", "status_changed_at"}
)
