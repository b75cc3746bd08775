"""Quote request/response schemas and per-operation patch types."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.enums import DiscountType, QuoteStatus, ServiceFrequency
from app.schemas.common import PageMeta

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

QUOTE_SORT_FIELDS = ("created_at", "updated_at", "quote_number", "total_amount", "status", "valid_until")


class QuoteLineItemInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str | None = Field(default=None, max_length=36)
    service_type_id: str | None = Field(default=None, max_length=36)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    quantity: float = Field(gt=0)
    unit_price: int = Field(ge=0)
    unit: str = Field(default="each", max_length=30)
    discount_amount: int | None = Field(default=None, ge=0)
    discount_percent: float | None = Field(default=None, ge=0, le=100)
    is_taxable: bool = True
    tax_rate: float | None = Field(default=None, ge=0, le=100)
    frequency: ServiceFrequency | None = None
    is_optional: bool = False
    is_selected: bool = True


class _QuoteContent(BaseModel):
    """Fields shared by quote creation and update payloads."""

    model_config = ConfigDict(extra="forbid")

    deal_id: str | None = Field(default=None, max_length=36)
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=10000)
    valid_from: date | None = None
    valid_until: date | None = None
    service_address_line1: str | None = Field(default=None, max_length=255)
    service_address_line2: str | None = Field(default=None, max_length=255)
    service_city: str | None = Field(default=None, max_length=100)
    service_state: str | None = Field(default=None, max_length=50)
    service_postal_code: str | None = Field(default=None, max_length=20)
    service_frequency: ServiceFrequency | None = None
    contract_length_months: int | None = Field(default=None, ge=0)
    estimated_start_date: date | None = None
    discount_percent: float | None = Field(default=None, ge=0, le=100)
    discount_amount: int | None = Field(default=None, ge=0)
    discount_type: DiscountType | None = None
    tax_rate: float | None = Field(default=None, ge=0, le=100)
    monthly_amount: int | None = Field(default=None, ge=0)
    annual_amount: int | None = Field(default=None, ge=0)
    setup_fee: int | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    terms_and_conditions: str | None = Field(default=None, max_length=20000)
    payment_terms: str | None = Field(default=None, max_length=50)
    warranty_terms: str | None = Field(default=None, max_length=20000)
    internal_notes: str | None = Field(default=None, max_length=10000)
    customer_notes: str | None = Field(default=None, max_length=10000)
    tags: list[str] | None = None
    owner_id: str | None = Field(default=None, max_length=36)
    signature_required: bool | None = None

    @model_validator(mode="after")
    def validity_window_is_ordered(self):
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValueError("valid_until must not be before valid_from")
        return self


class QuoteCreateRequest(_QuoteContent):
    quote_number: str | None = Field(default=None, min_length=1, max_length=50)
    contact_id: str = Field(min_length=1, max_length=36)
    status: QuoteStatus | None = None
    line_items: list[QuoteLineItemInput] = Field(default_factory=list)


class QuoteUpdatePatch(_QuoteContent):
    """Fields a caller may change on an existing quote.

    Only fields present in the payload are applied. Engagement tracking,
    versioning and signature fields are owned by the lifecycle operations.
    """

    contact_id: str | None = Field(default=None, min_length=1, max_length=36)
    status: QuoteStatus | None = None
    line_items: list[QuoteLineItemInput] | None = None
    revision_notes: str | None = Field(default=None, max_length=10000)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class QuoteSendRequest(BaseModel):
    recipient_email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    cc_emails: list[str] = Field(default_factory=list)
    subject: str | None = Field(default=None, max_length=500)
    message: str | None = Field(default=None, max_length=10000)
    include_pdf: bool = True


class QuoteAcceptRequest(BaseModel):
    signed_by_name: str = Field(min_length=1, max_length=200)
    signed_by_email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    signature_data: str | None = None


class QuoteRejectRequest(BaseModel):
    rejection_reason: str | None = Field(default=None, max_length=5000)


class QuoteListFilters(BaseModel):
    status: QuoteStatus | None = None
    contact_id: str | None = None
    deal_id: str | None = None
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class QuoteLineItemResponse(BaseModel):
    id: str
    line_number: int
    service_type_id: str | None = None
    name: str
    description: str | None = None
    quantity: float
    unit_price: int
    unit: str
    discount_amount: int | None = None
    discount_percent: float | None = None
    subtotal: int
    total_amount: int
    is_taxable: bool
    tax_rate: float | None = None
    tax_amount: int | None = None
    frequency: ServiceFrequency | None = None
    is_optional: bool
    is_selected: bool


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    quote_number: str
    version: int
    previous_version_id: str | None = None
    revision_notes: str | None = None
    deal_id: str | None = None
    contact_id: str
    name: str | None = None
    description: str | None = None
    status: QuoteStatus
    status_changed_at: datetime | None = None
    valid_from: date | None = None
    valid_until: date | None = None
    service_frequency: ServiceFrequency | None = None
    contract_length_months: int | None = None
    line_items: list[QuoteLineItemResponse]
    subtotal: int
    discount_amount: int
    discount_percent: float
    discount_type: DiscountType
    tax_rate: float
    tax_amount: int
    total_amount: int
    monthly_amount: int | None = None
    annual_amount: int | None = None
    setup_fee: int
    currency: str
    payment_terms: str
    sent_at: datetime | None = None
    sent_to_email: str | None = None
    viewed_at: datetime | None = None
    viewed_count: int
    signed_at: datetime | None = None
    signed_by_name: str | None = None
    signed_by_email: str | None = None
    rejection_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class QuoteListResponse(BaseModel):
    items: list[QuoteResponse]
    page: PageMeta
