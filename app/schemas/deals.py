"""Deal request/response schemas and per-operation patch types."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.enums import DealStage, DealStatus, ServiceFrequency
from app.schemas.common import PageMeta


class DealCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    contact_id: str = Field(min_length=1, max_length=36)
    lead_id: str | None = Field(default=None, max_length=36)
    quote_id: str | None = Field(default=None, max_length=36)
    title: str = Field(min_length=3, max_length=255)
    description: str | None = Field(default=None, max_length=10000)
    status: DealStatus = DealStatus.OPEN
    stage: DealStage = DealStage.LEAD
    deal_value: int = Field(ge=0)
    recurring_value: int | None = Field(default=None, ge=0)
    service_frequency: ServiceFrequency | None = None
    contract_length_months: int | None = Field(default=None, ge=1)
    win_probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    owner_id: str | None = Field(default=None, max_length=36)
    sales_rep_id: str | None = Field(default=None, max_length=36)
    service_type: str | None = Field(default=None, max_length=120)
    pest_types: list[str] | None = None
    property_type: str | None = Field(default=None, max_length=60)
    notes: str | None = Field(default=None, max_length=10000)
    tags: list[str] | None = None


class DealUpdatePatch(BaseModel):
    """Fields a caller may change through a general deal update.

    Only fields explicitly present in the payload are applied. Derived values
    (weighted and lifetime value, durations, stage history) are not patchable.
    """

    model_config = ConfigDict(extra="forbid")

    contact_id: str | None = Field(default=None, min_length=1, max_length=36)
    lead_id: str | None = Field(default=None, max_length=36)
    quote_id: str | None = Field(default=None, max_length=36)
    title: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = Field(default=None, max_length=10000)
    status: DealStatus | None = None
    stage: DealStage | None = None
    deal_value: int | None = Field(default=None, ge=0)
    recurring_value: int | None = Field(default=None, ge=0)
    service_frequency: ServiceFrequency | None = None
    contract_length_months: int | None = Field(default=None, ge=1)
    win_probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    owner_id: str | None = Field(default=None, max_length=36)
    sales_rep_id: str | None = Field(default=None, max_length=36)
    service_type: str | None = Field(default=None, max_length=120)
    pest_types: list[str] | None = None
    property_type: str | None = Field(default=None, max_length=60)
    notes: str | None = Field(default=None, max_length=10000)
    tags: list[str] | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class DealStageMoveRequest(BaseModel):
    stage: DealStage


class DealWonRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class DealLostRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)
    competitor: str | None = Field(default=None, max_length=255)


class DealListFilters(BaseModel):
    status: DealStatus | None = None
    stage: DealStage | None = None
    owner_id: str | None = None
    sales_rep_id: str | None = None
    min_value: int | None = Field(default=None, ge=0)
    max_value: int | None = Field(default=None, ge=0)
    created_from: datetime | None = None
    created_to: datetime | None = None

    @model_validator(mode="after")
    def bounds_are_ordered(self) -> "DealListFilters":
        if self.min_value is not None and self.max_value is not None and self.min_value > self.max_value:
            raise ValueError("min_value must be <= max_value")
        if self.created_from and self.created_to and self.created_from > self.created_to:
            raise ValueError("created_from must be <= created_to")
        return self


class StageHistoryEntry(BaseModel):
    stage: DealStage
    entered_at: datetime
    exited_at: datetime | None = None
    duration_days: int | None = None


class DealResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    contact_id: str
    lead_id: str | None = None
    quote_id: str | None = None
    title: str
    description: str | None = None
    status: DealStatus
    stage: DealStage
    deal_value: int
    recurring_value: int | None = None
    service_frequency: ServiceFrequency | None = None
    contract_length_months: int | None = None
    lifetime_value: int | None = None
    win_probability: int
    weighted_value: int
    expected_close_date: date | None = None
    actual_close_date: datetime | None = None
    last_activity_date: datetime | None = None
    days_in_pipeline: int
    stage_duration_days: int
    owner_id: str | None = None
    sales_rep_id: str | None = None
    service_type: str | None = None
    pest_types: list[str] | None = None
    property_type: str | None = None
    won_reason: str | None = None
    lost_reason: str | None = None
    lost_to_competitor: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    stage_history: list[StageHistoryEntry]
    created_at: datetime
    updated_at: datetime


class DealListResponse(BaseModel):
    items: list[DealResponse]
    page: PageMeta
