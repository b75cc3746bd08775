from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.core.enums import DealStage, QuoteStatus
from app.schemas.deals import DealResponse


class AnalyticsFilters(BaseModel):
    owner_id: str | None = None
    min_value: int | None = Field(default=None, ge=0)
    max_value: int | None = Field(default=None, ge=0)
    created_from: datetime | None = None
    created_to: datetime | None = None

    @model_validator(mode="after")
    def bounds_are_ordered(self) -> "AnalyticsFilters":
        if self.min_value is not None and self.max_value is not None and self.min_value > self.max_value:
            raise ValueError("min_value must be <= max_value")
        if self.created_from and self.created_to and self.created_from > self.created_to:
            raise ValueError("created_from must be <= created_to")
        return self


class StageSummary(BaseModel):
    stage: DealStage
    count: int
    total_value: int
    deals: list[DealResponse]


class PipelineView(BaseModel):
    stages: list[StageSummary]
    total_value: int
    weighted_value: int


class ForecastMonth(BaseModel):
    month: str
    deal_count: int
    total_value: int
    weighted_value: int


class ForecastView(BaseModel):
    months: list[ForecastMonth]
    total_deals: int
    total_value: int
    weighted_value: int


class DealStatistics(BaseModel):
    total_deals: int
    open_deals: int
    won_deals: int
    lost_deals: int
    win_rate: float
    total_value: int
    average_deal_size: int


class QuoteStatusBucket(BaseModel):
    status: QuoteStatus
    count: int
    total_amount: int


class QuoteStatistics(BaseModel):
    by_status: list[QuoteStatusBucket]
    total_quotes: int
    total_amount: int
    recent_total: int
    recent_accepted: int
    recent_rejected: int
    recent_accepted_value: int
    window_days: int
