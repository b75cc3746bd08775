"""Read-side folds over an organization's deals: pipeline board, forecast and win rate."""

from __future__ import annotations

import logging
from collections import defaultdict

from app.core.enums import DealStage, DealStatus
from app.models import Deal
from app.schemas.analytics import (
    AnalyticsFilters,
    DealStatistics,
    ForecastMonth,
    ForecastView,
    PipelineView,
    StageSummary,
)
from app.schemas.deals import DealResponse
from app.services.base_service import BaseService

logger = logging.getLogger(__name__)


class PipelineAnalyticsService(BaseService):
    def _deals(self, organization_id: str, filters: AnalyticsFilters | None, open_only: bool) -> list[Deal]:
        filters = filters or AnalyticsFilters()
        query = self.db.query(Deal).filter(Deal.organization_id == organization_id, Deal.deleted_at.is_(None))
        if open_only:
            query = query.filter(Deal.status == DealStatus.OPEN)
        if filters.owner_id:
            query = query.filter(Deal.owner_id == filters.owner_id)
        if filters.min_value is not None:
            query = query.filter(Deal.deal_value >= filters.min_value)
        if filters.max_value is not None:
            query = query.filter(Deal.deal_value <= filters.max_value)
        if filters.created_from is not None:
            query = query.filter(Deal.created_at >= filters.created_from)
        if filters.created_to is not None:
            query = query.filter(Deal.created_at <= filters.created_to)
        return query.order_by(Deal.expected_close_date.asc(), Deal.deal_value.desc(), Deal.created_at.asc()).all()

    def pipeline_view(self, organization_id: str, filters: AnalyticsFilters | None = None) -> PipelineView:
        """Open deals grouped by stage. Every stage is present, empty or not."""
        grouped: dict[DealStage, list[Deal]] = {stage: [] for stage in DealStage}
        for deal in self._deals(organization_id, filters, open_only=True):
            grouped[deal.stage].append(deal)

        stages = [
            StageSummary(
                stage=stage,
                count=len(deals),
                total_value=sum(deal.deal_value for deal in deals),
                deals=[DealResponse.model_validate(deal) for deal in deals],
            )
            for stage, deals in grouped.items()
        ]
        all_deals = [deal for deals in grouped.values() for deal in deals]
        return PipelineView(
            stages=stages,
            total_value=sum(deal.deal_value for deal in all_deals),
            weighted_value=sum(deal.weighted_value or 0 for deal in all_deals),
        )

    def forecast(self, organization_id: str, filters: AnalyticsFilters | None = None) -> ForecastView:
        deals = self._deals(organization_id, filters, open_only=True)
        buckets: dict[str, list[Deal]] = defaultdict(list)
        for deal in deals:
            # Undated deals count in the totals only.
            if deal.expected_close_date is not None:
                buckets[deal.expected_close_date.strftime("%Y-%m")].append(deal)

        months = [
            ForecastMonth(
                month=month,
                deal_count=len(bucket),
                total_value=sum(deal.deal_value for deal in bucket),
                weighted_value=sum(deal.weighted_value or 0 for deal in bucket),
            )
            for month, bucket in sorted(buckets.items())
        ]
        return ForecastView(
            months=months,
            total_deals=len(deals),
            total_value=sum(deal.deal_value for deal in deals),
            weighted_value=sum(deal.weighted_value or 0 for deal in deals),
        )

    def statistics(self, organization_id: str, filters: AnalyticsFilters | None = None) -> DealStatistics:
        deals = self._deals(organization_id, filters, open_only=False)
        won = sum(1 for deal in deals if deal.status == DealStatus.WON)
        lost = sum(1 for deal in deals if deal.status == DealStatus.LOST)
        decided = won + lost
        total_value = sum(deal.deal_value for deal in deals)

        stats = DealStatistics(
            total_deals=len(deals),
            open_deals=sum(1 for deal in deals if deal.status == DealStatus.OPEN),
            won_deals=won,
            lost_deals=lost,
            win_rate=round(won / decided * 100, 2) if decided else 0.0,
            total_value=total_value,
            average_deal_size=round(total_value / len(deals)) if deals else 0,
        )
        logger.info(
            "pipeline.statistics",
            extra={"event": "pipeline.statistics", "organization_id": organization_id, "count": stats.total_deals},
        )
        return stats
