"""Per-status quote counts and trailing-window acceptance figures for an organization."""

from __future__ import annotations

from datetime import timedelta

from app.core.enums import QuoteStatus
from app.models import Quote
from app.schemas.analytics import QuoteStatistics, QuoteStatusBucket
from app.services.base_service import BaseService

RECENT_WINDOW_DAYS = 30


class QuoteStatisticsService(BaseService):
    def statistics(self, organization_id: str) -> QuoteStatistics:
        """Per-status counts and totals, plus trailing-window outcomes.

        Every lineage version is a row, so revised versions are counted under ``revised``.
        """
        quotes = (
            self.db.query(Quote)
            .filter(Quote.organization_id == organization_id, Quote.deleted_at.is_(None))
            .all()
        )
        cutoff = self.now() - timedelta(days=RECENT_WINDOW_DAYS)

        buckets = []
        for status in QuoteStatus:
            matching = [quote for quote in quotes if quote.status == status]
            buckets.append(
                QuoteStatusBucket(
                    status=status,
                    count=len(matching),
                    total_amount=sum(quote.total_amount for quote in matching),
                )
            )

        recent = [quote for quote in quotes if quote.created_at >= cutoff]
        recent_accepted = [quote for quote in recent if quote.status == QuoteStatus.ACCEPTED]
        return QuoteStatistics(
            by_status=buckets,
            total_quotes=len(quotes),
            total_amount=sum(quote.total_amount for quote in quotes),
            recent_total=len(recent),
            recent_accepted=len(recent_accepted),
            recent_rejected=sum(1 for quote in recent if quote.status == QuoteStatus.REJECTED),
            recent_accepted_value=sum(quote.total_amount for quote in recent_accepted),
            window_days=RECENT_WINDOW_DAYS,
        )
