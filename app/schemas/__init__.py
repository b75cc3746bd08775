"""Pydantic schema package for API contracts."""

from app.schemas.analytics import (
    AnalyticsFilters,
    DealStatistics,
    ForecastView,
    PipelineView,
    QuoteStatistics,
)
from app.schemas.common import PageMeta, Pagination
from app.schemas.deals import (
    DealCreateRequest,
    DealListFilters,
    DealLostRequest,
    DealResponse,
    DealStageMoveRequest,
    DealUpdatePatch,
    DealWonRequest,
)
from app.schemas.quotes import (
    QuoteAcceptRequest,
    QuoteCreateRequest,
    QuoteListFilters,
    QuoteRejectRequest,
    QuoteResponse,
    QuoteSendRequest,
    QuoteUpdatePatch,
)

__all__ = [
    "AnalyticsFilters",
    "DealCreateRequest",
    "DealListFilters",
    "DealLostRequest",
    "DealResponse",
    "DealStageMoveRequest",
    "DealStatistics",
    "DealUpdatePatch",
    "DealWonRequest",
    "ForecastView",
    "PageMeta",
    "Pagination",
    "PipelineView",
    "QuoteAcceptRequest",
    "QuoteCreateRequest",
    "QuoteListFilters",
    "QuoteRejectRequest",
    "QuoteResponse",
    "QuoteSendRequest",
    "QuoteStatistics",
    "QuoteUpdatePatch",
]
