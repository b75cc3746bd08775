"""Deal pipeline endpoints for API v1."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.api.v1._scope import http_error, require_organization
from app.core.enums import DealStage, DealStatus
from app.core.exceptions import PipelineException
from app.database.db import get_db
from app.schemas.analytics import AnalyticsFilters, DealStatistics, ForecastView, PipelineView
from app.schemas.common import PageMeta, Pagination
from app.schemas.deals import (
    DealCreateRequest,
    DealListFilters,
    DealListResponse,
    DealLostRequest,
    DealResponse,
    DealStageMoveRequest,
    DealUpdatePatch,
    DealWonRequest,
)
from app.services.deal_service import DealService
from app.services.pipeline_analytics_service import PipelineAnalyticsService

router = APIRouter(prefix="/deals", tags=["deals"])


def get_deal_service(db: Session = Depends(get_db)) -> DealService:
    return DealService(db=db)


def get_pipeline_analytics(db: Session = Depends(get_db)) -> PipelineAnalyticsService:
    return PipelineAnalyticsService(db=db)


def _analytics_filters(
    owner_id: str | None = Query(default=None),
    min_value: int | None = Query(default=None, ge=0),
    max_value: int | None = Query(default=None, ge=0),
    created_from: datetime | None = Query(default=None),
    created_to: datetime | None = Query(default=None),
) -> AnalyticsFilters:
    try:
        return AnalyticsFilters(
            owner_id=owner_id,
            min_value=min_value,
            max_value=max_value,
            created_from=created_from,
            created_to=created_to,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


@router.get("/pipeline", response_model=PipelineView)
def pipeline_view(
    organization_id: str = Depends(require_organization),
    filters: AnalyticsFilters = Depends(_analytics_filters),
    analytics: PipelineAnalyticsService = Depends(get_pipeline_analytics),
) -> PipelineView:
    return analytics.pipeline_view(organization_id, filters)


@router.get("/forecast", response_model=ForecastView)
def forecast(
    organization_id: str = Depends(require_organization),
    filters: AnalyticsFilters = Depends(_analytics_filters),
    analytics: PipelineAnalyticsService = Depends(get_pipeline_analytics),
) -> ForecastView:
    return analytics.forecast(organization_id, filters)


@router.get("/statistics", response_model=DealStatistics)
def statistics(
    organization_id: str = Depends(require_organization),
    filters: AnalyticsFilters = Depends(_analytics_filters),
    analytics: PipelineAnalyticsService = Depends(get_pipeline_analytics),
) -> DealStatistics:
    return analytics.statistics(organization_id, filters)


@router.get("", response_model=DealListResponse)
def list_deals(
    deal_status: DealStatus | None = Query(default=None, alias="status"),
    stage: DealStage | None = Query(default=None),
    owner_id: str | None = Query(default=None),
    sales_rep_id: str | None = Query(default=None),
    min_value: int | None = Query(default=None, ge=0),
    max_value: int | None = Query(default=None, ge=0),
    limit: int = Query(default=20, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> DealListResponse:
    try:
        filters = DealListFilters(
            status=deal_status,
            stage=stage,
            owner_id=owner_id,
            sales_rep_id=sales_rep_id,
            min_value=min_value,
            max_value=max_value,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    items, total = service.list_deals(organization_id, filters, Pagination(limit=limit, offset=offset))
    return DealListResponse(
        items=[DealResponse.model_validate(deal) for deal in items],
        page=PageMeta(limit=limit, offset=offset, total=total),
    )


@router.post("", response_model=DealResponse, status_code=status.HTTP_201_CREATED)
def create_deal(
    payload: DealCreateRequest,
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> DealResponse:
    try:
        deal = service.create_deal(organization_id, payload)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return DealResponse.model_validate(deal)


@router.get("/{deal_id}", response_model=DealResponse)
def get_deal(
    deal_id: str,
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> DealResponse:
    try:
        deal = service.get_deal(organization_id, deal_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return DealResponse.model_validate(deal)


@router.patch("/{deal_id}", response_model=DealResponse)
def update_deal(
    deal_id: str,
    patch: DealUpdatePatch,
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> DealResponse:
    try:
        deal = service.update_deal(organization_id, deal_id, patch)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return DealResponse.model_validate(deal)


@router.post("/{deal_id}/stage", response_model=DealResponse)
def move_deal_stage(
    deal_id: str,
    payload: DealStageMoveRequest,
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> DealResponse:
    try:
        deal = service.move_to_stage(organization_id, deal_id, payload.stage)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return DealResponse.model_validate(deal)


@router.post("/{deal_id}/won", response_model=DealResponse)
def mark_deal_won(
    deal_id: str,
    payload: DealWonRequest,
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> DealResponse:
    try:
        deal = service.mark_as_won(organization_id, deal_id, payload.reason)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return DealResponse.model_validate(deal)


@router.post("/{deal_id}/lost", response_model=DealResponse)
def mark_deal_lost(
    deal_id: str,
    payload: DealLostRequest,
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> DealResponse:
    try:
        deal = service.mark_as_lost(organization_id, deal_id, payload.reason, payload.competitor)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return DealResponse.model_validate(deal)


@router.delete("/{deal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_deal(
    deal_id: str,
    organization_id: str = Depends(require_organization),
    service: DealService = Depends(get_deal_service),
) -> Response:
    try:
        service.remove_deal(organization_id, deal_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
