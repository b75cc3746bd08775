"""Quote lifecycle endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.api.v1._scope import http_error, require_organization
from app.core.enums import QuoteStatus
from app.core.exceptions import PipelineException
from app.database.db import get_db
from app.schemas.analytics import QuoteStatistics
from app.schemas.common import PageMeta, Pagination
from app.schemas.quotes import (
    QuoteAcceptRequest,
    QuoteCreateRequest,
    QuoteListFilters,
    QuoteListResponse,
    QuoteRejectRequest,
    QuoteResponse,
    QuoteSendRequest,
    QuoteUpdatePatch,
)
from app.services.quote_service import QuoteService
from app.services.quote_statistics_service import QuoteStatisticsService

router = APIRouter(prefix="/quotes", tags=["quotes"])


def get_quote_service(db: Session = Depends(get_db)) -> QuoteService:
    return QuoteService(db=db)


def get_quote_statistics(db: Session = Depends(get_db)) -> QuoteStatisticsService:
    return QuoteStatisticsService(db=db)


@router.get("/statistics", response_model=QuoteStatistics)
def quote_statistics(
    organization_id: str = Depends(require_organization),
    reporter: QuoteStatisticsService = Depends(get_quote_statistics),
) -> QuoteStatistics:
    return reporter.statistics(organization_id)


@router.post("/expire-overdue")
def expire_overdue(
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> dict:
    try:
        expired = service.expire_overdue(organization_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return {"status": "ok", "expired": expired}


@router.get("", response_model=QuoteListResponse)
def list_quotes(
    quote_status: QuoteStatus | None = Query(default=None, alias="status"),
    contact_id: str | None = Query(default=None),
    deal_id: str | None = Query(default=None),
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=20, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteListResponse:
    filters = QuoteListFilters(
        status=quote_status,
        contact_id=contact_id,
        deal_id=deal_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items, total = service.list_quotes(organization_id, filters, Pagination(limit=limit, offset=offset))
    return QuoteListResponse(
        items=[QuoteResponse.model_validate(quote) for quote in items],
        page=PageMeta(limit=limit, offset=offset, total=total),
    )


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
def create_quote(
    payload: QuoteCreateRequest,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.create_quote(organization_id, payload)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.get("/{quote_id}", response_model=QuoteResponse)
def get_quote(
    quote_id: str,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.get_quote(organization_id, quote_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.patch("/{quote_id}", response_model=QuoteResponse)
def update_quote(
    quote_id: str,
    patch: QuoteUpdatePatch,
    create_new_version: bool = Query(default=False),
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.update_quote(organization_id, quote_id, patch, create_new_version=create_new_version)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.get("/{quote_id}/versions", response_model=list[QuoteResponse])
def version_history(
    quote_id: str,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> list[QuoteResponse]:
    try:
        versions = service.get_version_history(organization_id, quote_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return [QuoteResponse.model_validate(quote) for quote in versions]


@router.post("/{quote_id}/clone", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
def clone_quote(
    quote_id: str,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.clone_quote(organization_id, quote_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.post("/{quote_id}/send", response_model=QuoteResponse)
def send_quote(
    quote_id: str,
    payload: QuoteSendRequest,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.send_quote(organization_id, quote_id, payload)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.post("/{quote_id}/view", response_model=QuoteResponse)
def record_view(
    quote_id: str,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.record_view(organization_id, quote_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.post("/{quote_id}/accept", response_model=QuoteResponse)
def accept_quote(
    quote_id: str,
    payload: QuoteAcceptRequest,
    request: Request,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    origin = request.client.host if request.client else None
    try:
        quote = service.accept_quote(organization_id, quote_id, payload, origin_address=origin)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.post("/{quote_id}/reject", response_model=QuoteResponse)
def reject_quote(
    quote_id: str,
    payload: QuoteRejectRequest,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    try:
        quote = service.reject_quote(organization_id, quote_id, payload.rejection_reason)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return QuoteResponse.model_validate(quote)


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quote(
    quote_id: str,
    organization_id: str = Depends(require_organization),
    service: QuoteService = Depends(get_quote_service),
) -> Response:
    try:
        service.remove_quote(organization_id, quote_id)
    except PipelineException as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
