"""Shared organization scoping and error mapping for API v1 route modules."""

from __future__ import annotations

from fastapi import Header, HTTPException, status

from app.core.exceptions import (
    ConcurrentModificationError,
    DispatchFailure,
    InvalidOperationError,
    NotFoundError,
    PipelineException,
    ValidationFailure,
)


def require_organization(
    x_organization_id: str | None = Header(default=None, alias="X-Organization-Id"),
) -> str:
    if x_organization_id is None or not x_organization_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Organization-Id header is required.")
    return x_organization_id.strip()


def map_domain_error(exc: PipelineException) -> tuple[int, str]:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND, str(exc)
    if isinstance(exc, (InvalidOperationError, ConcurrentModificationError)):
        return status.HTTP_409_CONFLICT, str(exc)
    if isinstance(exc, ValidationFailure):
        return status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc)
    if isinstance(exc, DispatchFailure):
        return status.HTTP_502_BAD_GATEWAY, str(exc)
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error."


def http_error(exc: PipelineException) -> HTTPException:
    code, detail = map_domain_error(exc)
    return HTTPException(status_code=code, detail=detail)
