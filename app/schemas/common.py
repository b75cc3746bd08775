"""Common schema module."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Pagination(BaseModel):
    limit: int = Field(default=20, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class PageMeta(BaseModel):
    limit: int
    offset: int
    total: int
