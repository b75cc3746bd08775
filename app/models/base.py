"""Shared SQLAlchemy base and common mixins for sales models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Return UTC now as a naive datetime; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def enum_column(enum_cls: type[PyEnum]) -> Enum:
    """String-backed enum column that persists member values rather than names."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=40,
        validate_strings=True,
    )


class Base(DeclarativeBase):
    """Declarative base class for the sales schema."""


class AuditMixin:
    """Standard audit fields for all domain models."""

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class OrganizationScopedMixin:
    """Mixin enforcing organization ownership of business rows."""

    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
