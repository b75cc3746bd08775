"""Deal model module."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.enums import DealStage, DealStatus, ServiceFrequency
from app.models.base import AuditMixin, Base, OrganizationScopedMixin, enum_column, new_id


class Deal(Base, AuditMixin, OrganizationScopedMixin):
    __tablename__ = "deals"
    __table_args__ = (
        Index("idx_deals_org_stage", "organization_id", "stage"),
        Index("idx_deals_org_status", "organization_id", "status"),
        Index("idx_deals_org_expected_close", "organization_id", "expected_close_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    contact_id: Mapped[str] = mapped_column(ForeignKey("contacts.id", ondelete="RESTRICT"), nullable=False)
    lead_id: Mapped[str | None] = mapped_column(String(36))
    quote_id: Mapped[str | None] = mapped_column(String(36))

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    service_type: Mapped[str | None] = mapped_column(String(120))
    pest_types: Mapped[list[str] | None] = mapped_column(JSON)
    property_type: Mapped[str | None] = mapped_column(String(60))
    notes: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str] | None] = mapped_column(JSON)

    status: Mapped[DealStatus] = mapped_column(enum_column(DealStatus), default=DealStatus.OPEN, nullable=False)
    stage: Mapped[DealStage] = mapped_column(enum_column(DealStage), default=DealStage.LEAD, nullable=False)

    # Money columns hold integer cents.
    deal_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    recurring_value: Mapped[int | None] = mapped_column(Integer)
    service_frequency: Mapped[ServiceFrequency | None] = mapped_column(enum_column(ServiceFrequency))
    contract_length_months: Mapped[int | None] = mapped_column(Integer)
    lifetime_value: Mapped[int | None] = mapped_column(Integer)
    win_probability: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weighted_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    owner_id: Mapped[str | None] = mapped_column(String(36), index=True)
    sales_rep_id: Mapped[str | None] = mapped_column(String(36))

    expected_close_date: Mapped[date | None] = mapped_column(Date)
    actual_close_date: Mapped[datetime | None] = mapped_column(DateTime)
    last_activity_date: Mapped[datetime | None] = mapped_column(DateTime)
    days_in_pipeline: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stage_duration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    won_reason: Mapped[str | None] = mapped_column(Text)
    lost_reason: Mapped[str | None] = mapped_column(Text)
    lost_to_competitor: Mapped[str | None] = mapped_column(String(255))

    # [{"stage", "entered_at", "exited_at", "duration_days"}], ISO-8601 timestamps.
    stage_history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": row_version}

    contact = relationship("Contact")
