"""Deal pipeline engine: stage transitions, forecasting values and stage history."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from app.core.enums import DealStage, DealStatus
from app.core.exceptions import InvalidOperationError, NotFoundError, ValidationFailure
from app.models import Deal
from app.schemas.common import Pagination
from app.schemas.deals import DealCreateRequest, DealListFilters, DealUpdatePatch
from app.services.base_service import BaseService
from app.services.stage_policy import lifetime_value, weighted_value, win_probability_for

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)

# Patch fields that must never be cleared once a deal exists.
_REQUIRED_FIELDS = ("contact_id", "title", "deal_value", "status")


def whole_days(start: datetime, end: datetime) -> int:
    """Whole days elapsed between two timestamps, floored and never negative."""
    return max(0, (end - start) // ONE_DAY)


def _parse_ts(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class DealService(BaseService):
    """Service for deal CRUD, stage transitions and outcome tracking."""

    def _validate_identity(self, organization_id: str, contact_id: str | None, title: str | None) -> None:
        if not organization_id or not str(organization_id).strip():
            raise ValidationFailure("organization_id is required.")
        if not contact_id or not str(contact_id).strip():
            raise ValidationFailure("contact_id is required.")
        if not title or len(title.strip()) < 3:
            raise ValidationFailure("title must be at least 3 characters.")

    def _recompute_values(self, deal: Deal) -> None:
        deal.weighted_value = weighted_value(deal.deal_value, deal.win_probability)
        deal.lifetime_value = lifetime_value(deal.deal_value, deal.recurring_value, deal.contract_length_months)

    def _transition(self, deal: Deal, new_stage: DealStage, now: datetime) -> None:
        """Close the open stage-history entry and append one for ``new_stage``."""
        history = [dict(entry) for entry in (deal.stage_history or [])]
        entered_at = now
        if history:
            last = history[-1]
            last_entered = _parse_ts(last["entered_at"])
            # Keep history ordered even if the clock steps backwards.
            entered_at = max(now, last_entered)
            if not last.get("exited_at"):
                last["exited_at"] = entered_at.isoformat()
                last["duration_days"] = whole_days(last_entered, entered_at)

        history.append({"stage": new_stage.value, "entered_at": entered_at.isoformat()})
        # Reassign so the JSON column is flagged dirty.
        deal.stage_history = history
        deal.stage = new_stage
        deal.days_in_pipeline = whole_days(deal.created_at, now)
        deal.stage_duration_days = 0

    def get_deal(self, organization_id: str, deal_id: str, include_deleted: bool = False) -> Deal:
        query = self.db.query(Deal).filter(Deal.id == deal_id, Deal.organization_id == organization_id)
        if not include_deleted:
            query = query.filter(Deal.deleted_at.is_(None))
        deal = query.first()
        if deal is None:
            raise NotFoundError(f"Deal with ID {deal_id} not found")
        return deal

    def list_deals(
        self,
        organization_id: str,
        filters: DealListFilters | None = None,
        pagination: Pagination | None = None,
    ) -> tuple[list[Deal], int]:
        filters = filters or DealListFilters()
        pagination = pagination or Pagination()

        query = self.db.query(Deal).filter(Deal.organization_id == organization_id, Deal.deleted_at.is_(None))
        if filters.status is not None:
            query = query.filter(Deal.status == filters.status)
        if filters.stage is not None:
            query = query.filter(Deal.stage == filters.stage)
        if filters.owner_id:
            query = query.filter(Deal.owner_id == filters.owner_id)
        if filters.sales_rep_id:
            query = query.filter(Deal.sales_rep_id == filters.sales_rep_id)
        if filters.min_value is not None:
            query = query.filter(Deal.deal_value >= filters.min_value)
        if filters.max_value is not None:
            query = query.filter(Deal.deal_value <= filters.max_value)
        if filters.created_from is not None:
            query = query.filter(Deal.created_at >= filters.created_from)
        if filters.created_to is not None:
            query = query.filter(Deal.created_at <= filters.created_to)

        total = query.count()
        items = (
            query.order_by(Deal.expected_close_date.asc(), Deal.deal_value.desc(), Deal.created_at.asc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        return items, total

    def create_deal(self, organization_id: str, payload: DealCreateRequest) -> Deal:
        self._validate_identity(organization_id, payload.contact_id, payload.title)
        if payload.deal_value < 0:
            raise ValidationFailure("deal_value must be >= 0.")

        now = self.now()
        fields = payload.model_dump()
        win_probability = fields.pop("win_probability")
        stage = DealStage(fields.pop("stage"))

        deal = Deal(
            organization_id=organization_id,
            stage=stage,
            win_probability=win_probability if win_probability is not None else win_probability_for(stage),
            stage_history=[{"stage": stage.value, "entered_at": now.isoformat()}],
            days_in_pipeline=0,
            stage_duration_days=0,
            last_activity_date=now,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self._recompute_values(deal)

        self.db.add(deal)
        self.commit()
        self.db.refresh(deal)
        logger.info(
            "deal.created",
            extra={"event": "deal.created", "organization_id": organization_id, "deal_id": deal.id},
        )
        return deal

    def update_deal(self, organization_id: str, deal_id: str, patch: DealUpdatePatch) -> Deal:
        changes: dict[str, Any] = patch.changes()
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationFailure(f"{field} cannot be cleared.")
        if changes.get("deal_value") is not None and changes["deal_value"] < 0:
            raise ValidationFailure("deal_value must be >= 0.")

        deal = self.get_deal(organization_id, deal_id)
        now = self.now()
        old_stage = deal.stage

        new_stage = changes.pop("stage", None)
        stage_changed = new_stage is not None and DealStage(new_stage) != old_stage
        if stage_changed:
            self._transition(deal, DealStage(new_stage), now)

        explicit_probability = changes.pop("win_probability", None)
        if explicit_probability is not None:
            deal.win_probability = explicit_probability
        elif stage_changed:
            deal.win_probability = win_probability_for(deal.stage)

        for field, value in changes.items():
            setattr(deal, field, value)

        self._recompute_values(deal)
        deal.last_activity_date = now
        deal.updated_at = now

        self.commit()
        self.db.refresh(deal)
        logger.info(
            "deal.updated",
            extra={
                "event": "deal.updated",
                "organization_id": organization_id,
                "deal_id": deal.id,
                "from_stage": old_stage.value,
                "to_stage": deal.stage.value,
            },
        )
        return deal

    def move_to_stage(self, organization_id: str, deal_id: str, new_stage: DealStage | str) -> Deal:
        target = DealStage(new_stage)
        deal = self.get_deal(organization_id, deal_id)
        old_stage = deal.stage
        if old_stage == target:
            raise InvalidOperationError("Deal is already in this stage")

        now = self.now()
        self._transition(deal, target, now)
        deal.win_probability = win_probability_for(target)
        self._recompute_values(deal)
        deal.last_activity_date = now
        deal.updated_at = now

        self.commit()
        self.db.refresh(deal)
        logger.info(
            "deal.stage_moved",
            extra={
                "event": "deal.stage_moved",
                "organization_id": organization_id,
                "deal_id": deal.id,
                "from_stage": old_stage.value,
                "to_stage": target.value,
            },
        )
        return deal

    def mark_as_won(self, organization_id: str, deal_id: str, reason: str | None = None) -> Deal:
        deal = self.get_deal(organization_id, deal_id)
        now = self.now()
        if deal.stage != DealStage.CLOSED_WON:
            self._transition(deal, DealStage.CLOSED_WON, now)

        deal.status = DealStatus.WON
        deal.won_reason = reason
        deal.lost_reason = None
        deal.lost_to_competitor = None
        deal.actual_close_date = now
        deal.win_probability = 100
        self._recompute_values(deal)
        deal.last_activity_date = now
        deal.updated_at = now

        self.commit()
        self.db.refresh(deal)
        logger.info(
            "deal.marked_won",
            extra={"event": "deal.marked_won", "organization_id": organization_id, "deal_id": deal.id},
        )
        return deal

    def mark_as_lost(
        self,
        organization_id: str,
        deal_id: str,
        reason: str,
        competitor: str | None = None,
    ) -> Deal:
        if not reason or not reason.strip():
            raise ValidationFailure("A lost reason is required.")

        deal = self.get_deal(organization_id, deal_id)
        now = self.now()
        if deal.stage != DealStage.CLOSED_LOST:
            self._transition(deal, DealStage.CLOSED_LOST, now)

        deal.status = DealStatus.LOST
        deal.lost_reason = reason
        deal.lost_to_competitor = competitor
        deal.won_reason = None
        deal.actual_close_date = now
        deal.win_probability = 0
        self._recompute_values(deal)
        deal.last_activity_date = now
        deal.updated_at = now

        self.commit()
        self.db.refresh(deal)
        logger.info(
            "deal.marked_lost: %s",
            reason,
            extra={"event": "deal.marked_lost", "organization_id": organization_id, "deal_id": deal.id},
        )
        return deal

    def remove_deal(self, organization_id: str, deal_id: str) -> None:
        deal = self.get_deal(organization_id, deal_id)
        deal.deleted_at = self.now()
        self.commit()
        logger.info(
            "deal.soft_deleted",
            extra={"event": "deal.soft_deleted", "organization_id": organization_id, "deal_id": deal_id},
        )
