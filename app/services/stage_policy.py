"""Default win probability per pipeline stage."""

from __future__ import annotations

from types import MappingProxyType

from app.core.enums import DealStage

STAGE_WIN_PROBABILITY = MappingProxyType(
    {
        DealStage.LEAD: 10,
        DealStage.INSPECTION_SCHEDULED: 20,
        DealStage.INSPECTION_COMPLETED: 40,
        DealStage.QUOTE_SENT: 50,
        DealStage.NEGOTIATION: 70,
        DealStage.VERBAL_COMMITMENT: 80,
        DealStage.CONTRACT_SENT: 90,
        DealStage.CLOSED_WON: 100,
        DealStage.CLOSED_LOST: 0,
    }
)

_missing = set(DealStage) - set(STAGE_WIN_PROBABILITY)
if _missing:
    raise RuntimeError(f"Stage policy table is missing stages: {sorted(s.value for s in _missing)}")


def win_probability_for(stage: DealStage | str) -> int:
    return STAGE_WIN_PROBABILITY[DealStage(stage)]


def weighted_value(deal_value: int, win_probability: int) -> int:
    """Deal value scaled by win probability, rounded half up to whole cents."""
    return (deal_value * win_probability + 50) // 100


def lifetime_value(deal_value: int, recurring_value: int | None, contract_length_months: int | None) -> int | None:
    if recurring_value is None or contract_length_months is None:
        return None
    return recurring_value * contract_length_months + deal_value
