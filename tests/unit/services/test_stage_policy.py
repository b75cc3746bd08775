from __future__ import annotations

from app.core.enums import DealStage
from app.services.stage_policy import STAGE_WIN_PROBABILITY, lifetime_value, weighted_value, win_probability_for


def test_every_stage_has_a_probability():
    assert set(STAGE_WIN_PROBABILITY) == set(DealStage)
    assert win_probability_for(DealStage.LEAD) == 10
    assert win_probability_for("negotiation") == 70
    assert win_probability_for(DealStage.CLOSED_WON) == 100
    assert win_probability_for(DealStage.CLOSED_LOST) == 0


def test_weighted_value_rounds_half_up():
    assert weighted_value(75000, 10) == 7500
    assert weighted_value(75000, 70) == 52500
    assert weighted_value(150, 33) == 50  # 49.5
    assert weighted_value(149, 33) == 49  # 49.17
    assert weighted_value(0, 90) == 0


def test_lifetime_value_requires_both_recurring_fields():
    assert lifetime_value(10000, 2500, 12) == 40000
    assert lifetime_value(10000, 2500, None) is None
    assert lifetime_value(10000, None, 12) is None
    assert lifetime_value(10000, 0, 12) == 10000
