import pytest

from escape_velocity.effects import (Metric, add, apply_effects, compounding_impact, default_compounding_effects,
                                     process_compounding_effects, release_pending_effects, resolve_effects, scale)
from escape_velocity.roster import TeamRoster
from escape_velocity.state import copy_state


# ==================== Resolver ====================

def test_additive_then_multiplicative(indie):
    apply_effects(indie, [add(Metric.MRR, 1_000), scale(Metric.MRR, 1.5)])
    assert indie.mrr == pytest.approx(1_500)


def test_order_matters(indie):
    apply_effects(indie, [scale(Metric.MRR, 1.5), add(Metric.MRR, 1_000)])
    assert indie.mrr == pytest.approx(1_000)


def test_overshoot_clamped_once(indie):
    new = resolve_effects(indie, [add(Metric.MORALE, 50), add(Metric.MORALE, -30)])
    # 80 + 50 - 30 without intermediate clamping
    assert new.morale == pytest.approx(100.0)
    new = resolve_effects(indie, [add(Metric.MORALE, 30), add(Metric.MORALE, -30)])
    assert new.morale == pytest.approx(80.0)


def test_resolve_effects_is_pure(indie):
    before = copy_state(indie)
    resolve_effects(indie, [add(Metric.BANK, -10_000)])
    assert indie == before


def test_bank_is_not_clamped(indie):
    new = resolve_effects(indie, [add(Metric.BANK, -100_000)])
    assert new.bank == pytest.approx(-50_000)


def test_delayed_effects_wait(indie):
    applied = apply_effects(indie, [add(Metric.REPUTATION, 10, delay_weeks=2)])
    assert applied == []
    assert indie.reputation == 50
    indie.week = 1
    assert release_pending_effects(indie) == []
    indie.week = 2
    released = release_pending_effects(indie)
    assert len(released) == 1
    assert indie.reputation == 60
    assert indie.pending_effects == []


def test_describe():
    assert add(Metric.TECH_DEBT, -3).describe() == "tech debt -3"
    assert scale(Metric.MRR, 1.05).describe() == "mrr x1.05"


# ==================== Compounding ====================

def test_compounding_activates_when_triggered(indie):
    indie.reputation = 65
    table = default_compounding_effects()
    new = process_compounding_effects(indie, table)
    active = {e.id for e in new.compounding_effects if e.active}
    assert "reputation_flywheel" in active
    assert new.reputation == pytest.approx(65.2)
    assert not any(e.active for e in table)
    assert any("Reputation Flywheel" in m for m in new.messages)


def test_permanent_effect_stops_with_trigger(indie):
    indie.reputation = 65
    state = process_compounding_effects(indie, indie.compounding_effects)
    state.reputation = 40
    state = process_compounding_effects(state, state.compounding_effects)
    flywheel = next(e for e in state.compounding_effects if e.id == "reputation_flywheel")
    assert not flywheel.active


def test_temporary_effect_expires(indie):
    indie.momentum = 90
    state = indie
    for _ in range(13):
        state.momentum = 90
        state = process_compounding_effects(state, state.compounding_effects)
    launch = next(e for e in state.compounding_effects if e.id == "product_launch_boost")
    assert launch.expired
    assert not launch.active


def test_compounding_impact(indie):
    indie.reputation = 80
    state = process_compounding_effects(indie, indie.compounding_effects)
    impact = compounding_impact(state.compounding_effects)
    assert impact["Reputation"] == pytest.approx(75.0)
    assert impact["Revenue"] == 0.0


# ==================== Roster ====================

def test_roster_hire_and_depart():
    roster = TeamRoster()
    first = roster.hire(week=1)
    second = roster.hire(week=2, role="sales")
    assert (first.member_id, second.member_id) == (1, 2)
    assert roster.headcount == 2
    assert roster.newest_active() == 2
    roster.depart(2, week=5, reason="resigned")
    assert roster.headcount == 1
    assert roster.members[2].departed_week == 5
    assert roster.turnover == pytest.approx(0.5)
    with pytest.raises(KeyError):
        roster.depart(2, week=6)
