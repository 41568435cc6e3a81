import random

import pytest

from escape_velocity.config import EVENT_TUNING
from escape_velocity.errors import ChoiceNotFoundError
from escape_velocity.events import (EVENT_TEMPLATES, TEMPLATES_BY_ID, EventKind, apply_event_choice, check_for_events,
                                    event_probability, instantiate, trigger_events, trigger_excess)
from escape_velocity.state import copy_state


class AlwaysRoll(random.Random):
    """Every roll succeeds"""

    def random(self):
        return 0.0


class NeverRoll(random.Random):
    def random(self):
        return 0.999999


# ==================== Probability ====================

def test_threshold_gates_event(indie):
    outage = TEMPLATES_BY_ID["production_outage"]
    assert trigger_excess(outage, indie) is None
    assert event_probability(outage, indie) == 0.0
    indie.tech_debt = 77
    assert trigger_excess(outage, indie) == pytest.approx(0.1)
    assert event_probability(outage, indie) == pytest.approx(0.05 * 1.1)


def test_probability_grows_with_excess_and_caps(indie):
    outage = TEMPLATES_BY_ID["production_outage"]
    indie.tech_debt = 75
    low = event_probability(outage, indie)
    indie.tech_debt = 95
    high = event_probability(outage, indie)
    assert high > low
    assert high <= EVENT_TUNING.probability_cap


def test_below_threshold_events(indie):
    quits = TEMPLATES_BY_ID["key_employee_quits"]
    indie.week = 10
    assert event_probability(quits, indie) == 0.0
    indie.morale = 30
    assert event_probability(quits, indie) > 0.0


def test_extra_condition(indie):
    boom = TEMPLATES_BY_ID["market_boom"]
    indie.reputation = 80
    assert event_probability(boom, indie) == 0.0
    indie.week = 14
    assert event_probability(boom, indie) > 0.0


# ==================== Rolls ====================

def test_check_for_events_is_pure_and_capped(indie):
    indie.week = 30
    indie.tech_debt = 90
    indie.compliance_risk = 90
    indie.morale = 20
    indie.reputation = 80
    before = copy_state(indie)
    fired = check_for_events(indie, [], AlwaysRoll())
    assert 0 < len(fired) <= 2
    assert indie == before


def test_active_events_are_skipped(indie):
    indie.week = 30
    indie.tech_debt = 90
    active = [instantiate(TEMPLATES_BY_ID["economic_downturn"], indie)]
    fired = check_for_events(indie, active, AlwaysRoll())
    assert "economic_downturn" not in [e.id for e in fired]


def test_nothing_fires_without_luck(indie):
    indie.tech_debt = 90
    assert check_for_events(indie, [], NeverRoll()) == []


def test_every_template_consumes_a_draw(indie):
    rng = random.Random(11)
    check_for_events(indie, [], rng)
    reference = random.Random(11)
    for _ in EVENT_TEMPLATES:
        reference.random()
    assert rng.random() == reference.random()


def test_automatic_event_applies_and_counts_incident(indie):
    indie.tech_debt = 90
    indie.week = 3
    rep = indie.reputation
    fired = trigger_events(indie, AlwaysRoll())
    ids = [e.id for e in fired]
    assert "production_outage" in ids or "security_breach" in ids
    assert indie.incident_count >= 1
    assert indie.incident_weeks == [3] * indie.incident_count
    if "production_outage" in ids:
        assert indie.reputation < rep
    for event in fired:
        assert indie.event_cooldowns[event.id] == TEMPLATES_BY_ID[event.id].cooldown_weeks


def test_dilemma_waits_for_choice(indie):
    indie.week = 30
    fired = trigger_events(indie, AlwaysRoll())
    dilemmas = [e for e in fired if e.kind == EventKind.DILEMMA]
    assert dilemmas
    assert [e.id for e in indie.active_events] == [e.id for e in dilemmas]


def test_severity_scales_effects(vc):
    event = instantiate(TEMPLATES_BY_ID["market_shift"], vc)
    assert event.effects[0].amount == pytest.approx(5 * 1.2)


# ==================== Choices ====================

def test_apply_event_choice(indie):
    indie.week = 20
    indie.active_events.append(instantiate(TEMPLATES_BY_ID["market_boom"], indie))
    new = apply_event_choice(indie, "market_boom", "raise_funding")
    assert new.bank == pytest.approx(indie.bank + 750_000)
    assert new.founder_equity == pytest.approx(85.0)
    assert new.active_events == []
    assert len(indie.active_events) == 1


def test_apply_event_choice_with_event_object(indie):
    event = instantiate(TEMPLATES_BY_ID["economic_downturn"], indie)
    new = apply_event_choice(indie, event, "cut_costs")
    assert new.burn == pytest.approx(indie.burn - 8_000)


def test_unknown_choice(indie):
    indie.active_events.append(instantiate(TEMPLATES_BY_ID["market_boom"], indie))
    with pytest.raises(ChoiceNotFoundError) as err:
        apply_event_choice(indie, "market_boom", "panic")
    assert err.value.event_id == "market_boom"
    assert err.value.choice_id == "panic"


def test_inactive_event(indie):
    with pytest.raises(ChoiceNotFoundError):
        apply_event_choice(indie, "market_boom", "raise_funding")
