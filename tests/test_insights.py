import math

import pytest

from escape_velocity.engine import take_turn
from escape_velocity.insights import (Band, Severity, WarningLevel, classify, failure_risk, forecast_runway_weeks,
                                      generate_insights, generate_warnings, history_trend)
from escape_velocity.state import copy_state, update_derived_metrics


@pytest.mark.parametrize("metric,value,band", [
    ("runway_months", 12, Band.GOOD),
    ("runway_months", 4, Band.WARNING),
    ("runway_months", 2, Band.CRITICAL),
    ("churn_rate", 2, Band.GOOD),
    ("churn_rate", 4, Band.WARNING),
    ("churn_rate", 8, Band.CRITICAL),
    ("tech_debt", 75, Band.CRITICAL),
])
def test_classify(metric, value, band):
    assert classify(metric, value) == band


def test_insights_on_growth(indie):
    current = copy_state(indie)
    current.mrr = 5_000
    current.wau = 200
    ids = [i.title for i in generate_insights(indie, current)]
    assert "Revenue Growth" in ids
    assert "User Growth" in ids


def test_insights_on_decline(indie):
    indie.mrr = 10_000
    current = copy_state(indie)
    current.mrr = 5_000
    current.morale = 60
    insights = generate_insights(indie, current)
    titles = [i.title for i in insights]
    assert "Revenue Decline" in titles
    assert "Morale Decline" in titles
    assert all(i.severity == Severity.WARNING for i in insights if i.title.endswith("Decline"))


def test_runway_insight_matches_band(indie):
    current = copy_state(indie)
    current.bank = 16_000
    update_derived_metrics(current)
    runway = [i for i in generate_insights(indie, current) if i.category == "Cash"]
    assert runway[0].severity == Severity.CRITICAL


def test_warnings_sorted_by_urgency(indie):
    indie.bank = 4_000
    indie.morale = 10
    indie.tech_debt = 90
    update_derived_metrics(indie)
    warnings = generate_warnings(indie)
    ids = [w.id for w in warnings]
    assert "cash_runway_critical" in ids
    assert "morale_crisis" in ids
    assert "tech_debt_crisis" in ids
    order = [WarningLevel.CRITICAL, WarningLevel.HIGH, WarningLevel.MEDIUM, WarningLevel.LOW]
    levels = [order.index(w.level) for w in warnings]
    assert levels == sorted(levels)
    assert failure_risk(indie, warnings) == 100.0


def test_healthy_company_low_risk(thriving):
    update_derived_metrics(thriving)
    thriving.bank = 1_000_000
    update_derived_metrics(thriving)
    assert failure_risk(thriving) < 30


def test_history_trend(indie):
    assert history_trend(indie, "bank") is None
    state = indie
    for _ in range(4):
        state = take_turn(state, [])
    trend = history_trend(state, "bank")
    assert trend.points == 4
    assert trend.slope == pytest.approx(-8_000)
    assert trend.r_squared == pytest.approx(1.0)
    assert forecast_runway_weeks(state) == pytest.approx(state.bank / 8_000)


def test_forecast_without_history(indie):
    assert forecast_runway_weeks(indie) == pytest.approx(50_000 / 8_000)
    indie.mrr = 10_000
    assert math.isinf(forecast_runway_weeks(indie))
