import logging
import random

import pytest

from escape_velocity.competitors import (Competitor, FundingStage, ThreatLevel, calculate_threat_level,
                                         competitive_landscape, update_competitors)
from escape_velocity.customers import (calculate_customer_metrics, customer_health_score, customer_insights,
                                       update_customer_segments)
from escape_velocity.market import (ConditionCategory, FundingClimate, MarketCondition, MarketEffect, MarketTarget,
                                    Sentiment, effective_churn, funding_multiplier, get_market_status,
                                    growth_multiplier, update_market_conditions)
from escape_velocity.state import copy_state


def _recession(week=0, duration=26):
    return MarketCondition(
        "recession_test", "Economic Recession", "Downturn", ConditionCategory.ECONOMIC, 20.0, duration,
        (MarketEffect(MarketTarget.FUNDING, 0.6), MarketEffect(MarketTarget.GROWTH, 0.8),
         MarketEffect(MarketTarget.CHURN, 1.3), MarketEffect(MarketTarget.MORALE, additive=-2.0)),
        week_started=week)


# ==================== Market ====================

def test_multipliers_read_conditions(indie):
    indie.market.conditions = [_recession()]
    assert funding_multiplier(indie) == pytest.approx(0.6)
    assert growth_multiplier(indie) == pytest.approx(0.8 * indie.market.demand_multiplier)
    assert effective_churn(indie) == pytest.approx(5.0 * 1.3)


def test_effective_churn_bounded(indie):
    indie.churn_rate = 50
    assert effective_churn(indie) == 20.0


def test_update_market_conditions_is_pure(indie):
    conditions = [_recession()]
    before = copy_state(indie)
    new = update_market_conditions(indie, conditions, random.Random(1))
    assert indie == before
    assert len(conditions) == 1
    assert new.market.conditions[0].id == "recession_test"
    assert new.morale == pytest.approx(78.0)
    assert new.market.demand_multiplier != indie.market.demand_multiplier


def test_expired_conditions_drop(indie):
    indie.week = 10
    new = update_market_conditions(indie, [_recession(week=0, duration=10)], random.Random(1))
    assert all(c.id != "recession_test" for c in new.market.conditions)


def test_random_walk_stays_in_bounds(indie):
    state = indie
    for week in range(60):
        state = update_market_conditions(state, state.market.conditions, random.Random(week))
        assert 0.5 <= state.market.demand_multiplier <= 1.5
        assert 0.0 <= state.market.competitive_pressure <= 100.0


@pytest.mark.parametrize("week", [10, 30, 60])
def test_random_walk_ignores_company_state(indie, week):
    indie.week = week
    famous = copy_state(indie)
    famous.reputation = 65
    famous.wau = 30_000
    famous.compliance_risk = 90
    quiet = update_market_conditions(indie, [])
    loud = update_market_conditions(famous, [])
    assert quiet.market.demand_multiplier == loud.market.demand_multiplier


def test_market_status(indie):
    indie.market.conditions = [_recession()]
    status = get_market_status(indie)
    assert status.sentiment == Sentiment.BEARISH
    assert status.funding_climate == FundingClimate.FROZEN
    assert "Economic Recession" in status.summary
    assert status.landscape.competitors


def test_neutral_market(indie):
    status = get_market_status(indie)
    assert status.sentiment == Sentiment.NEUTRAL
    assert status.funding_climate == FundingClimate.NORMAL
    assert 0 <= status.market_demand <= 100


# ==================== Competitors ====================

def test_threat_level(indie):
    giant = Competitor("giant", "Giant", FundingStage.SERIES_C, market_share=40, funding=50_000_000,
                       reputation=90, product_quality=90, marketing_spend=100_000)
    tiny = Competitor("tiny", "Tiny", FundingStage.BOOTSTRAPPED, market_share=0.5, funding=10_000,
                      reputation=10, product_quality=20, marketing_spend=0)
    assert calculate_threat_level(giant, indie) == ThreatLevel.CRITICAL
    assert calculate_threat_level(tiny, indie) == ThreatLevel.LOW


def test_update_competitors_is_pure(indie):
    before = copy_state(indie)
    comps = indie.competitors
    new = update_competitors(indie, comps, random.Random(3))
    assert indie == before
    assert [c.id for c in new.competitors][:2] == ["techcorp", "startupxyz"]
    assert new.competitors[0].market_share != comps[0].market_share


def test_landscape_summary(indie):
    landscape = competitive_landscape(indie)
    assert landscape.total_market_share == pytest.approx(40.0)
    assert landscape.summary.startswith("Facing 2 competitors")
    assert "well-funded" in landscape.summary


def test_empty_landscape(indie):
    landscape = competitive_landscape(indie, [])
    assert landscape.summary == "No significant competitors in your market yet."


def test_fading_competitor_dropped_and_logged(indie, caplog):
    fading = Competitor("fading", "Fading", FundingStage.BOOTSTRAPPED, market_share=0.01, funding=0,
                        reputation=0, product_quality=10, marketing_spend=0)
    with caplog.at_level(logging.DEBUG, logger="escape_velocity.competitors"):
        new = update_competitors(indie, indie.competitors + [fading], random.Random(3))
    assert "fading" not in [c.id for c in new.competitors]
    assert "competitor fading dropped out" in caplog.text


# ==================== Customers ====================

def test_customers_acquired_with_marketing(indie):
    indie.ad_spend_this_week = 10_000
    new = update_customer_segments(indie, indie.customer_segments)
    metrics = calculate_customer_metrics(new)
    assert metrics.total_customers > 0
    assert metrics.active_customers == metrics.total_customers
    assert calculate_customer_metrics(indie).total_customers == 0


def test_acquisition_logged(indie, caplog):
    indie.ad_spend_this_week = 10_000
    with caplog.at_level(logging.DEBUG, logger="escape_velocity.customers"):
        update_customer_segments(indie, indie.customer_segments)
    assert "customers acquired" in caplog.text


def test_no_acquisition_without_effort(indie):
    new = update_customer_segments(indie, indie.customer_segments)
    assert calculate_customer_metrics(new).total_customers == 0


def test_churn_tracks_satisfaction(indie):
    indie.tech_debt = 90
    indie.morale = 10
    new = update_customer_segments(indie, indie.customer_segments)
    for segment in new.customer_segments:
        assert segment.churn_rate > segment.base_churn_rate


def test_segment_rates_do_not_compound(indie):
    state = indie
    for _ in range(5):
        state = update_customer_segments(state, state.customer_segments)
    again = update_customer_segments(state, state.customer_segments)
    for a, b in zip(state.customer_segments, again.customer_segments):
        assert a.churn_rate == pytest.approx(b.churn_rate)
        assert a.conversion_rate == pytest.approx(b.conversion_rate)


def test_customer_health_and_insights(indie):
    indie.ad_spend_this_week = 10_000
    metrics = calculate_customer_metrics(update_customer_segments(indie, indie.customer_segments))
    health = customer_health_score(metrics)
    assert 0 <= health <= 100
    lines = customer_insights(metrics)
    assert lines
    assert "customer health" in lines[-1].lower()
