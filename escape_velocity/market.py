"""
Escape Velocity - Market Model
==============================
Exogenous market conditions (economic cycle, industry hype, competition,
regulation) plus the demand/pressure random walk. Condition multipliers are
read where they matter (WAU growth, churn, fundraising) instead of being
folded into the stored rates, so a long recession does not compound weekly.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from .competitors import CompetitiveLandscape, competitive_landscape, competitive_pressure_score
from .config import MARKET_TUNING
from .rng import derive_rng
from .state import GameState, clamp, clamp_state, copy_state, update_derived_metrics, validate_state

logger = logging.getLogger(__name__)


# ==================== Enums ====================

class ConditionCategory(Enum):
    ECONOMIC = "Economic"
    INDUSTRY = "Industry"
    COMPETITIVE = "Competitive"
    REGULATORY = "Regulatory"


class MarketTarget(Enum):
    """What a market effect touches"""
    FUNDING = "Funding"  # multiplier on fundraise chance
    GROWTH = "Growth"  # multiplier on WAU growth
    CHURN = "Churn"  # multiplier on churn
    REPUTATION = "Reputation"  # weekly additive drift
    MORALE = "Morale"  # weekly additive drift


class Sentiment(Enum):
    BULLISH = "Bullish"
    NEUTRAL = "Neutral"
    BEARISH = "Bearish"


class FundingClimate(Enum):
    HOT = "Hot"
    NORMAL = "Normal"
    FROZEN = "Frozen"


class PressureLevel(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# ==================== Data Classes ====================

@dataclass(frozen=True)
class MarketEffect:
    target: MarketTarget
    multiplier: float = 1.0
    additive: float = 0.0
    description: str = ""


@dataclass
class MarketCondition:
    """A time-limited market condition"""
    id: str
    name: str
    description: str
    category: ConditionCategory
    intensity: float  # 0..100
    duration_weeks: int
    effects: Sequence[MarketEffect] = ()
    week_started: int = 0

    def weeks_remaining(self, week: int) -> int:
        return self.duration_weeks - (week - self.week_started)

    def effect_for(self, target: MarketTarget) -> Optional[MarketEffect]:
        for effect in self.effects:
            if effect.target == target:
                return effect
        return None


@dataclass
class MarketSnapshot:
    """Read-only view of the market for the dashboard"""
    week: int
    sentiment: Sentiment
    funding_climate: FundingClimate
    competitive_pressure: PressureLevel
    regulatory_pressure: PressureLevel
    market_demand: float  # 0..100 trend value
    competition_level: float  # 0..100 trend value
    funding_environment: float  # 0..100 trend value
    demand_multiplier: float
    pressure_index: float  # raw competitive pressure 0..100
    conditions: List[MarketCondition] = field(default_factory=list)
    landscape: Optional[CompetitiveLandscape] = None
    summary: str = ""


# ==================== Multipliers ====================

def _product(state: GameState, target: MarketTarget) -> float:
    value = 1.0
    for condition in state.market.conditions:
        effect = condition.effect_for(target)
        if effect is not None:
            value *= effect.multiplier
    return value


def funding_multiplier(state: GameState) -> float:
    """Combined fundraise multiplier of the active conditions"""
    return _product(state, MarketTarget.FUNDING)


def growth_multiplier(state: GameState) -> float:
    return _product(state, MarketTarget.GROWTH) * state.market.demand_multiplier


def churn_multiplier(state: GameState) -> float:
    # competitive pressure above the neutral 30 adds up to 20% churn
    pressure = max(0.0, state.market.competitive_pressure - 30.0) / 70.0 * 0.2
    return _product(state, MarketTarget.CHURN) * (1.0 + pressure)


def effective_churn(state: GameState) -> float:
    """Churn rate after market effects, held to the market churn bounds"""
    return clamp(state.churn_rate * churn_multiplier(state), MARKET_TUNING.churn_min, MARKET_TUNING.churn_max)


# ==================== Condition Generation ====================

def _generate_conditions(state: GameState, rng: random.Random) -> List[MarketCondition]:
    week = state.week
    found = []

    if week > 52 and rng.random() < 0.15:
        cycle = (week % 104) / 104
        if cycle < 0.3:
            found.append(MarketCondition(
                f"recession_{week}", "Economic Recession",
                "Broader economic downturn affecting all businesses",
                ConditionCategory.ECONOMIC, 75 + rng.random() * 15, 26 + rng.randrange(26),
                (MarketEffect(MarketTarget.FUNDING, 0.6, description="Funding environment freezes"),
                 MarketEffect(MarketTarget.GROWTH, 0.8, description="Slower user growth"),
                 MarketEffect(MarketTarget.CHURN, 1.3, description="Higher churn in downturn"),
                 MarketEffect(MarketTarget.MORALE, additive=-2.0, description="Economic uncertainty affects morale"))))
        elif cycle > 0.7:
            found.append(MarketCondition(
                f"boom_{week}", "Economic Boom",
                "Strong economic growth benefiting innovative companies",
                ConditionCategory.ECONOMIC, 80 + rng.random() * 15, 20 + rng.randrange(20),
                (MarketEffect(MarketTarget.FUNDING, 1.4, description="Abundant funding available"),
                 MarketEffect(MarketTarget.GROWTH, 1.2, description="Accelerated user growth"),
                 MarketEffect(MarketTarget.REPUTATION, additive=1.0, description="Economic tailwinds help reputation"))))

    if state.reputation > 60 and rng.random() < 0.1:
        found.append(MarketCondition(
            f"industry_hype_{week}", "Industry Hype Cycle",
            "Your industry is getting media attention and investor interest",
            ConditionCategory.INDUSTRY, min(90.0, state.reputation + rng.random() * 20), 12 + rng.randrange(12),
            (MarketEffect(MarketTarget.FUNDING, 1.3, description="Easier fundraising in a hyped sector"),
             MarketEffect(MarketTarget.GROWTH, 1.15, description="Industry buzz drives user interest"),
             MarketEffect(MarketTarget.REPUTATION, additive=2.0, description="Industry momentum boosts reputation"))))

    if state.wau > 25_000 and rng.random() < 0.12:
        found.append(MarketCondition(
            f"competition_{week}", "Increased Competition",
            "Market success attracts well-funded competitors",
            ConditionCategory.COMPETITIVE, 60 + rng.random() * 25, 16 + rng.randrange(16),
            (MarketEffect(MarketTarget.GROWTH, 0.9, description="Competitors capture market share"),
             MarketEffect(MarketTarget.CHURN, 1.1, description="Users compare alternatives"),
             MarketEffect(MarketTarget.FUNDING, 0.95, description="Competition makes fundraising harder"))))

    if state.compliance_risk > 40 and rng.random() < 0.08:
        found.append(MarketCondition(
            f"regulation_{week}", "Regulatory Scrutiny",
            "Increased regulatory attention on your industry",
            ConditionCategory.REGULATORY, 70 + rng.random() * 20, 20 + rng.randrange(20),
            (MarketEffect(MarketTarget.GROWTH, 0.85, description="Regulatory uncertainty slows growth"),
             MarketEffect(MarketTarget.CHURN, 1.15, description="Users worry about regulatory risk"),
             MarketEffect(MarketTarget.MORALE, additive=-3.0, description="Regulatory pressure stresses the team"))))

    return found


def advance_market(state: GameState, conditions: List[MarketCondition], rng: random.Random,
                   walk_rng: Optional[random.Random] = None) -> List[MarketCondition]:
    """Advance conditions and the random walk one week (in place on `state`)

    The walk draws from `walk_rng` when given, so how many condition rolls
    the company triggers does not move demand or pressure.

    Returns:
        The surviving condition list, also stored on `state.market`
    """
    alive = [c for c in conditions if c.weeks_remaining(state.week) > 0]
    for expired in conditions:
        if expired not in alive:
            logger.debug("Market condition %s ended in week %d", expired.id, state.week)

    for candidate in _generate_conditions(state, rng):
        similar = any(c.category == candidate.category and abs(c.intensity - candidate.intensity) < 20 for c in alive)
        if similar:
            continue
        candidate.week_started = state.week
        alive.append(candidate)
        state.messages.append(f"Market shift: {candidate.name}")
        logger.debug("Market condition %s started in week %d", candidate.id, state.week)

    state.market.conditions = alive

    # additive drifts
    for condition in alive:
        for effect in condition.effects:
            if effect.target == MarketTarget.REPUTATION:
                state.reputation += effect.additive
            elif effect.target == MarketTarget.MORALE:
                state.morale += effect.additive

    # random walk with gentle pull back toward the neutral point
    walk_rng = walk_rng if walk_rng is not None else rng
    tuning = MARKET_TUNING
    demand = state.market.demand_multiplier
    demand += walk_rng.uniform(-tuning.demand_step, tuning.demand_step) + (1.0 - demand) * 0.1
    state.market.demand_multiplier = clamp(demand, tuning.demand_min, tuning.demand_max)

    pressure = state.market.competitive_pressure
    landscape_pressure = competitive_pressure_score(state, competitive_landscape(state))
    pressure += walk_rng.uniform(-tuning.pressure_step, tuning.pressure_step) + (landscape_pressure - pressure) * 0.1
    state.market.competitive_pressure = clamp(pressure, tuning.pressure_min, tuning.pressure_max)
    return alive


# ==================== Status ====================

def market_trends(state: GameState) -> dict:
    """Dashboard trend values on a 0..100 scale"""
    return {
        "market_demand": clamp(50 + (state.reputation - 50) + (state.momentum - 50), 0.0, 100.0),
        "competition_level": clamp(30 + state.week / 2, 0.0, 100.0),
        "funding_environment": clamp(60 + math.sin(state.week / 10) * 20, 0.0, 100.0),
    }


def _pressure_level(intensity: float) -> PressureLevel:
    if intensity > 70:
        return PressureLevel.HIGH
    if intensity > 30:
        return PressureLevel.MEDIUM
    return PressureLevel.LOW


def get_market_status(state: GameState) -> MarketSnapshot:
    """Read-only market and competitor snapshot

    Args:
        state: Current snapshot (not modified)

    Returns:
        MarketSnapshot with sentiment, funding climate, pressure levels,
        trend values, the competitive landscape and a summary sentence
    """
    validate_state(state)
    view = copy_state(state)
    active = view.market.conditions

    economic = [c.intensity for c in active if c.category == ConditionCategory.ECONOMIC]
    economic_intensity = sum(economic) / len(economic) if economic else 50.0
    if economic_intensity > 70:
        sentiment = Sentiment.BULLISH
    elif economic_intensity < 30:
        sentiment = Sentiment.BEARISH
    else:
        sentiment = Sentiment.NEUTRAL

    funding = [c.effect_for(MarketTarget.FUNDING).multiplier for c in active
               if c.effect_for(MarketTarget.FUNDING) is not None]
    avg_funding = sum(funding) / len(funding) if funding else 1.0
    if avg_funding > 1.2:
        climate = FundingClimate.HOT
    elif avg_funding < 0.8:
        climate = FundingClimate.FROZEN
    else:
        climate = FundingClimate.NORMAL

    competitive = _pressure_level(max([c.intensity for c in active if c.category == ConditionCategory.COMPETITIVE],
                                      default=0.0))
    regulatory = _pressure_level(max([c.intensity for c in active if c.category == ConditionCategory.REGULATORY],
                                     default=0.0))

    summary = (f"Market sentiment is {sentiment.value.lower()}. "
               f"Funding environment is {climate.value.lower()}. "
               f"Competitive pressure is {competitive.value.lower()}. "
               f"Regulatory pressure is {regulatory.value.lower()}.")
    if active:
        summary += " Active conditions: " + ", ".join(c.name for c in active) + "."

    trends = market_trends(view)
    return MarketSnapshot(
        week=view.week,
        sentiment=sentiment,
        funding_climate=climate,
        competitive_pressure=competitive,
        regulatory_pressure=regulatory,
        market_demand=trends["market_demand"],
        competition_level=trends["competition_level"],
        funding_environment=trends["funding_environment"],
        demand_multiplier=view.market.demand_multiplier,
        pressure_index=view.market.competitive_pressure,
        conditions=list(active),
        landscape=competitive_landscape(view),
        summary=summary,
    )


# ==================== Public API ====================

def update_market_conditions(state: GameState, conditions: List[MarketCondition],
                             rng: Optional[random.Random] = None) -> GameState:
    """Advance the given market conditions one week

    Args:
        state: Current snapshot (not modified)
        conditions: Active conditions to advance (not modified)
        rng: Random source for every roll; when omitted the condition rolls
            and the demand/pressure walk use separate streams derived from
            the game seed and week

    Returns:
        New snapshot with the surviving and new conditions, drifts applied
    """
    validate_state(state)
    new_state = copy_state(state)
    if rng is None:
        rng = derive_rng(state.seed, "market", state.week)
        walk_rng = derive_rng(state.seed, "market_walk", state.week)
    else:
        walk_rng = rng
    advance_market(new_state, copy_state(conditions), rng, walk_rng)
    clamp_state(new_state)
    update_derived_metrics(new_state)
    return new_state
