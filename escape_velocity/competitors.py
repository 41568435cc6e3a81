"""
Competitor model: rival companies that grow, raise money and appear as the
player's company gets noticed.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .config import MARKET_TUNING
from .rng import derive_rng
from .state import GameState, clamp, clamp_state, copy_state, update_derived_metrics, validate_state

logger = logging.getLogger(__name__)


class FundingStage(Enum):
    BOOTSTRAPPED = "Bootstrapped"
    SEED = "Seed"
    SERIES_A = "SeriesA"
    SERIES_B = "SeriesB"
    SERIES_C = "SeriesC"
    PUBLIC = "PublicCompany"


class ThreatLevel(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


NEXT_STAGE = {
    FundingStage.BOOTSTRAPPED: FundingStage.SEED,
    FundingStage.SEED: FundingStage.SERIES_A,
    FundingStage.SERIES_A: FundingStage.SERIES_B,
    FundingStage.SERIES_B: FundingStage.SERIES_C,
    FundingStage.SERIES_C: FundingStage.PUBLIC,
    FundingStage.PUBLIC: FundingStage.PUBLIC,
}

NEW_COMPETITOR_NAMES = [
    "TechFlow", "InnovateCorp", "NextGen Solutions", "CloudSync", "DataDrive",
    "SmartTech", "FutureWorks", "AgileSoft", "ScaleUp", "Vertex Systems",
]


@dataclass
class Competitor:
    """A rival company"""
    id: str
    name: str
    funding_stage: FundingStage
    market_share: float  # percent
    funding: float
    reputation: float
    product_quality: float
    marketing_spend: float  # monthly
    aggressiveness: float = 0.5  # 0..1
    threat_level: ThreatLevel = ThreatLevel.LOW


@dataclass
class CompetitiveLandscape:
    """Read-only summary of the competitive field"""
    competitors: List[Competitor] = field(default_factory=list)
    total_market_share: float = 0.0
    your_market_share: float = 0.0
    competitive_intensity: float = 0.0
    summary: str = ""


def initial_competitors() -> List[Competitor]:
    return [
        Competitor("techcorp", "TechCorp", FundingStage.SERIES_A, market_share=25.0, funding=5_000_000,
                   reputation=70.0, product_quality=65.0, marketing_spend=20_000, aggressiveness=0.6),
        Competitor("startupxyz", "StartupXYZ", FundingStage.SEED, market_share=15.0, funding=1_000_000,
                   reputation=50.0, product_quality=55.0, marketing_spend=8_000, aggressiveness=0.8),
    ]


# ==================== Calculations ====================

def calculate_threat_level(competitor: Competitor, state: GameState) -> ThreatLevel:
    """Threat from share, funding, reputation and quality relative to the player"""
    your_share = max(1.0, state.wau / 1000.0)
    score = (
        competitor.market_share / 10.0 * 0.3
        + min(1.0, competitor.funding / 5_000_000) * 0.25
        + competitor.reputation / 100.0 * 0.2
        + competitor.product_quality / 100.0 * 0.15
        + competitor.market_share / your_share * 0.1
    )
    if score > 1.5:
        return ThreatLevel.CRITICAL
    if score > 1.0:
        return ThreatLevel.HIGH
    if score > 0.7:
        return ThreatLevel.MEDIUM
    return ThreatLevel.LOW


def _should_add_competitor(state: GameState, competitors: List[Competitor], rng: random.Random) -> bool:
    success = max(0.0, (state.reputation - 30.0) / 70.0)
    time_factor = min(1.0, state.week / 52.0)
    density = len(competitors) / MARKET_TUNING.max_competitors
    return rng.random() < success * time_factor * max(0.0, 1.0 - density) * 0.1


def _new_competitor(competitors: List[Competitor], rng: random.Random, week: int) -> Competitor:
    number = len(competitors) + 1
    name = NEW_COMPETITOR_NAMES[number % len(NEW_COMPETITOR_NAMES)]
    if number > len(NEW_COMPETITOR_NAMES):
        name = f"{name} {number}"
    return Competitor(
        id=f"competitor_{week}_{number}",
        name=name,
        funding_stage=FundingStage.SEED,
        market_share=0.5 + rng.random() * 2.0,
        funding=500_000 + rng.random() * 2_000_000,
        reputation=30.0 + rng.random() * 40.0,
        product_quality=40.0 + rng.random() * 40.0,
        marketing_spend=5_000 + rng.random() * 15_000,
        aggressiveness=rng.uniform(0.3, 0.9),
    )


def advance_competitors(state: GameState, competitors: List[Competitor], rng: random.Random) -> List[Competitor]:
    """Advance a competitor list one week (in place on the objects); returns the survivors"""
    for comp in competitors:
        growth = comp.funding / 1_000_000 * 0.01 + comp.reputation / 100.0 * 0.005 + (rng.random() - 0.5) * 0.02
        comp.market_share *= 1.0 + growth * comp.aggressiveness

        # occasional moves
        if rng.random() < 0.1 * comp.aggressiveness:
            comp.market_share += comp.marketing_spend / 100_000
            if rng.random() < 0.05 and comp.funding < 10_000_000:
                comp.funding += comp.funding * (0.5 + rng.random())
                comp.reputation = clamp(comp.reputation + 5.0, 0.0, 100.0)
                comp.funding_stage = NEXT_STAGE[comp.funding_stage]
                logger.debug("Week %d: %s raised, now %s", state.week, comp.name, comp.funding_stage.value)
        comp.threat_level = calculate_threat_level(comp, state)

    if _should_add_competitor(state, competitors, rng):
        newcomer = _new_competitor(competitors, rng, state.week)
        newcomer.threat_level = calculate_threat_level(newcomer, state)
        competitors.append(newcomer)
        state.messages.append(f"New competitor entered the market: {newcomer.name}")
        logger.debug("Week %d: competitor %s entered", state.week, newcomer.id)

    for gone in competitors:
        if gone.market_share < 0.1:
            logger.debug("Week %d: competitor %s dropped out", state.week, gone.id)
    return [c for c in competitors if c.market_share >= 0.1]


def competitive_landscape(state: GameState, competitors: Optional[List[Competitor]] = None) -> CompetitiveLandscape:
    """Summarize the field against the player"""
    comps = state.competitors if competitors is None else competitors
    total = sum(c.market_share for c in comps)
    your_share = min(50.0, max(0.1, state.wau / 2000.0))
    intensity = min(100.0, len(comps) * 10.0 + total * 2.0 + (20.0 if state.reputation > 60 else 0.0))

    if not comps:
        summary = "No significant competitors in your market yet."
    else:
        summary = f"Facing {len(comps)} competitor{'s' if len(comps) > 1 else ''}"
        threats = [c for c in comps if c.threat_level in (ThreatLevel.HIGH, ThreatLevel.CRITICAL)]
        if threats:
            summary += f", with {len(threats)} posing significant threats"
        if intensity > 70:
            summary += ". Market is highly competitive."
        elif intensity > 40:
            summary += ". Market competition is moderate."
        else:
            summary += ". Market competition is light."
        well_funded = [c for c in comps if c.funding > 2_000_000]
        if well_funded:
            summary += f" {len(well_funded)} well-funded competitor{'s' if len(well_funded) > 1 else ''} present."

    return CompetitiveLandscape(list(comps), total, your_share, intensity, summary)


def competitive_pressure_score(state: GameState, landscape: CompetitiveLandscape) -> float:
    pressure = landscape.competitive_intensity
    pressure += 5.0 * sum(1 for c in landscape.competitors if c.funding > 1_000_000)
    pressure += 3.0 * sum(1 for c in landscape.competitors if c.reputation > 70)
    if state.reputation > 80:
        pressure += 10.0
    return clamp(pressure, 0.0, 100.0)


# ==================== Public API ====================

def update_competitors(state: GameState, competitors: List[Competitor],
                       rng: Optional[random.Random] = None) -> GameState:
    """Advance the given competitors one week

    Args:
        state: Current snapshot (not modified)
        competitors: Competitor list to advance (not modified)
        rng: Random source; derived from the game seed and week when omitted

    Returns:
        New snapshot holding the advanced competitor list
    """
    validate_state(state)
    new_state = copy_state(state)
    rng = rng if rng is not None else derive_rng(state.seed, "competitors", state.week)
    comps = copy_state(competitors)
    new_state.competitors = advance_competitors(new_state, comps, rng)
    clamp_state(new_state)
    update_derived_metrics(new_state)
    return new_state
