"""
Tuning configuration for the weekly startup simulation
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict


class Difficulty(Enum):
    """Starting scenario for a new company"""
    INDIE_BOOTSTRAP = "IndieBootstrap"
    VC_TRACK = "VCTrack"
    REGULATED_FINTECH = "RegulatedFintech"
    INFRA_DEV_TOOL = "InfraDevTool"


@dataclass(frozen=True)
class DifficultyPreset:
    """Fixed starting values and modifiers for one difficulty"""
    bank: float
    burn: float  # monthly
    focus_slots: int
    compliance_risk: float
    burn_modifier: float = 1.0
    growth_modifier: float = 1.0
    compliance_burden: float = 1.0  # weekly compliance risk drift multiplier
    event_severity: float = 1.0  # scales automatic event effects


DIFFICULTY_PRESETS: Dict[Difficulty, DifficultyPreset] = {
    Difficulty.INDIE_BOOTSTRAP: DifficultyPreset(
        bank=50_000, burn=8_000, focus_slots=3, compliance_risk=20.0,
        burn_modifier=0.5, growth_modifier=0.8, compliance_burden=0.3, event_severity=1.0,
    ),
    Difficulty.VC_TRACK: DifficultyPreset(
        bank=1_000_000, burn=80_000, focus_slots=5, compliance_risk=30.0,
        burn_modifier=2.0, growth_modifier=1.5, compliance_burden=0.5, event_severity=1.2,
    ),
    Difficulty.REGULATED_FINTECH: DifficultyPreset(
        bank=500_000, burn=40_000, focus_slots=4, compliance_risk=80.0,
        burn_modifier=1.0, growth_modifier=1.0, compliance_burden=2.0, event_severity=1.5,
    ),
    Difficulty.INFRA_DEV_TOOL: DifficultyPreset(
        bank=300_000, burn=25_000, focus_slots=4, compliance_risk=40.0,
        burn_modifier=0.8, growth_modifier=1.0, compliance_burden=0.7, event_severity=1.3,
    ),
}


@dataclass
class EconomyConfig:
    """Weekly economy and victory tuning"""
    # Cash flow (fraction of the monthly figure booked per turn)
    burn_fraction_per_turn: float = 1.0
    revenue_fraction_per_turn: float = 1.0

    # Passive drift
    morale_decay_per_week: float = 0.5
    velocity_debt_threshold: float = 1.2  # shipping faster than this accrues debt
    tech_debt_pressure: float = 0.5
    nps_drift_rate: float = 0.10  # 10% of the gap to target per week
    growth_drift_rate: float = 0.10
    churn_drift_rate: float = 0.25
    compliance_drift_per_week: float = 0.5  # scaled by difficulty burden

    # Incidents
    incident_debt_threshold: float = 80.0
    incident_chance: float = 0.10

    # Bookkeeping
    history_limit: int = 52
    recent_action_window: int = 3
    action_log_limit: int = 12  # at least the longest synergy window
    hire_ramp_weeks: int = 2
    max_events_per_week: int = 2

    # Escape velocity
    victory_streak_weeks: int = 12
    growth_threshold: float = 10.0
    nps_threshold: float = 30.0
    morale_threshold: float = 40.0  # strictly above

    # Team costs
    hire_burn: float = 10_000
    fire_savings: float = 8_000


@dataclass
class EventTuning:
    """Event roll parameters"""
    probability_cap: float = 0.95
    excess_weight: float = 1.0  # how strongly distance past threshold raises the chance
    max_excess: float = 1.0  # relative distance past threshold stops counting here


@dataclass
class MarketTuning:
    """Exogenous market random walk"""
    demand_step: float = 0.05
    demand_min: float = 0.5
    demand_max: float = 1.5
    pressure_step: float = 3.0
    pressure_min: float = 0.0
    pressure_max: float = 100.0
    churn_min: float = 0.0
    churn_max: float = 20.0
    max_competitors: int = 10


ECONOMY = EconomyConfig()
EVENT_TUNING = EventTuning()
MARKET_TUNING = MarketTuning()
