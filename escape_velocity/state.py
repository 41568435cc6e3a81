"""
Escape Velocity - Game State (Pure Data, No Logic Beyond Bookkeeping)
=====================================================================
The canonical weekly snapshot, its history ledger, clamping and derived
metrics. Engine operations deep-copy a snapshot, work on the copy and return
it, so a snapshot handed to the engine is never modified.
"""

import copy
import math
from dataclasses import dataclass, field
from typing import Optional

from .config import Difficulty, ECONOMY
from .errors import InvalidStateError
from .roster import TeamRoster


# ==================== Constants ====================

PERCENT_METRICS = ("morale", "reputation", "tech_debt", "compliance_risk", "founder_equity", "option_pool")
NPS_RANGE = (-100.0, 100.0)
CHURN_RANGE = (0.0, 100.0)
VELOCITY_RANGE = (0.1, 3.0)


# ==================== Data Classes ====================

@dataclass
class EscapeVelocityProgress:
    """The four victory criteria and the consecutive-week streak"""
    revenue_covers_burn: bool = False  # mrr >= burn
    growth_sustained: bool = False  # wau growth >= 10%
    customer_love: bool = False  # nps >= 30
    founder_healthy: bool = False  # morale > 40
    streak_weeks: int = 0

    def all_met(self) -> bool:
        return (self.revenue_covers_burn and self.growth_sustained
                and self.customer_love and self.founder_healthy)


@dataclass
class HistoryPoint:
    """Per-week snapshot kept for trends and forecasts only"""
    week: int
    bank: float
    mrr: float
    burn: float
    wau: int
    morale: float
    reputation: float
    momentum: float


@dataclass
class MarketState:
    """Exogenous market values, advanced independently of player actions"""
    demand_multiplier: float = 1.0  # scales WAU growth
    competitive_pressure: float = 30.0  # 0..100
    conditions: list = field(default_factory=list)  # List of MarketCondition


@dataclass
class GameState:
    """Complete weekly snapshot"""
    # Identity
    game_id: str = ""
    difficulty: Difficulty = Difficulty.INDIE_BOOTSTRAP
    started_at: str = ""
    seed: int = 0
    week: int = 0

    # Financial
    bank: float = 0.0
    burn: float = 0.0  # monthly
    runway_months: float = 0.0  # derived
    mrr: float = 0.0
    total_raised: float = 0.0  # lifetime external funding

    # Growth
    wau: int = 100
    wau_growth_rate: float = 0.0  # percent per week
    churn_rate: float = 5.0  # percent

    # Health / risk
    morale: float = 80.0
    reputation: float = 50.0
    nps: float = 0.0
    tech_debt: float = 10.0
    compliance_risk: float = 20.0

    # Execution
    velocity: float = 1.0
    focus_slots: int = 3

    # Ownership (founder + pool + investors == 100)
    founder_equity: float = 100.0
    option_pool: float = 0.0
    investor_share: float = 0.0

    momentum: float = 0.0  # derived
    incident_count: int = 0
    incident_weeks: list = field(default_factory=list)  # weeks with an incident, newest last

    escape_velocity: EscapeVelocityProgress = field(default_factory=EscapeVelocityProgress)
    history: list = field(default_factory=list)  # List of HistoryPoint

    # Progression
    unlocked_actions: list = field(default_factory=list)  # List of ActionKind
    achieved_milestones: list = field(default_factory=list)  # milestone ids
    modifiers: dict = field(default_factory=dict)  # reward modifiers by name

    # Events
    active_events: list = field(default_factory=list)  # unresolved GameEvent dilemmas
    event_cooldowns: dict = field(default_factory=dict)  # event id -> weeks left

    # External world
    market: MarketState = field(default_factory=MarketState)
    competitors: list = field(default_factory=list)  # List of Competitor
    customer_segments: list = field(default_factory=list)  # List of CustomerSegment

    # Resolver bookkeeping
    compounding_effects: list = field(default_factory=list)  # List of CompoundingEffect
    pending_effects: list = field(default_factory=list)  # delayed Effect entries
    recent_actions: list = field(default_factory=list)  # per-turn ActionKind lists, newest last
    action_log: list = field(default_factory=list)  # longer per-turn log for specialization
    specialization: Optional[str] = None

    # Team
    roster: TeamRoster = field(default_factory=TeamRoster)

    # Turn scratch values (reset every turn)
    ad_spend_this_week: float = 0.0
    sales_calls_this_week: int = 0
    messages: list = field(default_factory=list)

    @property
    def team_size(self) -> int:
        """Founder plus active hires"""
        return 1 + self.roster.headcount


# ==================== Helper Functions ====================

def clamp(x, a, b):
    """Clamp value between min and max"""
    return max(a, min(b, x))


def money(x):
    """Format number as money string"""
    if abs(x) >= 1_000_000:
        return f"${x/1_000_000:.1f}M"
    return f"${x:,.0f}"


def copy_state(state: GameState) -> GameState:
    """Independent copy that shares nothing mutable with the input"""
    return copy.deepcopy(state)


def clamp_state(state: GameState):
    """Clamp every bounded metric to its declared range (once per turn)"""
    for name in PERCENT_METRICS:
        setattr(state, name, clamp(getattr(state, name), 0.0, 100.0))
    state.nps = clamp(state.nps, *NPS_RANGE)
    state.churn_rate = clamp(state.churn_rate, *CHURN_RANGE)
    state.velocity = clamp(state.velocity, *VELOCITY_RANGE)
    state.wau = max(0, int(round(state.wau)))
    state.mrr = max(0.0, state.mrr)
    state.burn = max(0.0, state.burn)
    state.focus_slots = max(1, int(state.focus_slots))
    rebalance_equity(state)


def rebalance_equity(state: GameState):
    """Keep founder + option pool + investors at exactly 100"""
    state.founder_equity = clamp(state.founder_equity, 0.0, 100.0)
    state.option_pool = clamp(state.option_pool, 0.0, 100.0 - state.founder_equity)
    state.investor_share = 100.0 - state.founder_equity - state.option_pool


def update_derived_metrics(state: GameState):
    """Recompute runway and momentum from the current metrics"""
    state.runway_months = state.bank / state.burn if state.burn > 0 else float('inf')
    raw = (state.wau_growth_rate / 100.0 + 1.0) * state.velocity * state.morale
    state.momentum = clamp(raw, 0.0, 100.0)


def record_history(state: GameState, limit: int = ECONOMY.history_limit):
    """Append this week's point and keep the newest `limit` entries"""
    state.history.append(HistoryPoint(
        week=state.week,
        bank=state.bank,
        mrr=state.mrr,
        burn=state.burn,
        wau=state.wau,
        morale=state.morale,
        reputation=state.reputation,
        momentum=state.momentum,
    ))
    if len(state.history) > limit:
        del state.history[:len(state.history) - limit]


def validate_state(state: GameState):
    """Reject malformed snapshots before any work is done"""
    if not isinstance(state, GameState):
        raise InvalidStateError(f"Expected GameState, got {type(state).__name__}")
    if not isinstance(state.difficulty, Difficulty):
        raise InvalidStateError(f"Unknown difficulty: {state.difficulty!r}")
    if state.week < 0:
        raise InvalidStateError(f"Week cannot be negative (got {state.week})")
    if state.burn < 0:
        raise InvalidStateError(f"Burn cannot be negative (got {state.burn})")
    if state.wau < 0:
        raise InvalidStateError(f"WAU cannot be negative (got {state.wau})")
    if state.focus_slots < 1:
        raise InvalidStateError(f"Focus slots must be at least 1 (got {state.focus_slots})")
    if state.escape_velocity.streak_weeks < 0:
        raise InvalidStateError("Escape velocity streak cannot be negative")
    for name in ("bank", "burn", "mrr", "wau_growth_rate", "churn_rate", "morale", "reputation",
                 "nps", "tech_debt", "compliance_risk", "velocity", "founder_equity", "option_pool"):
        value = getattr(state, name)
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidStateError(f"Metric '{name}' is not a finite number: {value!r}")
