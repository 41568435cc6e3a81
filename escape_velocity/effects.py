"""
Escape Velocity - Effect Resolver
=================================
Applies ordered effect bundles onto a snapshot. Additive effects add to the
running value, multiplicative ("compounding") effects scale it. Nothing is
clamped here: bounded metrics are clamped once at the end of the turn, so
intermediate overshoot is allowed.

Also holds the persistent compounding-effect table: long-lived modifiers that
switch on when their trigger holds and apply every week while active.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable, List, Sequence

from .state import GameState, clamp_state, copy_state, update_derived_metrics, validate_state

logger = logging.getLogger(__name__)


class Metric(Enum):
    """State fields an effect can target (value is the GameState attribute)"""
    BANK = "bank"
    BURN = "burn"
    MRR = "mrr"
    WAU = "wau"
    WAU_GROWTH = "wau_growth_rate"
    CHURN = "churn_rate"
    MORALE = "morale"
    REPUTATION = "reputation"
    NPS = "nps"
    TECH_DEBT = "tech_debt"
    COMPLIANCE_RISK = "compliance_risk"
    VELOCITY = "velocity"
    FOUNDER_EQUITY = "founder_equity"
    OPTION_POOL = "option_pool"
    MOMENTUM = "momentum"


@dataclass(frozen=True)
class Effect:
    """One numeric change to one metric"""
    metric: Metric
    amount: float  # delta, or factor when multiplicative
    multiplicative: bool = False
    delay_weeks: int = 0
    source: str = ""

    def describe(self) -> str:
        label = self.metric.value.replace("_", " ")
        if self.multiplicative:
            return f"{label} x{self.amount:.3g}"
        sign = "+" if self.amount >= 0 else ""
        return f"{label} {sign}{self.amount:.3g}"


@dataclass
class PendingEffect:
    """An effect waiting for its week"""
    due_week: int
    effect: Effect


def add(metric: Metric, amount: float, source: str = "", delay_weeks: int = 0) -> Effect:
    return Effect(metric, amount, False, delay_weeks, source)


def scale(metric: Metric, factor: float, source: str = "", delay_weeks: int = 0) -> Effect:
    return Effect(metric, factor, True, delay_weeks, source)


# ==================== Resolver ====================

def apply_effect(state: GameState, effect: Effect):
    """Apply a single effect immediately (no clamping)"""
    name = effect.metric.value
    current = getattr(state, name)
    if effect.multiplicative:
        value = current * effect.amount
    else:
        value = current + effect.amount
    setattr(state, name, value)


def apply_effects(state: GameState, effects: Iterable[Effect]) -> List[Effect]:
    """Apply effects in order, queueing delayed ones; returns those applied now"""
    applied = []
    for effect in effects:
        if effect.delay_weeks > 0:
            state.pending_effects.append(PendingEffect(state.week + effect.delay_weeks, replace(effect, delay_weeks=0)))
            continue
        apply_effect(state, effect)
        applied.append(effect)
    return applied


def release_pending_effects(state: GameState) -> List[Effect]:
    """Apply queued effects that are due this week, in the order they were queued"""
    due = [p for p in state.pending_effects if p.due_week <= state.week]
    state.pending_effects = [p for p in state.pending_effects if p.due_week > state.week]
    for pending in due:
        apply_effect(state, pending.effect)
    return [p.effect for p in due]


# ==================== Compounding Effects ====================

class CompoundingCategory(Enum):
    """Area a compounding effect feeds"""
    REVENUE = "Revenue"
    GROWTH = "Growth"
    EFFICIENCY = "Efficiency"
    QUALITY = "Quality"
    REPUTATION = "Reputation"
    TEAM = "Team"


@dataclass
class CompoundingEffect:
    """A modifier that applies every week while active"""
    id: str
    name: str
    description: str
    category: CompoundingCategory
    trigger: Callable[[GameState], bool] = field(compare=False, repr=False)
    deltas: Sequence[Effect]
    magnitude: float  # 0..100 strength, for summaries
    duration_weeks: int = -1  # -1 = permanent while the trigger holds
    active: bool = False
    weeks_active: int = 0
    expired: bool = False  # temporary effects fire once per game


def default_compounding_effects() -> List[CompoundingEffect]:
    """Fresh (inactive) compounding table"""
    src = "compounding"
    return [
        CompoundingEffect(
            "revenue_momentum", "Revenue Momentum", "Consistent revenue growth creates compounding returns",
            CompoundingCategory.REVENUE, lambda s: s.mrr > 50_000 and s.wau_growth_rate > 10,
            (scale(Metric.MRR, 1.02, src),), 25),
        CompoundingEffect(
            "scale_economics", "Economies of Scale", "Larger companies benefit from economies of scale",
            CompoundingCategory.REVENUE, lambda s: s.wau > 100_000,
            (scale(Metric.BURN, 0.99, src),), 30),
        CompoundingEffect(
            "network_effects", "Network Effects", "More users attract more users",
            CompoundingCategory.GROWTH, lambda s: s.wau > 10_000,
            (add(Metric.WAU_GROWTH, 0.3, src),), 35),
        CompoundingEffect(
            "viral_coefficient", "Viral Growth", "Product virality creates exponential user growth",
            CompoundingCategory.GROWTH, lambda s: s.reputation > 70 and s.nps > 20,
            (add(Metric.WAU_GROWTH, 0.5, src),), 40),
        CompoundingEffect(
            "process_maturity", "Process Maturity", "Mature processes enable efficient scaling",
            CompoundingCategory.EFFICIENCY, lambda s: s.week > 26 and s.velocity > 1.0,
            (add(Metric.VELOCITY, 0.01, src),), 20),
        CompoundingEffect(
            "automation_benefits", "Automation Benefits", "Automation reduces manual work and stress",
            CompoundingCategory.EFFICIENCY, lambda s: s.tech_debt < 30 and s.morale > 60,
            (add(Metric.VELOCITY, 0.015, src), add(Metric.MORALE, 0.2, src)), 25),
        CompoundingEffect(
            "quality_reputation", "Quality Reputation", "High quality attracts better customers",
            CompoundingCategory.QUALITY, lambda s: s.tech_debt < 25 and s.nps > 15,
            (add(Metric.REPUTATION, 0.4, src),), 30),
        CompoundingEffect(
            "compound_innovation", "Compound Innovation", "A clean foundation enables breakthroughs",
            CompoundingCategory.QUALITY, lambda s: s.tech_debt < 20 and s.reputation > 60,
            (add(Metric.NPS, 0.5, src),), 20),
        CompoundingEffect(
            "reputation_flywheel", "Reputation Flywheel", "Good reputation attracts talent and customers",
            CompoundingCategory.REPUTATION, lambda s: s.reputation > 60,
            (add(Metric.REPUTATION, 0.2, src), add(Metric.MORALE, 0.3, src)), 35),
        CompoundingEffect(
            "thought_leadership", "Thought Leadership", "Industry recognition creates advantages",
            CompoundingCategory.REPUTATION, lambda s: s.reputation > 75,
            (add(Metric.REPUTATION, 0.3, src), add(Metric.WAU_GROWTH, 0.2, src)), 40),
        CompoundingEffect(
            "team_compounding", "Team Excellence", "Great teams get better through cohesion",
            CompoundingCategory.TEAM, lambda s: s.morale > 70 and s.velocity > 1.0,
            (add(Metric.VELOCITY, 0.01, src), add(Metric.MORALE, 0.2, src)), 25),
        CompoundingEffect(
            "culture_compounding", "Company Culture", "Strong culture retains top talent",
            CompoundingCategory.TEAM, lambda s: s.morale > 75 and s.week > 13,
            (add(Metric.MORALE, 0.3, src), add(Metric.VELOCITY, 0.01, src)), 30),
        CompoundingEffect(
            "fundraising_momentum", "Fundraising Momentum", "A recent raise funds hiring and marketing",
            CompoundingCategory.GROWTH, lambda s: s.bank > 1_000_000,
            (add(Metric.VELOCITY, 0.02, src), add(Metric.WAU_GROWTH, 0.3, src)), 45, duration_weeks=26),
        CompoundingEffect(
            "product_launch_boost", "Launch Momentum", "A strong launch keeps users arriving",
            CompoundingCategory.GROWTH, lambda s: s.momentum > 80,
            (add(Metric.WAU_GROWTH, 0.4, src), add(Metric.REPUTATION, 0.2, src)), 35, duration_weeks=12),
    ]


def tick_compounding(state: GameState, effects: List[CompoundingEffect]) -> List[CompoundingEffect]:
    """Advance durations, activate triggered entries and apply the active ones (in place)

    Returns:
        Entries that switched on this week
    """
    activated = []
    for effect in effects:
        if effect.active:
            effect.weeks_active += 1
            if effect.duration_weeks > 0 and effect.weeks_active >= effect.duration_weeks:
                effect.active = False
                effect.expired = True
            elif effect.duration_weeks < 0 and not effect.trigger(state):
                effect.active = False
        elif not effect.expired and effect.trigger(state):
            effect.active = True
            effect.weeks_active = 0
            activated.append(effect)

    for effect in effects:
        if effect.active:
            apply_effects(state, effect.deltas)

    for effect in activated:
        logger.debug("Compounding effect %s activated in week %d", effect.id, state.week)
    return activated


def compounding_impact(effects: Sequence[CompoundingEffect]) -> dict:
    """Sum active magnitudes per category"""
    impact = {category.value: 0.0 for category in CompoundingCategory}
    for effect in effects:
        if effect.active:
            impact[effect.category.value] += effect.magnitude
    return impact


# ==================== Public API ====================

def process_compounding_effects(state: GameState, effects: List[CompoundingEffect]) -> GameState:
    """Run one week of a compounding table against a snapshot

    Args:
        state: Current snapshot (not modified)
        effects: Compounding table to advance (not modified; the advanced copy
            is stored on the returned state)

    Returns:
        New snapshot with the active effects applied, clamped and re-derived
    """
    validate_state(state)
    new_state = copy_state(state)
    table = [replace(effect) for effect in effects]
    activated = tick_compounding(new_state, table)
    new_state.compounding_effects = table
    for effect in activated:
        new_state.messages.append(f"Compounding bonus active: {effect.name}")
    clamp_state(new_state)
    update_derived_metrics(new_state)
    return new_state


def resolve_effects(state: GameState, effects: Sequence[Effect]) -> GameState:
    """Apply one effect bundle to a copy, then clamp and re-derive"""
    validate_state(state)
    new_state = copy_state(state)
    apply_effects(new_state, effects)
    clamp_state(new_state)
    update_derived_metrics(new_state)
    return new_state
