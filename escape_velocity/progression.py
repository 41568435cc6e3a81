"""
Escape Velocity - Progression
=============================
Milestones and their rewards, progression levels, action unlocks and the
escape-velocity streak.

Milestone rewards that change metrics are queued to land next week so the
turn that earned them is still clamped once; unlocks and modifiers apply at
once.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .actions import ActionKind, DIFFICULTY_CATALOGS
from .config import Difficulty, ECONOMY
from .effects import Effect, Metric, PendingEffect, add
from .state import EscapeVelocityProgress, GameState, validate_state

logger = logging.getLogger(__name__)


# ==================== Enums ====================

class MilestoneKind(Enum):
    REVENUE = "Revenue"
    GROWTH = "Growth"
    TEAM = "Team"
    PRODUCT = "Product"
    MARKET = "Market"
    FUNDING = "Funding"
    DIFFICULTY = "Difficulty"


class RewardKind(Enum):
    BONUS = "Bonus"  # one-off metric boost
    MODIFIER = "Modifier"  # lasting modifier
    UNLOCK = "Unlock"  # unlocks actions


LEVEL_NAMES = ("Startup", "Growing", "Established", "Scaling", "Mature", "Industry Leader", "Legendary")


# ==================== Data Classes ====================

@dataclass(frozen=True)
class Reward:
    kind: RewardKind
    value: str
    description: str


@dataclass(frozen=True)
class Milestone:
    id: str
    name: str
    description: str
    kind: MilestoneKind
    reward: Reward
    predicate: Callable[[GameState], bool] = field(compare=False, repr=False)


@dataclass
class ProgressionLevel:
    level: int
    name: str
    completed: int
    next_level_threshold: int


# ==================== Milestone Table ====================

def _arr(state: GameState) -> float:
    return state.mrr * 12


BONUS, MODIFIER, UNLOCK = RewardKind.BONUS, RewardKind.MODIFIER, RewardKind.UNLOCK

BASE_MILESTONES: List[Milestone] = [
    # Revenue
    Milestone("first_revenue", "First Revenue", "Reach $1K in monthly recurring revenue", MilestoneKind.REVENUE,
              Reward(BONUS, "morale_boost", "Team morale rises with the first revenue"),
              lambda s: s.mrr >= 1_000),
    Milestone("profitability", "Break Even", "MRR covers the monthly burn", MilestoneKind.REVENUE,
              Reward(BONUS, "cash_bonus_10k", "Profitability bonus"),
              lambda s: s.mrr >= s.burn),
    Milestone("million_arr", "Million Dollar Company", "Reach $1M in annual recurring revenue", MilestoneKind.REVENUE,
              Reward(UNLOCK, "advanced_actions", "Unlocks advanced growth actions"),
              lambda s: _arr(s) >= 1_000_000),
    Milestone("scale_revenue", "Scale Revenue", "Reach $10M in annual recurring revenue", MilestoneKind.REVENUE,
              Reward(BONUS, "cash_bonus_100k", "Major revenue milestone"),
              lambda s: _arr(s) >= 10_000_000),
    # Growth
    Milestone("first_users", "First Users", "Reach 100 weekly active users", MilestoneKind.GROWTH,
              Reward(BONUS, "reputation_boost", "User traction builds reputation"),
              lambda s: s.wau >= 100),
    Milestone("product_market_fit", "Product-Market Fit", "Reach 1K users with churn at or below 5%",
              MilestoneKind.GROWTH,
              Reward(MODIFIER, "reduced_churn", "Product-market fit reduces churn for good"),
              lambda s: s.wau >= 1_000 and s.churn_rate <= 5),
    Milestone("scale_users", "Scale Users", "Reach 10K weekly active users", MilestoneKind.GROWTH,
              Reward(UNLOCK, "scaling_actions", "Unlocks scaling actions"),
              lambda s: s.wau >= 10_000),
    Milestone("massive_scale", "Massive Scale", "Reach 100K weekly active users", MilestoneKind.GROWTH,
              Reward(BONUS, "cash_bonus_50k", "Massive scale bonus"),
              lambda s: s.wau >= 100_000),
    # Team
    Milestone("first_hire", "First Hire", "Hire your first team member", MilestoneKind.TEAM,
              Reward(MODIFIER, "improved_efficiency", "First hire improves team efficiency"),
              lambda s: len(s.roster.members) >= 1),
    Milestone("team_of_10", "Team of 10", "Build a team of 10 people", MilestoneKind.TEAM,
              Reward(BONUS, "velocity_boost", "A larger team ships faster"),
              lambda s: s.team_size >= 10),
    Milestone("high_morale", "High Morale", "Keep team morale above 80", MilestoneKind.TEAM,
              Reward(MODIFIER, "improved_efficiency", "High morale improves productivity"),
              lambda s: s.morale > 80),
    Milestone("peak_performance", "Peak Performance", "Velocity 1.5x with morale 70+", MilestoneKind.TEAM,
              Reward(BONUS, "morale_boost", "The team celebrates peak performance"),
              lambda s: s.velocity >= 1.5 and s.morale >= 70),
    # Product
    Milestone("technical_foundation", "Technical Foundation", "Keep technical debt below 20", MilestoneKind.PRODUCT,
              Reward(BONUS, "velocity_boost", "A clean codebase speeds up development"),
              lambda s: s.tech_debt < 20),
    Milestone("quality_product", "Quality Product", "Reach an NPS of 40 or higher", MilestoneKind.PRODUCT,
              Reward(MODIFIER, "reduced_churn", "A quality product keeps customers"),
              lambda s: s.nps >= 40),
    Milestone("market_leader", "Market Leader", "Reach a reputation of 90+", MilestoneKind.MARKET,
              Reward(BONUS, "reputation_boost", "Market leadership attracts opportunities"),
              lambda s: s.reputation >= 90),
    # Funding
    Milestone("first_funding", "First Funding", "Raise your first external round", MilestoneKind.FUNDING,
              Reward(BONUS, "cash_bonus_10k", "Funding success bonus"),
              lambda s: s.total_raised >= 100_000),
    Milestone("series_a", "Series A", "Raise $1M or more in total", MilestoneKind.FUNDING,
              Reward(MODIFIER, "better_fundraising", "Investors take your calls"),
              lambda s: s.total_raised >= 1_000_000),
    Milestone("well_funded", "Well Funded", "Raise $5M or more in total", MilestoneKind.FUNDING,
              Reward(BONUS, "cash_bonus_50k", "Strong funding position"),
              lambda s: s.total_raised >= 5_000_000),
    # Market standing
    Milestone("recognized", "Industry Recognition", "Reach a reputation of 50+", MilestoneKind.MARKET,
              Reward(BONUS, "reputation_boost", "Recognition opens doors"),
              lambda s: s.reputation >= 50),
    Milestone("respected", "Industry Respect", "Reach a reputation of 70+", MilestoneKind.MARKET,
              Reward(MODIFIER, "better_fundraising", "Respect improves fundraising"),
              lambda s: s.reputation >= 70),
    Milestone("legendary", "Legendary Status", "Reach a reputation of 95+", MilestoneKind.MARKET,
              Reward(BONUS, "cash_bonus_100k", "Legendary status attracts premium deals"),
              lambda s: s.reputation >= 95),
]

DIFFICULTY_MILESTONES = {
    Difficulty.INDIE_BOOTSTRAP: Milestone(
        "indie_success", "Indie Success", "Reach $100K ARR without outside money", MilestoneKind.DIFFICULTY,
        Reward(BONUS, "cash_bonus_50k", "Bootstrapping success"),
        lambda s: _arr(s) >= 100_000 and s.total_raised == 0),
    Difficulty.VC_TRACK: Milestone(
        "vc_exit", "VC Exit", "Reach a $50M valuation (10x ARR)", MilestoneKind.DIFFICULTY,
        Reward(BONUS, "cash_bonus_100k", "Exit-ready valuation"),
        lambda s: _arr(s) * 10 >= 50_000_000),
    Difficulty.REGULATED_FINTECH: Milestone(
        "compliance_mastery", "Compliance Mastery", "Reach $5M ARR with compliance risk below 20",
        MilestoneKind.DIFFICULTY,
        Reward(MODIFIER, "reduced_churn", "Regulatory confidence reduces churn"),
        lambda s: _arr(s) >= 5_000_000 and s.compliance_risk < 20),
    Difficulty.INFRA_DEV_TOOL: Milestone(
        "enterprise_adoption", "Enterprise Adoption", "Reach 50K users with reputation above 85",
        MilestoneKind.DIFFICULTY,
        Reward(MODIFIER, "improved_efficiency", "Enterprise customers bring stability"),
        lambda s: s.wau >= 50_000 and s.reputation > 85),
}


def all_milestones(difficulty: Difficulty) -> List[Milestone]:
    return BASE_MILESTONES + [DIFFICULTY_MILESTONES[difficulty]]


# ==================== Rewards ====================

BONUS_EFFECTS = {
    "cash_bonus_10k": (Metric.BANK, 10_000),
    "cash_bonus_50k": (Metric.BANK, 50_000),
    "cash_bonus_100k": (Metric.BANK, 100_000),
    "morale_boost": (Metric.MORALE, 10),
    "reputation_boost": (Metric.REPUTATION, 5),
    "velocity_boost": (Metric.VELOCITY, 0.1),
}

UNLOCK_REWARDS = {
    "advanced_actions": (ActionKind.DEV_REL, ActionKind.PAID_ADS),
    "scaling_actions": (ActionKind.PROCESS_IMPROVEMENT,),
}


def reward_effects(reward: Reward) -> List[Effect]:
    """Metric effects of a reward (empty for unlocks)"""
    source = f"reward:{reward.value}"
    if reward.kind == RewardKind.BONUS:
        metric, amount = BONUS_EFFECTS[reward.value]
        return [add(metric, amount, source)]
    if reward.kind == RewardKind.MODIFIER:
        if reward.value == "reduced_churn":
            return [add(Metric.CHURN, -1.0, source)]
        if reward.value == "improved_efficiency":
            return [add(Metric.VELOCITY, 0.05, source)]
    return []


def apply_modifier(state: GameState, reward: Reward):
    """Record a lasting modifier in `state.modifiers`"""
    if reward.value == "reduced_churn":
        state.modifiers["churn_reduction"] = state.modifiers.get("churn_reduction", 0.0) + 1.0
    elif reward.value == "better_fundraising":
        state.modifiers["fundraise_multiplier"] = state.modifiers.get("fundraise_multiplier", 1.0) * 1.1


def unlock_actions(state: GameState, kinds: Sequence[ActionKind]) -> List[ActionKind]:
    """Add catalog kinds to the unlocked list; returns the ones that were new"""
    catalog = DIFFICULTY_CATALOGS[state.difficulty]
    fresh = []
    for kind in kinds:
        if kind in catalog and kind not in state.unlocked_actions:
            state.unlocked_actions.append(kind)
            fresh.append(kind)
    return fresh


def award_milestones(state: GameState, milestones: Sequence[Milestone]):
    """Record achieved milestones and hand out their rewards (in place)"""
    for milestone in milestones:
        state.achieved_milestones.append(milestone.id)
        reward = milestone.reward
        for effect in reward_effects(reward):
            state.pending_effects.append(PendingEffect(state.week + 1, effect))
        if reward.kind == RewardKind.MODIFIER:
            apply_modifier(state, reward)
        elif reward.kind == RewardKind.UNLOCK:
            for kind in unlock_actions(state, UNLOCK_REWARDS.get(reward.value, ())):
                state.messages.append(f"Unlocked action: {kind.value}")
        state.messages.append(f"Milestone achieved: {milestone.name} ({reward.description})")
        logger.info("Week %d: milestone %s achieved", state.week, milestone.id)


# ==================== Unlocks ====================

def unlock_candidates(state: GameState) -> List[ActionKind]:
    """Kinds whose unlock condition holds right now"""
    kinds = []
    if state.week >= 5:
        kinds += [ActionKind.REFACTOR_CODE, ActionKind.CONTENT_LAUNCH, ActionKind.COACH]
    if state.wau >= 500:
        kinds.append(ActionKind.RUN_EXPERIMENT)
    if state.week >= 9:
        kinds.append(ActionKind.COMPLIANCE_WORK)
    if state.week >= 13:
        kinds += [ActionKind.DEV_REL, ActionKind.PAID_ADS, ActionKind.PROCESS_IMPROVEMENT]
    if state.roster.headcount > 0:
        kinds.append(ActionKind.FIRE)
    if state.incident_count > 0:
        kinds.append(ActionKind.INCIDENT_RESPONSE)
    return kinds


def check_action_unlocks(state: GameState) -> List[ActionKind]:
    """Catalog actions whose unlock condition now holds but are still locked"""
    validate_state(state)
    catalog = DIFFICULTY_CATALOGS[state.difficulty]
    seen = set(state.unlocked_actions)
    fresh = []
    for kind in unlock_candidates(state):
        if kind in catalog and kind not in seen:
            seen.add(kind)
            fresh.append(kind)
    return fresh


# ==================== Public API ====================

def check_progression_milestones(state: GameState,
                                 milestones: Optional[Sequence[Milestone]] = None) -> List[Milestone]:
    """Milestones whose predicate holds and that were not achieved before

    Args:
        state: Snapshot to evaluate (not modified)
        milestones: Milestone table; defaults to the difficulty's full table

    Returns:
        Newly achieved milestones in table order
    """
    validate_state(state)
    table = all_milestones(state.difficulty) if milestones is None else milestones
    done = set(state.achieved_milestones)
    return [m for m in table if m.id not in done and m.predicate(state)]


def progression_level(state: GameState) -> ProgressionLevel:
    completed = len(state.achieved_milestones)
    level = completed // 5 + 1
    name = LEVEL_NAMES[min(level - 1, len(LEVEL_NAMES) - 1)]
    return ProgressionLevel(level, name, completed, level * 5)


def evaluate_escape_velocity(state: GameState,
                             previous: Optional[EscapeVelocityProgress] = None) -> EscapeVelocityProgress:
    """Re-check the four victory criteria against the final metrics of a turn

    The streak grows by one when all four hold and resets to zero otherwise.
    """
    previous = state.escape_velocity if previous is None else previous
    progress = EscapeVelocityProgress(
        revenue_covers_burn=state.mrr >= state.burn,
        growth_sustained=state.wau_growth_rate >= ECONOMY.growth_threshold,
        customer_love=state.nps >= ECONOMY.nps_threshold,
        founder_healthy=state.morale > ECONOMY.morale_threshold,
    )
    progress.streak_weeks = previous.streak_weeks + 1 if progress.all_met() else 0
    return progress
