"""
Escape Velocity - Synergy Detector
==================================
Combinations of actions inside a short window of turns earn bonus effects on
top of the individual actions. A rule matches when its required action set is
covered by this turn's actions plus the recent turns inside the rule's window,
and at least one required action was taken this turn.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .actions import ACTION_SPECS, ActionCategory, ActionKind, coerce_action
from .effects import Effect, Metric, add, scale
from .state import GameState, validate_state

logger = logging.getLogger(__name__)


class SpecializationPath(Enum):
    """Strategy the founder has settled into"""
    PRODUCT_EXCELLENCE = "ProductExcellence"
    GROWTH_HACKING = "GrowthHacking"
    OPERATIONAL_EFFICIENCY = "OperationalEfficiency"
    CUSTOMER_OBSESSED = "CustomerObsessed"


@dataclass(frozen=True)
class SynergyRule:
    id: str
    name: str
    description: str
    required: frozenset  # of ActionKind
    window_turns: int  # recent turns that count, besides this one
    effects: Sequence[Effect]
    magnitude: float  # 0..100
    exclusive_with: frozenset = frozenset()  # rule ids


@dataclass
class SynergyMatch:
    """A rule that fired this turn"""
    rule: SynergyRule
    effects: List[Effect]

    @property
    def id(self) -> str:
        return self.rule.id

    @property
    def magnitude(self) -> float:
        return self.rule.magnitude


def _rule(rule_id, name, description, required, window, magnitude, effects, exclusive_with=()):
    return SynergyRule(rule_id, name, description, frozenset(required), window,
                       tuple(effects), magnitude, frozenset(exclusive_with))


K = ActionKind

SYNERGY_RULES: List[SynergyRule] = [
    _rule("product_focus", "Product Development Focus", "Shipping and cleaning up code together builds momentum",
          (K.SHIP_FEATURE, K.REFACTOR_CODE), 4, 25,
          (add(Metric.VELOCITY, 0.15, "product_focus"), add(Metric.TECH_DEBT, -3, "product_focus"))),
    _rule("growth_engine", "Growth Engine", "Sales and content working together",
          (K.FOUNDER_LED_SALES, K.CONTENT_LAUNCH), 3, 30,
          (add(Metric.WAU_GROWTH, 4, "growth_engine"), scale(Metric.MRR, 1.03, "growth_engine"),
           add(Metric.REPUTATION, 2, "growth_engine"))),
    _rule("team_building", "Team Building Momentum", "Hiring and coaching compound",
          (K.HIRE, K.COACH), 6, 35,
          (add(Metric.VELOCITY, 0.2, "team_building"), add(Metric.MORALE, 6, "team_building"),
           add(Metric.BURN, -2_000, "team_building"))),
    _rule("fundraising_momentum", "Fundraising Momentum", "Visible traction makes the raise easier",
          (K.FUNDRAISE, K.CONTENT_LAUNCH), 8, 40,
          (add(Metric.REPUTATION, 5, "fundraising_momentum"), add(Metric.BANK, 100_000, "fundraising_momentum"))),
    _rule("crisis_response", "Crisis Management", "Coordinated response to incidents and compliance gaps",
          (K.INCIDENT_RESPONSE, K.COMPLIANCE_WORK), 2, 20,
          (add(Metric.COMPLIANCE_RISK, -8, "crisis_response"), add(Metric.TECH_DEBT, -5, "crisis_response"),
           add(Metric.MORALE, -3, "crisis_response"), add(Metric.REPUTATION, 1, "crisis_response"))),
    _rule("quality_first", "Quality First Approach", "Consistent focus on quality over speed",
          (K.REFACTOR_CODE, K.PROCESS_IMPROVEMENT, K.COACH), 8, 45,
          (add(Metric.TECH_DEBT, -10, "quality_first"), add(Metric.VELOCITY, 0.1, "quality_first"),
           add(Metric.NPS, 5, "quality_first"), add(Metric.CHURN, -1, "quality_first"))),
    _rule("aggressive_growth", "Aggressive Growth Mode", "All-in on acquisition and revenue",
          (K.FOUNDER_LED_SALES, K.PAID_ADS, K.HIRE), 4, 50,
          (add(Metric.WAU_GROWTH, 8, "aggressive_growth"), scale(Metric.MRR, 1.05, "aggressive_growth"),
           add(Metric.BURN, 8_000, "aggressive_growth"), add(Metric.TECH_DEBT, 6, "aggressive_growth"),
           add(Metric.MORALE, -4, "aggressive_growth")),
          exclusive_with=("balanced_execution",)),
    _rule("balanced_execution", "Balanced Execution", "A mix of product, sales and team work",
          (K.SHIP_FEATURE, K.FOUNDER_LED_SALES, K.HIRE), 6, 30,
          (add(Metric.VELOCITY, 0.12, "balanced_execution"), add(Metric.MORALE, 4, "balanced_execution"),
           scale(Metric.MRR, 1.02, "balanced_execution"), add(Metric.WAU_GROWTH, 2, "balanced_execution")),
          exclusive_with=("aggressive_growth",)),
    _rule("recovery_mode", "Recovery Mode", "Rest and team care after an intense stretch",
          (K.TAKE_BREAK, K.COACH), 4, 25,
          (add(Metric.MORALE, 12, "recovery_mode"), add(Metric.VELOCITY, 0.08, "recovery_mode"),
           add(Metric.BURN, -1_000, "recovery_mode"))),
]


# ==================== Helpers ====================

def _kinds(actions) -> List[ActionKind]:
    return [coerce_action(a).kind for a in actions]


def _turns(recent_actions) -> List[List[ActionKind]]:
    """Accept per-turn lists or a flat list (treated as one turn)"""
    if not recent_actions:
        return []
    if all(isinstance(turn, (list, tuple)) for turn in recent_actions):
        return [_kinds(turn) for turn in recent_actions]
    return [_kinds(recent_actions)]


def match_synergies(current: Sequence[ActionKind], recent_turns: Sequence[Sequence[ActionKind]],
                    rules: Sequence[SynergyRule]) -> List[SynergyMatch]:
    current_set = set(current)
    matched = []
    matched_ids = set()
    for rule in rules:
        if rule.exclusive_with & matched_ids:
            continue
        if not rule.required & current_set:
            continue
        window = recent_turns[-rule.window_turns:] if rule.window_turns > 0 else []
        covered = set(current_set)
        for turn in window:
            covered.update(turn)
        if rule.required <= covered:
            matched.append(SynergyMatch(rule, list(rule.effects)))
            matched_ids.add(rule.id)
    return matched


# ==================== Public API ====================

def check_action_synergies(state: GameState, actions: Sequence, recent_actions: Sequence,
                           synergies: Optional[Sequence[SynergyRule]] = None) -> List[SynergyMatch]:
    """Find the synergy rules satisfied by this turn plus the recent window

    Args:
        state: Current snapshot (read only)
        actions: This turn's actions (Action, ActionKind or id strings)
        recent_actions: Earlier turns, oldest first; each entry a list of actions
        synergies: Rule table; defaults to SYNERGY_RULES

    Returns:
        Every matching rule, in table order. When two rules exclude each
        other only the earlier one is returned.
    """
    validate_state(state)
    rules = SYNERGY_RULES if synergies is None else synergies
    matches = match_synergies(_kinds(actions), _turns(recent_actions), rules)
    if matches:
        logger.debug("Week %d synergies: %s", state.week, ", ".join(m.id for m in matches))
    return matches


def detect_specialization_path(action_log: Sequence) -> Optional[SpecializationPath]:
    """Classify the founder's recent strategy from logged turns

    Returns None when nothing dominates.
    """
    kinds = [k for turn in _turns(action_log) for k in turn]
    if not kinds:
        return None
    counts = {category: 0 for category in ActionCategory}
    for kind in kinds:
        counts[ACTION_SPECS[kind].category] += 1
    total = float(len(kinds))
    product = counts[ActionCategory.PRODUCT] / total
    growth = counts[ActionCategory.GROWTH] / total
    ops = counts[ActionCategory.OPS] / total
    team = counts[ActionCategory.TEAM] / total

    if product >= 0.6:
        return SpecializationPath.PRODUCT_EXCELLENCE
    if growth >= 0.6:
        return SpecializationPath.GROWTH_HACKING
    if ops >= 0.6:
        return SpecializationPath.OPERATIONAL_EFFICIENCY
    if growth + team * 0.5 >= 0.6:
        return SpecializationPath.CUSTOMER_OBSESSED
    return None
