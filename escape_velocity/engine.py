"""
Escape Velocity - Turn Engine (Pure Logic, No UI)
=================================================
Headless weekly simulation of a startup. Every public operation validates its
input, works on a deep copy and returns a new snapshot; the caller keeps or
discards the old one.

Turn order:
    1. validate actions (catalog, unlocks, duplicates, parameters, focus)
    2. actions, in submitted order, each reading the running state
    3. passive economy (delayed effects, cash, growth, churn, drift, decay,
       incidents, compounding effects)
    4. synergies
    5. market, competitors and customer segments
    6. events
    7. clamp once, then derived metrics
    8. milestones and action unlocks
    9. escape-velocity streak (last, on the final metrics)
   10. history and action windows
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Union

from .actions import (ACTION_SPECS, BASE_UNLOCKED, DIFFICULTY_CATALOGS, Action, ActionKind, ActionLike,
                      action_cost, check_parameters, coerce_action, resolve_action)
from .competitors import advance_competitors, initial_competitors
from .config import DIFFICULTY_PRESETS, Difficulty, ECONOMY
from .customers import advance_segments, initial_segments
from .effects import apply_effects, default_compounding_effects, release_pending_effects, tick_compounding
from .errors import CapacityExceededError, InvalidActionError, InvalidStateError
from .events import trigger_events
from .market import advance_market, effective_churn, growth_multiplier
from .progression import (award_milestones, check_action_unlocks, check_progression_milestones,
                          evaluate_escape_velocity, unlock_actions)
from .rng import derive_rng, fresh_seed
from .state import (GameState, clamp, clamp_state, copy_state, money, record_history, update_derived_metrics,
                    validate_state)
from .synergies import SYNERGY_RULES, detect_specialization_path, match_synergies

logger = logging.getLogger(__name__)


# ==================== Status ====================

class DefeatReason(Enum):
    """Why a game was lost (checked in this order)"""
    OUT_OF_MONEY = "out_of_money"
    BURNOUT = "burnout"
    REPUTATION = "reputation"


DEFEAT_MESSAGES = {
    DefeatReason.OUT_OF_MONEY: "The company ran out of money.",
    DefeatReason.BURNOUT: "The founder burned out.",
    DefeatReason.REPUTATION: "The company's reputation collapsed.",
}


@dataclass(frozen=True)
class GameStatus:
    game_over: bool
    victory: bool
    message: str
    defeat_reason: Optional[DefeatReason] = None


IN_PROGRESS = GameStatus(False, False, "In progress")


def check_game_status(state: GameState) -> GameStatus:
    """Defeat (bank, then morale, then reputation), victory, or in progress"""
    if state.bank <= 0:
        reason = DefeatReason.OUT_OF_MONEY
    elif state.morale <= 0:
        reason = DefeatReason.BURNOUT
    elif state.reputation <= 0:
        reason = DefeatReason.REPUTATION
    else:
        reason = None
    if reason is not None:
        return GameStatus(True, False, DEFEAT_MESSAGES[reason], reason)
    if state.escape_velocity.streak_weeks >= ECONOMY.victory_streak_weeks:
        return GameStatus(True, True, f"Escape velocity reached in week {state.week}!")
    return IN_PROGRESS


def status_to_string(status: GameStatus) -> str:
    """Legacy encoding: "in_progress", "victory" or "defeat:<reason>" """
    if not status.game_over:
        return "in_progress"
    if status.victory:
        return "victory"
    return f"defeat:{status.defeat_reason.value}"


def status_from_string(text: str) -> GameStatus:
    """Parse the legacy encoding back into a GameStatus"""
    if text == "in_progress":
        return IN_PROGRESS
    if text == "victory":
        return GameStatus(True, True, "Escape velocity reached!")
    if text.startswith("defeat:"):
        reason = DefeatReason(text.split(":", 1)[1])
        return GameStatus(True, False, DEFEAT_MESSAGES[reason], reason)
    raise ValueError(f"Unknown status string: {text!r}")


# ==================== New Game ====================

def new_game(difficulty: Union[Difficulty, str], seed: Optional[int] = None,
             started_at: Optional[str] = None) -> GameState:
    """Create the week-0 snapshot for a difficulty

    Args:
        difficulty: Difficulty member or its value (e.g. "IndieBootstrap")
        seed: Random seed for reproducibility (random when omitted)
        started_at: ISO timestamp to record (now, when omitted)

    Returns:
        Fresh GameState
    """
    if not isinstance(difficulty, Difficulty):
        try:
            difficulty = Difficulty(difficulty)
        except ValueError:
            raise InvalidStateError(f"Unknown difficulty: {difficulty!r}") from None
    if seed is None:
        seed = fresh_seed()
    preset = DIFFICULTY_PRESETS[difficulty]

    state = GameState(
        game_id=f"ev-{seed:08x}",
        difficulty=difficulty,
        started_at=started_at or datetime.now(timezone.utc).isoformat(timespec="seconds"),
        seed=seed,
        bank=float(preset.bank),
        burn=float(preset.burn),
        compliance_risk=preset.compliance_risk,
        focus_slots=preset.focus_slots,
        unlocked_actions=[k for k in BASE_UNLOCKED if k in DIFFICULTY_CATALOGS[difficulty]],
        competitors=initial_competitors(),
        customer_segments=initial_segments(),
        compounding_effects=default_compounding_effects(),
    )
    update_derived_metrics(state)
    logger.debug("New %s game %s", difficulty.value, state.game_id)
    return state


# ==================== Validation ====================

def validate_actions(state: GameState, actions: Sequence[ActionLike]) -> List[Action]:
    """Coerce and check a turn's actions; raises before anything is touched"""
    resolved = [coerce_action(a) for a in actions]
    catalog = DIFFICULTY_CATALOGS[state.difficulty]
    seen = set()
    for action in resolved:
        kind = action.kind
        if kind in seen:
            raise InvalidActionError(f"Action {kind.value} submitted more than once")
        seen.add(kind)
        if kind not in catalog:
            raise InvalidActionError(f"{kind.value} is not available in {state.difficulty.value}")
        if kind not in state.unlocked_actions:
            raise InvalidActionError(f"{kind.value} is still locked")
        if kind == ActionKind.FIRE and state.roster.headcount == 0:
            raise InvalidActionError("There is nobody to let go")
        check_parameters(action)

    required = sum(action_cost(a) for a in resolved)
    if required > state.focus_slots:
        raise CapacityExceededError(required, state.focus_slots)
    return resolved


def get_available_actions(state: GameState) -> List[ActionKind]:
    """Unlocked catalog actions the team can afford this week, in catalog order"""
    validate_state(state)
    catalog = DIFFICULTY_CATALOGS[state.difficulty]
    available = []
    for kind in ActionKind:
        if kind not in catalog or kind not in state.unlocked_actions:
            continue
        if ACTION_SPECS[kind].cost > state.focus_slots:
            continue
        if kind == ActionKind.FIRE and state.roster.headcount == 0:
            continue
        available.append(kind)
    return available


# ==================== Passive Economy ====================

def churn_target(state: GameState) -> float:
    """Where churn drifts to: NPS, recent incidents and earned reductions"""
    target = 5.0
    if state.nps > 50:
        target -= 2.0
    elif state.nps > 20:
        target -= 1.0
    elif state.nps < -20:
        target += 2.0
    target += sum(1 for w in state.incident_weeks if state.week - w < 4)
    target -= state.modifiers.get("churn_reduction", 0.0)
    return clamp(target, 1.0, 20.0)


def apply_passive_effects(state: GameState, rng: random.Random):
    """Everything that happens whether or not the founder acts (in place)"""
    econ = ECONOMY
    preset = DIFFICULTY_PRESETS[state.difficulty]

    release_pending_effects(state)

    # Cash for the period
    state.bank -= state.burn * econ.burn_fraction_per_turn
    state.bank += state.mrr * econ.revenue_fraction_per_turn

    # Users and revenue
    growth = state.wau_growth_rate / 100.0 * growth_multiplier(state) * preset.growth_modifier
    state.wau = state.wau * (1.0 + growth)
    state.mrr -= state.mrr * effective_churn(state) / 100.0 / 4.0

    # Drifts
    state.churn_rate += (churn_target(state) - state.churn_rate) * econ.churn_drift_rate
    nps_target = (1.0 - state.tech_debt / 100.0) * (state.morale / 100.0) * 60.0 - 20.0
    state.nps += (nps_target - state.nps) * econ.nps_drift_rate
    growth_target = state.nps / 5.0 + (state.reputation - 50.0) / 10.0
    state.wau_growth_rate += (growth_target - state.wau_growth_rate) * econ.growth_drift_rate

    # Decay and pressure
    state.morale -= econ.morale_decay_per_week
    if state.velocity > econ.velocity_debt_threshold:
        state.tech_debt += econ.tech_debt_pressure
    state.compliance_risk += econ.compliance_drift_per_week * preset.compliance_burden

    if state.tech_debt > econ.incident_debt_threshold and rng.random() < econ.incident_chance:
        state.incident_count += 1
        state.incident_weeks.append(state.week)
        state.reputation -= 3.0
        state.morale -= 5.0
        state.messages.append("Incident: a production issue hit customers")

    for effect in tick_compounding(state, state.compounding_effects):
        state.messages.append(f"Compounding bonus active: {effect.name}")


# ==================== Turn ====================

def _streams(state: GameState, week: int, rng: Optional[random.Random]):
    if rng is not None:
        return rng, rng, rng, rng, rng, rng
    return tuple(derive_rng(state.seed, name, week)
                 for name in ("actions", "passive", "market", "market_walk", "competitors", "events"))


def take_turn(state: GameState, actions: Sequence[ActionLike], rng: Optional[random.Random] = None) -> GameState:
    """Advance the game one week

    Args:
        state: Current snapshot (not modified)
        actions: This week's actions (Action, ActionKind or id strings)
        rng: Random source for every roll this turn; when omitted each
            subsystem uses its own stream derived from the game seed and week

    Returns:
        New snapshot with week = state.week + 1

    Raises:
        InvalidStateError: malformed snapshot or finished game
        InvalidActionError: unknown, locked, duplicated or malformed action
        CapacityExceededError: actions cost more focus than available
    """
    validate_state(state)
    status = check_game_status(state)
    if status.game_over:
        raise InvalidStateError(f"Game is over ({status_to_string(status)})")
    resolved = validate_actions(state, actions)

    new = copy_state(state)
    new.week = state.week + 1
    new.messages = []
    new.ad_spend_this_week = 0.0
    new.sales_calls_this_week = 0
    action_rng, passive_rng, market_rng, walk_rng, competitor_rng, event_rng = _streams(state, new.week, rng)
    kinds = [a.kind for a in resolved]
    logger.debug("Week %d: actions %s", new.week, [k.value for k in kinds])

    # 1. Actions
    for action in resolved:
        outcome = resolve_action(new, action, action_rng)
        apply_effects(new, outcome.effects)
        new.messages.append(outcome.message)

    # 2. Passive economy
    apply_passive_effects(new, passive_rng)

    # 3. Synergies
    # the action log reaches back past the longest rule window
    for match in match_synergies(kinds, new.action_log, SYNERGY_RULES):
        apply_effects(new, match.effects)
        new.messages.append(f"Synergy: {match.rule.name}")
        logger.debug("Week %d: synergy %s", new.week, match.id)

    # 4. World
    advance_market(new, new.market.conditions, market_rng, walk_rng)
    new.competitors = advance_competitors(new, new.competitors, competitor_rng)
    advance_segments(new, new.customer_segments)

    # 5. Events
    trigger_events(new, event_rng)

    # 6. Clamp once
    clamp_state(new)
    update_derived_metrics(new)

    # 7. Progression
    award_milestones(new, check_progression_milestones(new))
    for kind in unlock_actions(new, check_action_unlocks(new)):
        new.messages.append(f"Unlocked action: {kind.value}")

    # 8. Escape velocity, on the final metrics
    new.escape_velocity = evaluate_escape_velocity(new, state.escape_velocity)

    # 9. Bookkeeping
    record_history(new, ECONOMY.history_limit)
    new.recent_actions = (new.recent_actions + [kinds])[-ECONOMY.recent_action_window:]
    new.action_log = (new.action_log + [kinds])[-ECONOMY.action_log_limit:]
    path = detect_specialization_path(new.action_log)
    new.specialization = path.value if path else None

    status = check_game_status(new)
    if status.game_over:
        new.messages.append(status.message)
        logger.info("Game %s ended in week %d: %s", new.game_id, new.week, status_to_string(status))
    return new


# ==================== Score ====================

def score(state: GameState) -> float:
    """Single comparable number for a finished or running game"""
    arr = state.mrr * 12
    points = state.momentum + arr / 10_000 + state.reputation
    points += state.escape_velocity.streak_weeks * 10 + len(state.achieved_milestones) * 5
    if state.bank <= 0:
        points *= 0.5
    return round(points, 1)


def describe(state: GameState) -> str:
    """One-line summary for logs and the CLI"""
    return (f"Week {state.week}: bank {money(state.bank)}, burn {money(state.burn)}/mo, "
            f"MRR {money(state.mrr)}, WAU {state.wau:,}, morale {state.morale:.0f}, "
            f"streak {state.escape_velocity.streak_weeks}")
