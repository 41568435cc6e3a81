"""
Escape Velocity - Event System
==============================
Weekly random events. Dilemmas wait in `state.active_events` for the player
to pick a choice; automatic events hit the company the moment they roll.

Each template names the metric that drives it and a threshold. The further
the metric is past the threshold, the likelier the event:

    chance = base * (1 + min(excess, max_excess) * excess_weight)

capped at `probability_cap`, where excess is the distance past the threshold
relative to the threshold itself.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from .config import DIFFICULTY_PRESETS, ECONOMY, EVENT_TUNING
from .effects import Effect, Metric, add, apply_effects, scale
from .errors import ChoiceNotFoundError
from .rng import derive_rng
from .state import GameState, clamp_state, copy_state, update_derived_metrics, validate_state

logger = logging.getLogger(__name__)


# ==================== Enums ====================

class EventKind(Enum):
    """How an event resolves"""
    DILEMMA = "Dilemma"  # waits for a player choice
    AUTOMATIC = "Automatic"  # applies on trigger


class EventCategory(Enum):
    MARKET = "Market"
    COMPETITOR = "Competitor"
    INTERNAL = "Internal"
    REGULATORY = "Regulatory"
    ECONOMIC = "Economic"
    TECHNICAL = "Technical"


# ==================== Data Classes ====================

@dataclass(frozen=True)
class EventChoice:
    id: str
    text: str
    description: str
    effects: Sequence[Effect] = ()


@dataclass
class EventTemplate:
    """Static definition of an event and when it can fire"""
    id: str
    title: str
    description: str
    category: EventCategory
    kind: EventKind
    base_probability: float  # 0..1 per week once eligible
    cooldown_weeks: int
    metric: Optional[str] = None  # GameState attribute; None = no threshold
    threshold: float = 0.0
    above: bool = True  # trigger when metric is above (True) or below the threshold
    extra: Optional[Callable[[GameState], bool]] = field(default=None, compare=False, repr=False)
    choices: Sequence[EventChoice] = ()
    effects: Sequence[Effect] = ()  # automatic events only
    incident: bool = False  # counts toward incident_count


@dataclass
class GameEvent:
    """An event that fired in a given week"""
    id: str
    week: int
    title: str
    description: str
    category: EventCategory
    kind: EventKind
    choices: List[EventChoice] = field(default_factory=list)
    effects: List[Effect] = field(default_factory=list)

    def choice(self, choice_id: str) -> Optional[EventChoice]:
        for option in self.choices:
            if option.id == choice_id:
                return option
        return None


# ==================== Templates ====================

def _choice(choice_id, text, description, *effects):
    return EventChoice(choice_id, text, description, tuple(effects))


EVENT_TEMPLATES: List[EventTemplate] = [
    EventTemplate(
        "market_boom", "Market Boom",
        "Your market segment is experiencing unprecedented growth. Investors are taking notice.",
        EventCategory.MARKET, EventKind.DILEMMA, 0.08, 12,
        metric="reputation", threshold=40, extra=lambda s: s.week > 13,
        choices=(
            _choice("accelerate_hiring", "Accelerate Hiring", "Scale the team quickly to capture market share",
                    add(Metric.BURN, 15_000, "market_boom"), add(Metric.VELOCITY, 0.2, "market_boom"),
                    add(Metric.WAU_GROWTH, 5, "market_boom"), add(Metric.MORALE, -3, "market_boom")),
            _choice("focus_product", "Focus on Product", "Use the attention to perfect the product",
                    add(Metric.TECH_DEBT, -5, "market_boom"), add(Metric.REPUTATION, 3, "market_boom"),
                    add(Metric.WAU_GROWTH, 2, "market_boom")),
            _choice("raise_funding", "Raise Funding", "Take advantage of investor interest",
                    add(Metric.BANK, 750_000, "market_boom"), add(Metric.FOUNDER_EQUITY, -15, "market_boom"),
                    add(Metric.WAU_GROWTH, 8, "market_boom")),
        )),
    EventTemplate(
        "economic_downturn", "Economic Downturn",
        "A recession is hitting the tech industry. Customers are cutting budgets.",
        EventCategory.ECONOMIC, EventKind.DILEMMA, 0.06, 20,
        metric="week", threshold=26,
        choices=(
            _choice("cut_costs", "Cut Costs", "Reduce burn rate through layoffs and cost cuts",
                    add(Metric.BURN, -8_000, "economic_downturn"), add(Metric.MORALE, -8, "economic_downturn"),
                    add(Metric.VELOCITY, -0.15, "economic_downturn")),
            _choice("focus_retention", "Focus on Retention", "Double down on keeping existing customers",
                    add(Metric.CHURN, -2, "economic_downturn"), add(Metric.MRR, 2_000, "economic_downturn"),
                    add(Metric.WAU_GROWTH, -3, "economic_downturn")),
            _choice("double_down", "Double Down", "Invest heavily while competitors retreat",
                    add(Metric.BURN, 10_000, "economic_downturn"), add(Metric.WAU_GROWTH, 6, "economic_downturn"),
                    add(Metric.BANK, -50_000, "economic_downturn"), add(Metric.REPUTATION, 4, "economic_downturn")),
        )),
    EventTemplate(
        "competitor_launch", "Major Competitor Launch",
        "A well-funded competitor just launched with a similar product.",
        EventCategory.COMPETITOR, EventKind.DILEMMA, 0.12, 10,
        metric="wau", threshold=5_000,
        choices=(
            _choice("price_war", "Start Price War", "Cut prices to maintain market share",
                    add(Metric.MRR, -5_000, "competitor_launch"), add(Metric.WAU_GROWTH, 4, "competitor_launch"),
                    add(Metric.CHURN, -1, "competitor_launch")),
            _choice("differentiate", "Differentiate", "Focus on unique features and positioning",
                    add(Metric.REPUTATION, 3, "competitor_launch"), add(Metric.WAU_GROWTH, 1, "competitor_launch"),
                    add(Metric.TECH_DEBT, 3, "competitor_launch")),
            _choice("acquire_users", "Aggressive User Acquisition", "Spend heavily on marketing",
                    add(Metric.BANK, -30_000, "competitor_launch"), add(Metric.WAU_GROWTH, 7, "competitor_launch"),
                    add(Metric.BURN, 5_000, "competitor_launch")),
        )),
    EventTemplate(
        "key_employee_quits", "Key Employee Resignation",
        "Your lead engineer just announced they're leaving for a competitor.",
        EventCategory.INTERNAL, EventKind.DILEMMA, 0.08, 8,
        metric="morale", threshold=60, above=False, extra=lambda s: s.week > 8,
        choices=(
            _choice("hire_replacement", "Hire Replacement", "Quickly hire someone new",
                    add(Metric.BURN, 12_000, "key_employee_quits"), add(Metric.VELOCITY, -0.1, "key_employee_quits"),
                    add(Metric.MORALE, -2, "key_employee_quits")),
            _choice("promote_internal", "Promote Internally", "Give someone on the team a chance to step up",
                    add(Metric.MORALE, 5, "key_employee_quits"), add(Metric.VELOCITY, -0.05, "key_employee_quits"),
                    add(Metric.REPUTATION, 1, "key_employee_quits")),
            _choice("redistribute_work", "Redistribute Work", "Spread responsibilities across the team",
                    add(Metric.VELOCITY, -0.15, "key_employee_quits"), add(Metric.MORALE, -4, "key_employee_quits"),
                    add(Metric.BURN, -3_000, "key_employee_quits")),
        )),
    EventTemplate(
        "regulatory_scrutiny", "Regulatory Scrutiny",
        "Regulators are investigating companies in your space.",
        EventCategory.REGULATORY, EventKind.DILEMMA, 0.05, 12,
        metric="compliance_risk", threshold=30,
        choices=(
            _choice("cooperate_fully", "Cooperate Fully", "Be transparent and over-comply",
                    add(Metric.COMPLIANCE_RISK, -10, "regulatory_scrutiny"),
                    add(Metric.BURN, 8_000, "regulatory_scrutiny"),
                    add(Metric.VELOCITY, -0.1, "regulatory_scrutiny"),
                    add(Metric.REPUTATION, 2, "regulatory_scrutiny")),
            _choice("minimal_compliance", "Minimal Compliance", "Do the minimum required",
                    add(Metric.COMPLIANCE_RISK, 5, "regulatory_scrutiny"),
                    add(Metric.BURN, 2_000, "regulatory_scrutiny"),
                    add(Metric.REPUTATION, -3, "regulatory_scrutiny")),
            _choice("lobby_influence", "Lobby for Influence", "Engage with regulators to shape the rules",
                    add(Metric.BURN, 15_000, "regulatory_scrutiny"),
                    add(Metric.COMPLIANCE_RISK, -15, "regulatory_scrutiny"),
                    add(Metric.REPUTATION, 4, "regulatory_scrutiny")),
        )),
    EventTemplate(
        "security_breach", "Security Incident",
        "You've discovered a potential security vulnerability in your system.",
        EventCategory.TECHNICAL, EventKind.DILEMMA, 0.04, 16,
        metric="tech_debt", threshold=40,
        choices=(
            _choice("full_disclosure", "Full Disclosure", "Immediately notify all users and fix publicly",
                    add(Metric.REPUTATION, -8, "security_breach"), add(Metric.CHURN, 3, "security_breach"),
                    add(Metric.COMPLIANCE_RISK, -5, "security_breach"), add(Metric.WAU, -500, "security_breach")),
            _choice("quiet_fix", "Quiet Fix", "Fix it quietly without public announcement",
                    add(Metric.TECH_DEBT, -8, "security_breach"), add(Metric.COMPLIANCE_RISK, 10, "security_breach"),
                    add(Metric.REPUTATION, -15, "security_breach")),
            _choice("turn_into_opportunity", "Turn Into Opportunity", "Use it to showcase your security practices",
                    add(Metric.TECH_DEBT, -12, "security_breach"), add(Metric.BURN, 12_000, "security_breach"),
                    add(Metric.REPUTATION, 6, "security_breach"), add(Metric.COMPLIANCE_RISK, -8, "security_breach")),
        ), incident=True),
    EventTemplate(
        "production_outage", "Production Outage",
        "Accumulated tech debt finally took the product down for a few hours.",
        EventCategory.TECHNICAL, EventKind.AUTOMATIC, 0.05, 6,
        metric="tech_debt", threshold=70,
        effects=(add(Metric.REPUTATION, -5, "production_outage"), add(Metric.CHURN, 1, "production_outage"),
                 add(Metric.MORALE, -3, "production_outage"), scale(Metric.WAU, 0.97, "production_outage")),
        incident=True),
    EventTemplate(
        "key_person_sick", "Key Person Out Sick",
        "Someone critical is out for the week.",
        EventCategory.INTERNAL, EventKind.AUTOMATIC, 0.02, 9,
        effects=(add(Metric.VELOCITY, -0.1, "key_person_sick"), add(Metric.MORALE, -2, "key_person_sick"))),
    EventTemplate(
        "market_shift", "Market Shift",
        "Customer expectations moved; part of the roadmap needs rework.",
        EventCategory.MARKET, EventKind.AUTOMATIC, 0.03, 12,
        effects=(add(Metric.TECH_DEBT, 5, "market_shift"), add(Metric.MORALE, -2, "market_shift"))),
    EventTemplate(
        "new_regulation", "New Regulation",
        "A new rule applies to your industry.",
        EventCategory.REGULATORY, EventKind.AUTOMATIC, 0.02, 15,
        effects=(add(Metric.COMPLIANCE_RISK, 10, "new_regulation"),)),
    EventTemplate(
        "industry_trend", "Industry Trend",
        "Your category is trending in the press.",
        EventCategory.MARKET, EventKind.AUTOMATIC, 0.04, 10,
        effects=(add(Metric.REPUTATION, 2, "industry_trend"),)),
    EventTemplate(
        "viral_moment", "Viral Moment",
        "A happy customer's post about the product took off.",
        EventCategory.MARKET, EventKind.AUTOMATIC, 0.15, 20,
        metric="nps", threshold=60, extra=lambda s: s.tech_debt < 35 and s.wau > 200,
        effects=(scale(Metric.WAU, 1.2, "viral_moment"), add(Metric.WAU_GROWTH, 5, "viral_moment"),
                 add(Metric.REPUTATION, 3, "viral_moment"))),
]

TEMPLATES_BY_ID = {template.id: template for template in EVENT_TEMPLATES}


# ==================== Rolls ====================

def trigger_excess(template: EventTemplate, state: GameState) -> Optional[float]:
    """Relative distance past the threshold, or None when not eligible"""
    if template.extra is not None and not template.extra(state):
        return None
    if template.metric is None:
        return 0.0
    value = getattr(state, template.metric)
    gap = value - template.threshold if template.above else template.threshold - value
    if gap <= 0:
        return None
    return gap / max(abs(template.threshold), 1.0)


def event_probability(template: EventTemplate, state: GameState) -> float:
    excess = trigger_excess(template, state)
    if excess is None:
        return 0.0
    tuning = EVENT_TUNING
    chance = template.base_probability * (1.0 + min(excess, tuning.max_excess) * tuning.excess_weight)
    return min(chance, tuning.probability_cap)


def _scaled(effect: Effect, severity: float) -> Effect:
    if effect.multiplicative:
        return Effect(effect.metric, 1.0 + (effect.amount - 1.0) * severity, True, effect.delay_weeks, effect.source)
    return Effect(effect.metric, effect.amount * severity, False, effect.delay_weeks, effect.source)


def instantiate(template: EventTemplate, state: GameState) -> GameEvent:
    severity = DIFFICULTY_PRESETS[state.difficulty].event_severity
    return GameEvent(
        id=template.id,
        week=state.week,
        title=template.title,
        description=template.description,
        category=template.category,
        kind=template.kind,
        choices=list(template.choices),
        effects=[_scaled(e, severity) for e in template.effects],
    )


def roll_events(state: GameState, active_events: Sequence[GameEvent], rng: random.Random) -> List[GameEvent]:
    """Roll every eligible template once; keep the first `max_events_per_week` hits"""
    active_ids = {event.id for event in active_events}
    fired = []
    for template in EVENT_TEMPLATES:
        # every template consumes one draw so later rolls don't shift
        roll = rng.random()
        if template.id in active_ids or state.event_cooldowns.get(template.id, 0) > 0:
            continue
        if roll < event_probability(template, state):
            fired.append(instantiate(template, state))
    return fired[:ECONOMY.max_events_per_week]


def trigger_events(state: GameState, rng: random.Random) -> List[GameEvent]:
    """Tick cooldowns, roll, and apply what fired (in place)"""
    state.event_cooldowns = {k: v - 1 for k, v in state.event_cooldowns.items() if v > 1}
    fired = roll_events(state, state.active_events, rng)
    for event in fired:
        template = TEMPLATES_BY_ID[event.id]
        state.event_cooldowns[event.id] = template.cooldown_weeks
        if template.incident:
            state.incident_count += 1
            state.incident_weeks.append(state.week)
        if event.id == "key_employee_quits":
            leaving = state.roster.newest_active()
            if leaving is not None:
                state.roster.depart(leaving, state.week, "resigned")
        if event.kind == EventKind.AUTOMATIC:
            apply_effects(state, event.effects)
            state.messages.append(f"Event: {event.title} - {event.description}")
        else:
            state.active_events.append(event)
            state.messages.append(f"Decision needed: {event.title}")
        logger.debug("Week %d: event %s fired", state.week, event.id)
    return fired


# ==================== Public API ====================

def check_for_events(state: GameState, active_events: Sequence[GameEvent],
                     rng: Optional[random.Random] = None) -> List[GameEvent]:
    """Roll this week's events without touching the snapshot

    Args:
        state: Current snapshot (not modified)
        active_events: Events still waiting for a decision; these are skipped
        rng: Random source; derived from the game seed and week when omitted

    Returns:
        Newly triggered events, at most `max_events_per_week`
    """
    validate_state(state)
    rng = rng if rng is not None else derive_rng(state.seed, "events", state.week)
    return roll_events(state, active_events, rng)


def apply_event_choice(state: GameState, event: Union[GameEvent, str], choice_id: str) -> GameState:
    """Resolve a dilemma with the chosen option

    Args:
        state: Current snapshot (not modified)
        event: The event, or its id among `state.active_events`
        choice_id: Id of the chosen option

    Returns:
        New snapshot with the choice's effects applied and the event removed
        from the active set

    Raises:
        ChoiceNotFoundError: the event is not active or has no such choice
    """
    validate_state(state)
    if isinstance(event, str):
        matches = [e for e in state.active_events if e.id == event]
        if not matches:
            raise ChoiceNotFoundError(event, choice_id, f"No active event '{event}'")
        event = matches[0]
    choice = event.choice(choice_id)
    if choice is None:
        raise ChoiceNotFoundError(event.id, choice_id)

    new_state = copy_state(state)
    apply_effects(new_state, choice.effects)
    new_state.active_events = [e for e in new_state.active_events if e.id != event.id]
    new_state.messages.append(f"{event.title}: chose {choice.text}")
    clamp_state(new_state)
    update_derived_metrics(new_state)
    logger.debug("Event %s resolved with %s", event.id, choice_id)
    return new_state
