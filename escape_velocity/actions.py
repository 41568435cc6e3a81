"""
Escape Velocity - Action Catalog
================================
Weekly player actions, their focus cost and the effect bundles they produce.
Each action reads the running (already partly updated) state when it builds
its bundle, which is why submitted order matters.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Union

from .config import DIFFICULTY_PRESETS, Difficulty, ECONOMY
from .effects import Effect, Metric, add, scale
from .errors import InvalidActionError
from .market import funding_multiplier
from .state import GameState, clamp, money

logger = logging.getLogger(__name__)


# ==================== Enums ====================

class ActionKind(Enum):
    """Every action a founder can commit to in a week"""
    SHIP_FEATURE = "ShipFeature"
    FOUNDER_LED_SALES = "FounderLedSales"
    HIRE = "Hire"
    FUNDRAISE = "Fundraise"
    REFACTOR_CODE = "RefactorCode"
    RUN_EXPERIMENT = "RunExperiment"
    CONTENT_LAUNCH = "ContentLaunch"
    DEV_REL = "DevRel"
    PAID_ADS = "PaidAds"
    COACH = "Coach"
    FIRE = "Fire"
    COMPLIANCE_WORK = "ComplianceWork"
    INCIDENT_RESPONSE = "IncidentResponse"
    PROCESS_IMPROVEMENT = "ProcessImprovement"
    TAKE_BREAK = "TakeBreak"


class ActionCategory(Enum):
    """Broad area an action belongs to (used by specialization paths)"""
    PRODUCT = "product"
    GROWTH = "growth"
    TEAM = "team"
    OPS = "ops"
    RECOVERY = "recovery"


class Quality(Enum):
    QUICK = "Quick"
    BALANCED = "Balanced"
    POLISH = "Polish"


class RefactorDepth(Enum):
    SURFACE = "Surface"
    MEDIUM = "Medium"
    DEEP = "Deep"


class ExperimentType(Enum):
    PRICING = "Pricing"
    ONBOARDING = "Onboarding"
    CHANNEL = "Channel"


class ContentType(Enum):
    BLOG_POST = "BlogPost"
    TUTORIAL = "Tutorial"
    CASE_STUDY = "CaseStudy"
    VIDEO = "Video"


class DevRelEvent(Enum):
    CONFERENCE = "Conference"
    PODCAST = "Podcast"
    OPEN_SOURCE = "OpenSource"
    WORKSHOP = "Workshop"


class AdChannel(Enum):
    GOOGLE = "Google"
    SOCIAL = "Social"
    DISPLAY = "Display"
    INFLUENCER = "Influencer"


class CoachingFocus(Enum):
    SKILLS = "Skills"
    MORALE = "Morale"
    ALIGNMENT = "Alignment"
    PERFORMANCE = "Performance"


class FiringReason(Enum):
    PERFORMANCE = "Performance"
    CULTURE = "Culture"
    BUDGET = "Budget"


# ==================== Data Classes ====================

@dataclass(frozen=True)
class Action:
    """A committed action; only the parameters of its kind are read"""
    kind: ActionKind
    quality: Quality = Quality.BALANCED
    call_count: int = 5
    target: float = 500_000
    depth: RefactorDepth = RefactorDepth.SURFACE
    experiment: ExperimentType = ExperimentType.PRICING
    content_type: ContentType = ContentType.BLOG_POST
    event_type: DevRelEvent = DevRelEvent.CONFERENCE
    budget: float = 5_000
    channel: AdChannel = AdChannel.SOCIAL
    focus: CoachingFocus = CoachingFocus.SKILLS
    reason: FiringReason = FiringReason.PERFORMANCE
    hours: int = 4


@dataclass(frozen=True)
class ActionSpec:
    """Static catalog entry"""
    kind: ActionKind
    label: str
    category: ActionCategory
    cost: int = 1  # focus slots


@dataclass
class ActionOutcome:
    """Result of resolving one action"""
    action: Action
    success: bool
    message: str
    effects: List[Effect]


ActionLike = Union[Action, ActionKind, str]


# ==================== Catalog ====================

ACTION_SPECS: Dict[ActionKind, ActionSpec] = {spec.kind: spec for spec in (
    ActionSpec(ActionKind.SHIP_FEATURE, "Ship a feature", ActionCategory.PRODUCT),
    ActionSpec(ActionKind.FOUNDER_LED_SALES, "Founder-led sales", ActionCategory.GROWTH),
    ActionSpec(ActionKind.HIRE, "Hire", ActionCategory.TEAM),
    ActionSpec(ActionKind.FUNDRAISE, "Fundraise", ActionCategory.GROWTH, cost=2),
    ActionSpec(ActionKind.REFACTOR_CODE, "Refactor code", ActionCategory.PRODUCT),
    ActionSpec(ActionKind.RUN_EXPERIMENT, "Run an experiment", ActionCategory.PRODUCT),
    ActionSpec(ActionKind.CONTENT_LAUNCH, "Launch content", ActionCategory.GROWTH),
    ActionSpec(ActionKind.DEV_REL, "Developer relations", ActionCategory.GROWTH),
    ActionSpec(ActionKind.PAID_ADS, "Paid ads", ActionCategory.GROWTH),
    ActionSpec(ActionKind.COACH, "Coach the team", ActionCategory.TEAM),
    ActionSpec(ActionKind.FIRE, "Let someone go", ActionCategory.TEAM),
    ActionSpec(ActionKind.COMPLIANCE_WORK, "Compliance work", ActionCategory.OPS),
    ActionSpec(ActionKind.INCIDENT_RESPONSE, "Incident response", ActionCategory.OPS),
    ActionSpec(ActionKind.PROCESS_IMPROVEMENT, "Process improvement", ActionCategory.OPS),
    ActionSpec(ActionKind.TAKE_BREAK, "Take a break", ActionCategory.RECOVERY),
)}

BASE_UNLOCKED = (
    ActionKind.SHIP_FEATURE,
    ActionKind.FOUNDER_LED_SALES,
    ActionKind.HIRE,
    ActionKind.FUNDRAISE,
    ActionKind.TAKE_BREAK,
)

_ALL_KINDS = frozenset(ActionKind)

DIFFICULTY_CATALOGS: Dict[Difficulty, FrozenSet[ActionKind]] = {
    Difficulty.INDIE_BOOTSTRAP: _ALL_KINDS - {ActionKind.COMPLIANCE_WORK},
    Difficulty.VC_TRACK: _ALL_KINDS,
    Difficulty.REGULATED_FINTECH: _ALL_KINDS,
    Difficulty.INFRA_DEV_TOOL: _ALL_KINDS,
}


def action_cost(action: Action) -> int:
    return ACTION_SPECS[action.kind].cost


def coerce_action(action: ActionLike) -> Action:
    """Accept an Action, an ActionKind or an action id string"""
    if isinstance(action, Action):
        return action
    if isinstance(action, ActionKind):
        return Action(action)
    if isinstance(action, str):
        try:
            return Action(ActionKind(action))
        except ValueError:
            raise InvalidActionError(f"Unknown action id: {action!r}") from None
    raise InvalidActionError(f"Not an action: {action!r}")


def check_parameters(action: Action):
    """Reject parameter values no action can use"""
    if action.kind == ActionKind.FOUNDER_LED_SALES and not 1 <= action.call_count <= 20:
        raise InvalidActionError(f"Sales call count must be 1..20 (got {action.call_count})")
    if action.kind == ActionKind.FUNDRAISE and action.target <= 0:
        raise InvalidActionError(f"Fundraise target must be positive (got {action.target})")
    if action.kind == ActionKind.PAID_ADS and action.budget <= 0:
        raise InvalidActionError(f"Ad budget must be positive (got {action.budget})")
    if action.kind == ActionKind.COMPLIANCE_WORK and not 1 <= action.hours <= 40:
        raise InvalidActionError(f"Compliance hours must be 1..40 (got {action.hours})")


# ==================== Resolution ====================

def _jitter(rng: random.Random, spread: float) -> float:
    """Uniform factor in [1 - spread, 1 + spread]"""
    return 1.0 + rng.uniform(-spread, spread)


def resolve_action(state: GameState, action: Action, rng: random.Random) -> ActionOutcome:
    """Build the effect bundle for one action from the running state

    Roster changes and per-turn counters are recorded on `state` directly;
    numeric changes are returned as effects for the resolver.
    """
    handler = _HANDLERS[action.kind]
    outcome = handler(state, action, rng)
    logger.debug("Week %d: %s -> %s", state.week, action.kind.value, outcome.message)
    return outcome


def _ship_feature(state, action, rng):
    q = action.quality
    wau_boost = {Quality.QUICK: 3.0, Quality.BALANCED: 4.0, Quality.POLISH: 2.0}[q] + rng.uniform(-1.0, 1.0)
    debt = {Quality.QUICK: 6.0, Quality.BALANCED: 2.0, Quality.POLISH: -3.0}[q] + rng.uniform(-1.0, 1.0)
    morale = {Quality.QUICK: -1.0, Quality.BALANCED: 1.0, Quality.POLISH: 3.0}[q] + rng.uniform(-0.5, 0.5)
    nps = {Quality.QUICK: -1.0, Quality.BALANCED: 1.0, Quality.POLISH: 3.0}[q]
    src = "ship_feature"
    effects = [
        scale(Metric.WAU, 1.0 + wau_boost * state.velocity / 100.0, src),
        add(Metric.WAU_GROWTH, wau_boost / 4.0, src),
        add(Metric.TECH_DEBT, debt, src),
        add(Metric.MORALE, morale, src),
        add(Metric.NPS, nps, src),
    ]
    messages = {
        Quality.QUICK: "Shipped feature quickly - gained momentum but added tech debt",
        Quality.BALANCED: "Shipped feature with balanced approach",
        Quality.POLISH: "Polished feature launch - high quality, slower delivery",
    }
    return ActionOutcome(action, True, messages[q], effects)


def _founder_led_sales(state, action, rng):
    conversion = 0.05 + state.reputation / 200.0
    deals = sum(1 for _ in range(action.call_count) if rng.random() < conversion)
    revenue = sum(500.0 * rng.uniform(0.8, 1.2) for _ in range(deals))
    state.sales_calls_this_week += action.call_count
    src = "founder_led_sales"
    effects = [
        add(Metric.MRR, revenue, src),
        add(Metric.MORALE, -0.5 * action.call_count, src),
        add(Metric.REPUTATION, 1.0, src),
    ]
    message = f"Made {action.call_count} sales calls, closed {deals} deals (+{money(revenue)} MRR)"
    return ActionOutcome(action, deals > 0, message, effects)


def _hire(state, action, rng):
    preset = DIFFICULTY_PRESETS[state.difficulty]
    member = state.roster.hire(state.week)
    src = "hire"
    effects = [
        add(Metric.BURN, ECONOMY.hire_burn * preset.burn_modifier, src),
        add(Metric.MORALE, 5.0, src),
        add(Metric.VELOCITY, 0.1, src, delay_weeks=ECONOMY.hire_ramp_weeks),
        add(Metric.OPTION_POOL, 0.5, src),
        add(Metric.FOUNDER_EQUITY, -0.5, src),
    ]
    return ActionOutcome(action, True, f"Hired a new {member.role} (ramping up)", effects)


def _fundraise(state, action, rng):
    chance = (0.3 + state.reputation / 200.0 + state.momentum / 400.0)
    chance *= funding_multiplier(state) * state.modifiers.get("fundraise_multiplier", 1.0)
    chance = clamp(chance, 0.0, 0.95)
    src = "fundraise"
    if rng.random() < chance:
        state.total_raised += action.target
        dilution = action.target / 5_000_000 * 20.0
        effects = [add(Metric.BANK, action.target, src), add(Metric.FOUNDER_EQUITY, -dilution, src)]
        return ActionOutcome(action, True, f"Raised {money(action.target)} for {dilution:.1f}% equity", effects)
    return ActionOutcome(action, False, "Fundraising failed - investors passed",
                         [add(Metric.MORALE, -10.0, src)])


def _refactor_code(state, action, rng):
    d = action.depth
    reduction = {RefactorDepth.SURFACE: 10.0, RefactorDepth.MEDIUM: 20.0, RefactorDepth.DEEP: 35.0}[d]
    if state.tech_debt > 50:
        reduction *= 1.2
    reduction *= _jitter(rng, 0.2)
    velocity = {RefactorDepth.SURFACE: 0.05, RefactorDepth.MEDIUM: 0.12, RefactorDepth.DEEP: 0.2}[d]
    morale_cost = {RefactorDepth.SURFACE: 2.0, RefactorDepth.MEDIUM: 5.0, RefactorDepth.DEEP: 10.0}[d] * _jitter(rng, 0.1)
    src = "refactor_code"
    effects = [
        add(Metric.TECH_DEBT, -reduction, src),
        add(Metric.VELOCITY, velocity, src),
        add(Metric.MORALE, -morale_cost, src),
    ]
    return ActionOutcome(action, True, f"{d.value} refactor removed {reduction:.0f} points of tech debt", effects)


def _run_experiment(state, action, rng):
    src = "run_experiment"
    if rng.random() >= 0.6:
        return ActionOutcome(action, False, "Experiment failed - learned what not to do",
                             [add(Metric.MORALE, -2.0, src)])
    if action.experiment == ExperimentType.PRICING:
        factor = 1.0 + 0.05 * rng.uniform(0.8, 1.2)
        return ActionOutcome(action, True, "Found a better pricing tier",
                             [scale(Metric.MRR, factor, src)])
    if action.experiment == ExperimentType.ONBOARDING:
        factor = 1.0 + 0.03 * rng.uniform(0.8, 1.2)
        return ActionOutcome(action, True, "Streamlined onboarding - reduced churn",
                             [scale(Metric.WAU, factor, src), scale(Metric.CHURN, 0.95, src)])
    rep = 5.0 * rng.uniform(0.8, 1.2)
    return ActionOutcome(action, True, "Discovered a high-converting channel",
                         [add(Metric.REPUTATION, rep, src), add(Metric.WAU_GROWTH, 1.0, src)])


def _content_launch(state, action, rng):
    c = action.content_type
    base = {ContentType.BLOG_POST: 2.0, ContentType.TUTORIAL: 4.0, ContentType.CASE_STUDY: 3.0, ContentType.VIDEO: 5.0}[c]
    wau_gain = base * (0.8 + state.reputation / 100.0) * rng.uniform(0.8, 1.2)
    rep = {ContentType.BLOG_POST: 2.0, ContentType.TUTORIAL: 3.0, ContentType.CASE_STUDY: 4.0, ContentType.VIDEO: 5.0}[c]
    src = "content_launch"
    effects = [
        scale(Metric.WAU, 1.0 + wau_gain / 100.0, src),
        add(Metric.WAU_GROWTH, wau_gain / 4.0, src),
        add(Metric.REPUTATION, rep * _jitter(rng, 0.1), src),
    ]
    return ActionOutcome(action, True, f"Launched {c.value} content", effects)


def _dev_rel(state, action, rng):
    e = action.event_type
    rep = {DevRelEvent.CONFERENCE: 12.0, DevRelEvent.PODCAST: 8.0,
           DevRelEvent.OPEN_SOURCE: 6.0, DevRelEvent.WORKSHOP: 10.0}[e] * _jitter(rng, 0.1)
    wau_gain = rep * 0.5 * rng.uniform(0.8, 1.2)
    src = "dev_rel"
    # open source adoption shows up a couple of weeks later
    delay = 2 if e == DevRelEvent.OPEN_SOURCE else 0
    effects = [
        add(Metric.REPUTATION, rep, src),
        scale(Metric.WAU, 1.0 + wau_gain / 100.0, src, delay_weeks=delay),
        add(Metric.MORALE, 5.0 * _jitter(rng, 0.1), src),
    ]
    return ActionOutcome(action, True, f"Ran a {e.value} developer relations event", effects)


def _paid_ads(state, action, rng):
    effectiveness = {AdChannel.GOOGLE: 0.8, AdChannel.SOCIAL: 1.0,
                     AdChannel.DISPLAY: 0.6, AdChannel.INFLUENCER: 1.2}[action.channel]
    users = effectiveness * action.budget / 25.0 * rng.uniform(0.8, 1.2)
    state.ad_spend_this_week += action.budget
    src = "paid_ads"
    effects = [
        add(Metric.WAU, users, src),
        add(Metric.WAU_GROWTH, effectiveness * action.budget / 5_000, src),
        add(Metric.BANK, -action.budget, src),
    ]
    return ActionOutcome(action, users > 0, f"Ran {action.channel.value} ads with {money(action.budget)} budget", effects)


def _coach(state, action, rng):
    velocity, morale = {
        CoachingFocus.SKILLS: (0.08, 2.0),
        CoachingFocus.MORALE: (0.02, 8.0),
        CoachingFocus.ALIGNMENT: (0.05, 4.0),
        CoachingFocus.PERFORMANCE: (0.1, 3.0),
    }[action.focus]
    src = "coach"
    effects = [
        add(Metric.VELOCITY, velocity * _jitter(rng, 0.1), src),
        add(Metric.MORALE, morale * _jitter(rng, 0.1), src),
    ]
    return ActionOutcome(action, True, f"Coached the team on {action.focus.value.lower()}", effects)


def _fire(state, action, rng):
    member_id = state.roster.newest_active()
    if member_id is None:
        raise InvalidActionError("There is nobody to let go")
    state.roster.depart(member_id, state.week, action.reason.value)
    preset = DIFFICULTY_PRESETS[state.difficulty]
    morale, velocity = {
        FiringReason.PERFORMANCE: (-8.0, -0.05),
        FiringReason.CULTURE: (-12.0, -0.08),
        FiringReason.BUDGET: (-5.0, -0.02),
    }[action.reason]
    savings = ECONOMY.fire_savings * preset.burn_modifier * rng.uniform(0.8, 1.2)
    src = "fire"
    effects = [
        add(Metric.BURN, -savings, src),
        add(Metric.MORALE, morale, src),
        add(Metric.VELOCITY, velocity, src),
    ]
    return ActionOutcome(action, True, f"Let a team member go ({action.reason.value.lower()})", effects)


def _compliance_work(state, action, rng):
    src = "compliance_work"
    effects = [
        add(Metric.COMPLIANCE_RISK, -2.0 * action.hours, src),
        add(Metric.MORALE, -0.3 * action.hours * _jitter(rng, 0.1), src),
    ]
    return ActionOutcome(action, True, f"Spent {action.hours} hours on compliance", effects)


def _incident_response(state, action, rng):
    src = "incident_response"
    effects = [
        add(Metric.TECH_DEBT, -5.0, src),
        add(Metric.REPUTATION, -5.0, src),
        add(Metric.MORALE, -15.0 * _jitter(rng, 0.1), src),
        add(Metric.CHURN, -1.0, src),
    ]
    return ActionOutcome(action, True, "Ran an incident response and post-mortem", effects)


def _process_improvement(state, action, rng):
    src = "process_improvement"
    effects = [
        add(Metric.VELOCITY, 0.08, src),
        add(Metric.MORALE, 3.0 * _jitter(rng, 0.1), src),
    ]
    return ActionOutcome(action, True, "Improved team processes", effects)


def _take_break(state, action, rng):
    src = "take_break"
    effects = [add(Metric.MORALE, 15.0, src), add(Metric.WAU_GROWTH, -2.0, src)]
    return ActionOutcome(action, True, "Took a break - the team recharged", effects)


_HANDLERS = {
    ActionKind.SHIP_FEATURE: _ship_feature,
    ActionKind.FOUNDER_LED_SALES: _founder_led_sales,
    ActionKind.HIRE: _hire,
    ActionKind.FUNDRAISE: _fundraise,
    ActionKind.REFACTOR_CODE: _refactor_code,
    ActionKind.RUN_EXPERIMENT: _run_experiment,
    ActionKind.CONTENT_LAUNCH: _content_launch,
    ActionKind.DEV_REL: _dev_rel,
    ActionKind.PAID_ADS: _paid_ads,
    ActionKind.COACH: _coach,
    ActionKind.FIRE: _fire,
    ActionKind.COMPLIANCE_WORK: _compliance_work,
    ActionKind.INCIDENT_RESPONSE: _incident_response,
    ActionKind.PROCESS_IMPROVEMENT: _process_improvement,
    ActionKind.TAKE_BREAK: _take_break,
}
