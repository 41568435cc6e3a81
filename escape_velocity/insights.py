"""
Escape Velocity - Insights & Warnings
=====================================
Stateless analytics over snapshots. Narrative insights and warnings classify
metrics with the same good/warning/critical bands the dashboard colors with,
so text and color never disagree.

Trend forecasts fit a least-squares line over the history ledger with
scipy.stats.linregress. They are read-only and never feed the simulation.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np
from scipy import stats

from .customers import calculate_customer_metrics, customer_health_score
from .state import GameState, money


# ==================== Bands ====================

class Band(Enum):
    """Dashboard color band"""
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class MetricBand:
    good: float
    critical: float
    higher_is_better: bool = True


METRIC_BANDS: Dict[str, MetricBand] = {
    "runway_months": MetricBand(good=6.0, critical=3.0),
    "churn_rate": MetricBand(good=3.0, critical=5.0, higher_is_better=False),
    "morale": MetricBand(good=60.0, critical=30.0),
    "reputation": MetricBand(good=60.0, critical=30.0),
    "nps": MetricBand(good=30.0, critical=0.0),
    "tech_debt": MetricBand(good=30.0, critical=70.0, higher_is_better=False),
    "compliance_risk": MetricBand(good=30.0, critical=60.0, higher_is_better=False),
    "velocity": MetricBand(good=1.0, critical=0.5),
}


def classify(metric: str, value: float) -> Band:
    """Band for a metric value (good above/below `good`, critical past `critical`)"""
    band = METRIC_BANDS[metric]
    if band.higher_is_better:
        if value > band.good:
            return Band.GOOD
        if value < band.critical:
            return Band.CRITICAL
    else:
        if value < band.good:
            return Band.GOOD
        if value > band.critical:
            return Band.CRITICAL
    return Band.WARNING


# ==================== Data Classes ====================

class Severity(Enum):
    INFO = "Info"
    WARNING = "Warning"
    CRITICAL = "Critical"


class WarningLevel(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


@dataclass
class Insight:
    category: str
    title: str
    observation: str
    suggestion: str
    severity: Severity
    metric: Optional[str] = None
    value: Optional[float] = None


@dataclass
class FailureWarning:
    id: str
    title: str
    description: str
    level: WarningLevel
    suggested_actions: List[str] = field(default_factory=list)
    weeks_to_failure: Optional[int] = None


@dataclass
class TrendFit:
    """Least-squares fit of one metric over the history ledger"""
    metric: str
    slope: float  # per week
    intercept: float
    r_squared: float
    points: int


_SEVERITY_FOR_BAND = {Band.GOOD: Severity.INFO, Band.WARNING: Severity.WARNING, Band.CRITICAL: Severity.CRITICAL}


# ==================== Insights ====================

def _metric_changes(prev: GameState, cur: GameState) -> List[Insight]:
    found = []
    revenue = cur.mrr - prev.mrr
    if abs(revenue) > prev.mrr * 0.1 and revenue != 0:
        if revenue > 0:
            found.append(Insight("Revenue", "Revenue Growth", f"MRR increased by {money(revenue)}",
                                 "Keep investing in what brings revenue in", Severity.INFO, "mrr", cur.mrr))
        else:
            found.append(Insight("Revenue", "Revenue Decline", f"MRR decreased by {money(-revenue)}",
                                 "Run pricing experiments or improve product quality", Severity.WARNING,
                                 "mrr", cur.mrr))

    users = cur.wau - prev.wau
    if abs(users) > prev.wau * 0.05 and users != 0:
        if users > 0:
            found.append(Insight("Users", "User Growth", f"WAU increased by {users:,}",
                                 "Scale the channels that are working", Severity.INFO, "wau", cur.wau))
        else:
            found.append(Insight("Users", "User Decline", f"WAU decreased by {-users:,}",
                                 "Investigate churn reasons and improve the product", Severity.WARNING,
                                 "wau", cur.wau))

    morale = cur.morale - prev.morale
    if morale < -5:
        found.append(Insight("Team", "Morale Decline", f"Morale dropped {-morale:.0f} points",
                             "Take a break or coach the team", Severity.WARNING, "morale", cur.morale))
    elif morale > 5:
        found.append(Insight("Team", "Morale Boost", f"Morale rose {morale:.0f} points",
                             "Use the energy to tackle hard problems", Severity.INFO, "morale", cur.morale))

    if cur.tech_debt - prev.tech_debt > 5:
        found.append(Insight("Product", "Tech Debt Increase",
                             f"Tech debt rose {cur.tech_debt - prev.tech_debt:.0f} points",
                             "Schedule a refactor before it slows the team", Severity.WARNING,
                             "tech_debt", cur.tech_debt))
    return found


def _band_insights(cur: GameState) -> List[Insight]:
    found = []
    runway = classify("runway_months", cur.runway_months)
    if runway == Band.CRITICAL:
        found.append(Insight("Cash", "Cash Runway Concern", f"Only {cur.runway_months:.1f} months of runway left",
                             "Raise money or cut burn now", Severity.CRITICAL, "runway_months", cur.runway_months))
    elif runway == Band.WARNING:
        found.append(Insight("Cash", "Runway Getting Short", f"{cur.runway_months:.1f} months of runway left",
                             "Start planning the next raise", Severity.WARNING, "runway_months", cur.runway_months))

    churn = classify("churn_rate", cur.churn_rate)
    if churn != Band.GOOD:
        found.append(Insight("Customers", "Churn Above Target", f"Churn is {cur.churn_rate:.1f}%",
                             "Improve onboarding and product quality", _SEVERITY_FOR_BAND[churn],
                             "churn_rate", cur.churn_rate))

    if classify("compliance_risk", cur.compliance_risk) == Band.CRITICAL:
        found.append(Insight("Risk", "High Compliance Risk", f"Compliance risk is {cur.compliance_risk:.0f}",
                             "Put hours into compliance work", Severity.CRITICAL,
                             "compliance_risk", cur.compliance_risk))
    if classify("nps", cur.nps) == Band.CRITICAL:
        found.append(Insight("Customers", "Poor Customer Satisfaction", f"NPS is {cur.nps:.0f}",
                             "Ship polished features and pay down debt", Severity.WARNING, "nps", cur.nps))
    return found


def _strategic_insights(cur: GameState) -> List[Insight]:
    found = []
    if cur.wau_growth_rate > 15:
        found.append(Insight("Growth", "Strong Growth Momentum", f"WAU growing {cur.wau_growth_rate:.1f}% a week",
                             "Make sure infrastructure keeps up", Severity.INFO, "wau_growth_rate",
                             cur.wau_growth_rate))
    if cur.reputation > 70 and classify("runway_months", cur.runway_months) == Band.GOOD:
        found.append(Insight("Funding", "Fundraising Opportunity", "Strong reputation with healthy runway",
                             "Raise from a position of strength", Severity.INFO))
    if cur.tech_debt > 40 and cur.velocity < 0.8:
        found.append(Insight("Product", "Technical Debt Crisis", "High debt is dragging velocity down",
                             "Stop feature work and refactor", Severity.CRITICAL, "tech_debt", cur.tech_debt))
    if cur.morale > 80 and cur.velocity > 1.2:
        found.append(Insight("Team", "High Performance Period", "The team is energized and shipping fast",
                             "Take on ambitious work now", Severity.INFO))
    if cur.wau > 50_000 and cur.mrr / cur.wau < 10:
        found.append(Insight("Revenue", "Monetization Opportunity", "Large user base with low revenue per user",
                             "Experiment with pricing", Severity.INFO))
    return found


def generate_insights(prev: GameState, current: GameState) -> List[Insight]:
    """Narrative insights about what changed between two snapshots

    Args:
        prev: Snapshot before the turn
        current: Snapshot after the turn

    Returns:
        Insights ordered as metric changes, band checks, then strategy notes
    """
    return _metric_changes(prev, current) + _band_insights(current) + _strategic_insights(current)


# ==================== Warnings ====================

def generate_warnings(state: GameState) -> List[FailureWarning]:
    """Failure warnings for one snapshot, most urgent first"""
    warnings = []

    if classify("runway_months", state.runway_months) == Band.CRITICAL:
        level = WarningLevel.CRITICAL if state.runway_months < 1 else WarningLevel.HIGH
        weeks = max(0, int(state.runway_months * 4))
        warnings.append(FailureWarning("cash_runway_critical", "Critical Cash Runway",
                                       f"Only {state.runway_months:.1f} months of cash runway remaining", level,
                                       ["Fundraise", "Cut burn", "Push founder-led sales"], weeks))

    if state.burn > state.mrr * 1.5 and state.wau_growth_rate < 10:
        warnings.append(FailureWarning("burn_mismatch", "Burn Rate Mismatch",
                                       "Spending far outpaces revenue without the growth to justify it", WarningLevel.HIGH,
                                       ["Reduce burn", "Focus on revenue"]))

    if classify("morale", state.morale) == Band.CRITICAL:
        level = WarningLevel.CRITICAL if state.morale < 15 else WarningLevel.HIGH
        warnings.append(FailureWarning("morale_crisis", "Team Morale Crisis", f"Morale is {state.morale:.0f}", level,
                                       ["Take a break", "Coach the team"]))
    elif state.morale < 50 and state.velocity < 0.7:
        warnings.append(FailureWarning("team_burnout", "Team Burnout", "Low morale and low velocity together",
                                       WarningLevel.HIGH, ["Take a break", "Improve processes"]))

    if classify("tech_debt", state.tech_debt) == Band.CRITICAL:
        level = WarningLevel.CRITICAL if state.tech_debt > 85 else WarningLevel.HIGH
        warnings.append(FailureWarning("tech_debt_crisis", "Technical Debt Crisis", f"Tech debt is {state.tech_debt:.0f}",
                                       level, ["Refactor code", "Incident response"]))

    if classify("compliance_risk", state.compliance_risk) == Band.CRITICAL:
        level = WarningLevel.CRITICAL if state.compliance_risk > 80 else WarningLevel.HIGH
        warnings.append(FailureWarning("compliance_failure", "Compliance Failure Risk",
                                       f"Compliance risk is {state.compliance_risk:.0f}", level, ["Compliance work"]))

    if classify("churn_rate", state.churn_rate) == Band.CRITICAL:
        weeks = int(12 / state.churn_rate * 4) if state.churn_rate > 0 else None
        warnings.append(FailureWarning("churn_crisis", "Customer Churn Crisis",
                                       f"Churn at {state.churn_rate:.1f}% is above the sustainable band",
                                       WarningLevel.HIGH if state.churn_rate > 12 else WarningLevel.MEDIUM,
                                       ["Run onboarding experiments", "Ship polished features"], weeks))

    if state.reputation > 70 and state.wau > 20_000:
        warnings.append(FailureWarning("competitive_response", "Competitive Response",
                                       "Success is drawing well-funded competitors", WarningLevel.MEDIUM,
                                       ["Differentiate", "Invest in developer relations"]))

    if state.wau > 50_000 and state.velocity < 0.8:
        warnings.append(FailureWarning("scaling_challenges", "Scaling Challenges", "Growth is outrunning the team",
                                       WarningLevel.HIGH, ["Hire", "Improve processes"]))

    if state.customer_segments:
        health = customer_health_score(calculate_customer_metrics(state))
        if health < 40:
            warnings.append(FailureWarning("customer_health", "Customer Health", f"Customer health score is {health:.0f}",
                                    WarningLevel.LOW, ["Improve retention"]))

    order = [WarningLevel.CRITICAL, WarningLevel.HIGH, WarningLevel.MEDIUM, WarningLevel.LOW]
    warnings.sort(key=lambda w: order.index(w.level))
    return warnings


def failure_risk(state: GameState, warnings: Optional[List[FailureWarning]] = None) -> float:
    """Overall 0..100 risk score"""
    warnings = generate_warnings(state) if warnings is None else warnings
    weight = {WarningLevel.CRITICAL: 4, WarningLevel.HIGH: 3, WarningLevel.MEDIUM: 2, WarningLevel.LOW: 1}
    risk = sum(weight[w.level] * 5.0 for w in warnings)
    if state.bank < state.burn * 2:
        risk += 20
    if state.morale < 40:
        risk += 15
    if state.tech_debt > 60:
        risk += 15
    if state.compliance_risk > 50:
        risk += 20
    if state.churn_rate > 10:
        risk += 10
    return min(100.0, risk)


# ==================== Trends ====================

def history_trend(state: GameState, metric: str) -> Optional[TrendFit]:
    """Fit metric ~ week over the history ledger (None with fewer than 3 points)"""
    points = state.history
    if len(points) < 3:
        return None
    weeks = np.array([p.week for p in points], dtype=float)
    values = np.array([getattr(p, metric) for p in points], dtype=float)
    if np.all(values == values[0]):
        return TrendFit(metric, 0.0, float(values[0]), 1.0, len(points))
    fit = stats.linregress(weeks, values)
    return TrendFit(metric, float(fit.slope), float(fit.intercept), float(fit.rvalue ** 2), len(points))


def forecast_runway_weeks(state: GameState) -> float:
    """Weeks until the bank trend reaches zero (inf when the bank is not falling)"""
    if state.bank <= 0:
        return 0.0
    trend = history_trend(state, "bank")
    if trend is None:
        weekly = state.burn - state.mrr
        return state.bank / weekly if weekly > 0 else math.inf
    if trend.slope >= 0:
        return math.inf
    return state.bank / -trend.slope
