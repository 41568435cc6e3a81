"""
Customer segments: who the company sells to, how satisfied they are and how
fast they leave. Segments are bookkeeping for insights; MRR is driven by the
action and passive economy, not by segment counts.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .state import GameState, clamp, clamp_state, copy_state, update_derived_metrics, validate_state

logger = logging.getLogger(__name__)


@dataclass
class CustomerSegment:
    """One addressable customer group"""
    id: str
    name: str
    description: str
    size: int  # addressable market
    base_conversion_rate: float
    lifetime_value: float
    base_churn_rate: float  # monthly percent
    satisfaction: float  # 0..100
    conversion_rate: float = 0.0  # this week, after reputation
    churn_rate: float = 0.0  # this week, after satisfaction
    acquired: int = 0
    active: int = 0

    def __post_init__(self):
        if not self.conversion_rate:
            self.conversion_rate = self.base_conversion_rate
        if not self.churn_rate:
            self.churn_rate = self.base_churn_rate

    @property
    def penetration(self) -> float:
        return self.acquired / self.size if self.size else 0.0

    def summary(self) -> str:
        return (f"{self.name}: {self.active} active customers ({self.penetration * 100:.1f}% market penetration, "
                f"{self.satisfaction:.0f} satisfaction)")


@dataclass
class CustomerMetrics:
    total_customers: int
    active_customers: int
    monthly_revenue: float
    churn_rate: float
    customer_acquisition_cost: float
    lifetime_value: float
    net_promoter_score: float
    segments: List[CustomerSegment] = field(default_factory=list)


def initial_segments() -> List[CustomerSegment]:
    return [
        CustomerSegment("early_adopters", "Early Adopters", "Tech-savvy users willing to try new solutions",
                        size=10_000, base_conversion_rate=0.05, lifetime_value=1_200, base_churn_rate=8.0,
                        satisfaction=70.0),
        CustomerSegment("small_business", "Small Business", "Small companies looking for cost-effective solutions",
                        size=50_000, base_conversion_rate=0.02, lifetime_value=2_400, base_churn_rate=6.0,
                        satisfaction=65.0),
        CustomerSegment("mid_market", "Mid-Market", "Growing companies with more complex needs",
                        size=10_000, base_conversion_rate=0.01, lifetime_value=12_000, base_churn_rate=4.0,
                        satisfaction=60.0),
        CustomerSegment("enterprise", "Enterprise", "Large organizations with enterprise requirements",
                        size=1_000, base_conversion_rate=0.005, lifetime_value=60_000, base_churn_rate=2.0,
                        satisfaction=55.0),
    ]


# ==================== Weekly Update ====================

def advance_segments(state: GameState, segments: List[CustomerSegment]) -> int:
    """Satisfaction, churn, conversion and acquisition for one week (in place)

    Returns:
        Customers acquired this week
    """
    quality = (100.0 - state.tech_debt) / 100.0
    for segment in segments:
        segment.satisfaction = clamp(
            quality * 40 + state.reputation / 100.0 * 30 + state.morale / 100.0 * 20 + state.nps * 0.1,
            0.0, 100.0)
        segment.churn_rate = segment.base_churn_rate * (1.0 + (100.0 - segment.satisfaction) / 100.0)
        # monthly churn spread over four weeks
        churned = int(segment.active * segment.churn_rate / 100.0 / 4.0)
        segment.active = max(0, segment.active - churned)
        segment.conversion_rate = min(0.5, segment.base_conversion_rate * (1.0 + state.reputation / 200.0))

    marketing = min(1.0, state.ad_spend_this_week / 10_000)
    sales = min(1.0, state.sales_calls_this_week / 100)
    total = 0
    if marketing + sales <= 0:
        return total
    for segment in segments:
        penetration_factor = max(0.1, 1.0 - segment.penetration)
        rate = segment.conversion_rate * penetration_factor * (marketing + sales)
        acquired = min(int(segment.size * rate * 0.01), segment.size - segment.acquired)
        segment.acquired += acquired
        segment.active += acquired
        total += acquired
    logger.debug("Week %d: %d customers acquired", state.week, total)
    return total


def calculate_customer_metrics(state: GameState, segments: Optional[List[CustomerSegment]] = None) -> CustomerMetrics:
    """Aggregate segment numbers weighted by active customers"""
    segments = state.customer_segments if segments is None else segments
    total = sum(s.acquired for s in segments)
    active = sum(s.active for s in segments)
    if active > 0:
        churn = sum(s.churn_rate * s.active for s in segments) / active
        ltv = sum(s.lifetime_value * s.active for s in segments) / active
    else:
        churn = 0.0
        ltv = 0.0
    cac = (state.burn * 0.3) / (state.wau * 0.1) if state.wau > 0 else 0.0
    return CustomerMetrics(
        total_customers=total,
        active_customers=active,
        monthly_revenue=active * ltv / 12.0,
        churn_rate=churn,
        customer_acquisition_cost=cac,
        lifetime_value=ltv,
        net_promoter_score=state.nps,
        segments=list(segments),
    )


def customer_health_score(metrics: CustomerMetrics) -> float:
    """0..100 blend of retention, customer count, NPS and LTV/CAC"""
    retention = max(0.0, 100.0 - metrics.churn_rate * 5)
    growth = min(100.0, metrics.total_customers / 100)
    satisfaction = metrics.net_promoter_score + 50
    ratio = metrics.lifetime_value / metrics.customer_acquisition_cost if metrics.customer_acquisition_cost > 0 else 0.0
    efficiency = min(100.0, ratio * 10)
    return (retention + growth + satisfaction + efficiency) / 4


def customer_insights(metrics: CustomerMetrics) -> List[str]:
    lines = []
    if metrics.churn_rate > 10:
        lines.append("High churn rate indicates customer satisfaction issues")
    if metrics.customer_acquisition_cost > metrics.lifetime_value * 0.3:
        lines.append("Customer acquisition costs are too high relative to lifetime value")
    if metrics.net_promoter_score < 0:
        lines.append("Negative NPS suggests customers are detractors rather than promoters")
    if metrics.active_customers < metrics.total_customers * 0.7:
        lines.append("Large gap between acquired and active customers indicates retention problems")

    health = customer_health_score(metrics)
    if health > 80:
        lines.append("Excellent customer health - focus on scaling acquisition")
    elif health > 60:
        lines.append("Good customer health - monitor retention and satisfaction")
    elif health > 40:
        lines.append("Concerning customer health - address churn and satisfaction")
    else:
        lines.append("Critical customer health issues - immediate action required")
    return lines


# ==================== Public API ====================

def update_customer_segments(state: GameState, segments: List[CustomerSegment]) -> GameState:
    """Advance the given customer segments one week

    Args:
        state: Current snapshot (not modified); its ad spend and sales call
            counters drive acquisition
        segments: Segments to advance (not modified)

    Returns:
        New snapshot holding the advanced segments
    """
    validate_state(state)
    new_state = copy_state(state)
    table = copy_state(segments)
    advance_segments(new_state, table)
    new_state.customer_segments = table
    clamp_state(new_state)
    update_derived_metrics(new_state)
    return new_state
