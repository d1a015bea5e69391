"""
Plan catalog for API keys.

The free tier resets daily; paid tiers are bought for a fixed 30-day window.
"""
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional


class Plan(str, Enum):
    """Plan tiers a key can be on."""
    FREE = "free"
    P100K = "100k"
    P1M = "1m"
    P10M = "10m"

    @property
    def is_paid(self) -> bool:
        return self is not Plan.FREE


@dataclass(frozen=True)
class PlanTerms:
    usage_limit: int
    price: int


FREE_USAGE_LIMIT = 100
PAID_PLAN_DURATION = timedelta(days=30)

PLAN_TERMS: Dict[Plan, PlanTerms] = {
    Plan.FREE: PlanTerms(usage_limit=FREE_USAGE_LIMIT, price=0),
    Plan.P100K: PlanTerms(usage_limit=100_000, price=300),
    Plan.P1M: PlanTerms(usage_limit=1_000_000, price=1000),
    Plan.P10M: PlanTerms(usage_limit=10_000_000, price=5000),
}


def parse_paid_plan(value: Optional[str]) -> Optional[Plan]:
    """
    Resolve an upgrade target.

    Returns None when the value does not name a purchasable plan, so the
    free tier is never a valid upgrade target.
    """
    try:
        plan = Plan(value)
    except ValueError:
        return None
    return plan if plan.is_paid else None


def plan_terms(plan: Plan) -> PlanTerms:
    return PLAN_TERMS[plan]
