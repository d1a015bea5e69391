"""
Quota evaluation for API keys.

``evaluate`` is a pure function: it takes a snapshot of a key's usage state
and the current time and returns the admission decision together with the
state that must be persisted. It never touches storage, so every reset and
expiry transition happens lazily, at the moment a request arrives.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from celebstyle_gateway.plans import FREE_USAGE_LIMIT, Plan
from celebstyle_gateway.timeutils import as_utc, same_utc_date


class Decision(str, Enum):
    """Outcome of evaluating one gated request."""
    ADMIT = "admit"
    QUOTA_EXCEEDED_DAILY = "quota_exceeded_daily"
    QUOTA_EXCEEDED_MONTHLY = "quota_exceeded_monthly"
    PLAN_EXPIRED = "plan_expired"


@dataclass(frozen=True)
class QuotaState:
    """The usage-related fields of a key record."""
    plan: Plan
    usage: int
    usage_limit: int
    last_reset: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    price_paid: int = 0

    @property
    def remaining(self) -> int:
        return self.usage_limit - self.usage


@dataclass(frozen=True)
class Evaluation:
    decision: Decision
    state: QuotaState
    changed: bool

    @property
    def admitted(self) -> bool:
        return self.decision is Decision.ADMIT


def free_defaults(now: datetime) -> QuotaState:
    """State a key falls back to when its paid plan lapses."""
    return QuotaState(
        plan=Plan.FREE,
        usage=0,
        usage_limit=FREE_USAGE_LIMIT,
        last_reset=now,
        valid_until=None,
        price_paid=0,
    )


def apply_daily_reset(state: QuotaState, now: datetime) -> QuotaState:
    """
    Zero a free key's counter when the UTC date has rolled over.

    A key without ``last_reset`` is treated as reset today.
    """
    if state.plan is not Plan.FREE:
        return state
    last_reset = state.last_reset or now
    if same_utc_date(last_reset, now):
        return state
    return replace(state, usage=0, last_reset=now)


def is_expired(state: QuotaState, now: datetime) -> bool:
    if not state.plan.is_paid or state.valid_until is None:
        return False
    return as_utc(now) > as_utc(state.valid_until)


def evaluate(state: QuotaState, now: datetime) -> Evaluation:
    """
    Decide whether a request made at ``now`` is admitted.

    Free plan: daily reset on UTC date change, then the limit check.
    Paid plans: a lapsed ``valid_until`` reverts the key to free defaults
    and rejects the request that discovered it; otherwise the limit check.
    An admitted request increments ``usage`` by one.
    """
    if state.plan is Plan.FREE:
        current = apply_daily_reset(state, now)
        if current.usage >= current.usage_limit:
            return Evaluation(Decision.QUOTA_EXCEEDED_DAILY, current, current != state)
    else:
        if is_expired(state, now):
            return Evaluation(Decision.PLAN_EXPIRED, free_defaults(now), True)
        current = state
        if current.usage >= current.usage_limit:
            return Evaluation(Decision.QUOTA_EXCEEDED_MONTHLY, current, False)

    return Evaluation(Decision.ADMIT, replace(current, usage=current.usage + 1), True)
