"""
Subscription tier limits for auto-approval rules.

A pure lookup from plan to the maximum number of simultaneously active
rules. ``None`` means the plan is unlimited.
"""

from __future__ import annotations

from typing import Optional

from ..models.enums import SubscriptionPlan

PLAN_RULE_LIMITS: dict[str, Optional[int]] = {
    SubscriptionPlan.BASIC.value: 0,
    SubscriptionPlan.STANDARD.value: 3,
    SubscriptionPlan.PREMIUM.value: None,
}

PLAN_ORDER = (
    SubscriptionPlan.BASIC.value,
    SubscriptionPlan.STANDARD.value,
    SubscriptionPlan.PREMIUM.value,
)


def _plan_key(plan: SubscriptionPlan | str | None) -> str:
    if isinstance(plan, SubscriptionPlan):
        return plan.value
    return str(plan or "").strip().upper()


def rule_limit_for_plan(plan: SubscriptionPlan | str | None) -> Optional[int]:
    key = _plan_key(plan)
    if key not in PLAN_RULE_LIMITS:
        return 0
    return PLAN_RULE_LIMITS[key]


def can_create_rule(active_count: int, plan: SubscriptionPlan | str | None) -> bool:
    limit = rule_limit_for_plan(plan)
    if limit is None:
        return True
    return active_count < limit


def is_plan_higher_than(plan: SubscriptionPlan | str, other: SubscriptionPlan | str) -> bool:
    a, b = _plan_key(plan), _plan_key(other)
    if a not in PLAN_ORDER or b not in PLAN_ORDER:
        return False
    return PLAN_ORDER.index(a) > PLAN_ORDER.index(b)


def next_plan_upgrade(plan: SubscriptionPlan | str | None) -> Optional[str]:
    key = _plan_key(plan)
    if key not in PLAN_ORDER:
        return PLAN_ORDER[0]
    idx = PLAN_ORDER.index(key)
    if idx + 1 >= len(PLAN_ORDER):
        return None
    return PLAN_ORDER[idx + 1]


def quota_message(plan: SubscriptionPlan | str | None) -> str:
    key = _plan_key(plan) or SubscriptionPlan.BASIC.value
    limit = describe_limit(rule_limit_for_plan(key))
    msg = f"Your {key} plan allows up to {limit} auto-approval rules. Upgrade to create more."
    upgrade = next_plan_upgrade(key)
    if upgrade:
        msg += f" {upgrade} raises the limit to {describe_limit(rule_limit_for_plan(upgrade))}."
    return msg


def describe_limit(limit: Optional[int]) -> str:
    return "unlimited" if limit is None else str(limit)
