"""
Typed auto-approval rule variants.

Rules are persisted as one flat row per rule, with condition columns
left NULL when they do not apply. Before evaluation each row is turned
into the dataclass for its ``rule_type`` so that matching code only
ever sees the fields that variant owns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional, Union

from ..models.auto_approval_rule import AutoApprovalRule
from ..models.enums import RuleType


@dataclass(frozen=True)
class BaseRule:
    """Fields shared by every rule variant."""

    id: str
    name: str
    priority: int
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TimeWindow:
    """Weekdays plus an inclusive HH:MM range."""

    allowed_days: FrozenSet[str]
    start_time: str
    end_time: str


@dataclass(frozen=True)
class AmountRange:
    """Inclusive bounds; a missing bound is open."""

    min_amount: Optional[float] = None
    max_amount: Optional[float] = None


@dataclass(frozen=True)
class CustomerRule(BaseRule):
    """Approve requests from whitelisted customer phone numbers."""

    customer_phones: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ProductRule(BaseRule):
    """Approve requests containing at least one whitelisted product."""

    product_ids: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class AmountRule(BaseRule):
    """Approve requests whose total falls inside the amount range."""

    amount: AmountRange = field(default_factory=AmountRange)


@dataclass(frozen=True)
class TimeRule(BaseRule):
    """Approve requests placed inside the time window.

    ``window`` is None when the stored row lacks days, start or end; such
    a rule never matches.
    """

    window: Optional[TimeWindow] = None


@dataclass(frozen=True)
class CombinedRule(BaseRule):
    """AND of every condition group present on the rule."""

    customer_phones: Optional[FrozenSet[str]] = None
    product_ids: Optional[FrozenSet[str]] = None
    amount: Optional[AmountRange] = None
    window: Optional[TimeWindow] = None


TypedRule = Union[CustomerRule, ProductRule, AmountRule, TimeRule, CombinedRule]

# Condition columns each rule type owns; everything else stays NULL.
RULE_TYPE_FIELDS: dict[str, tuple[str, ...]] = {
    RuleType.CUSTOMER.value: ("customer_phones",),
    RuleType.PRODUCT.value: ("product_ids",),
    RuleType.AMOUNT.value: ("min_amount", "max_amount"),
    RuleType.TIME.value: ("allowed_days", "start_time", "end_time"),
    RuleType.COMBINED.value: (
        "customer_phones",
        "product_ids",
        "min_amount",
        "max_amount",
        "allowed_days",
        "start_time",
        "end_time",
    ),
}

CONDITION_FIELDS = RULE_TYPE_FIELDS[RuleType.COMBINED.value]


def _string_set(values) -> FrozenSet[str]:
    if not values:
        return frozenset()
    return frozenset(str(v) for v in values)


def _window(row: AutoApprovalRule) -> Optional[TimeWindow]:
    days = _string_set(row.allowed_days)
    if not days or not row.start_time or not row.end_time:
        return None
    return TimeWindow(allowed_days=days, start_time=row.start_time, end_time=row.end_time)


def _amount(row: AutoApprovalRule) -> Optional[AmountRange]:
    if row.min_amount is None and row.max_amount is None:
        return None
    return AmountRange(min_amount=row.min_amount, max_amount=row.max_amount)


def to_typed_rule(row: AutoApprovalRule) -> TypedRule:
    """
    Convert a stored rule row into its typed variant.

    Raises
    ------
    ValueError
        If ``row.rule_type`` is not a known rule type.
    """
    base = {
        "id": row.id,
        "name": row.name,
        "priority": row.priority,
        "created_at": row.created_at,
    }
    rule_type = str(row.rule_type or "").upper()
    if rule_type == RuleType.CUSTOMER.value:
        return CustomerRule(**base, customer_phones=_string_set(row.customer_phones))
    if rule_type == RuleType.PRODUCT.value:
        return ProductRule(**base, product_ids=_string_set(row.product_ids))
    if rule_type == RuleType.AMOUNT.value:
        return AmountRule(**base, amount=_amount(row) or AmountRange())
    if rule_type == RuleType.TIME.value:
        return TimeRule(**base, window=_window(row))
    if rule_type == RuleType.COMBINED.value:
        return CombinedRule(
            **base,
            customer_phones=_string_set(row.customer_phones) or None,
            product_ids=_string_set(row.product_ids) or None,
            amount=_amount(row),
            window=_window(row),
        )
    raise ValueError(f"Unknown auto-approval rule type: {row.rule_type!r}")
