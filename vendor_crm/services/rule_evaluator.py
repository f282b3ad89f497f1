"""
Auto-approval evaluation for incoming delivery requests.

``evaluate`` is a pure function: given the tenant's active rules in
precedence order and a delivery request it returns the first rule that
matches, or a negative result with the reason. ``evaluate_for_tenant``
loads the rules from the database and delegates to it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.auto_approval_rule import AutoApprovalRule
from ..models.client_profile import ClientProfile
from .rule_store import load_active_rules
from .rule_variants import (
    AmountRange,
    AmountRule,
    CombinedRule,
    CustomerRule,
    ProductRule,
    TimeRule,
    TimeWindow,
    TypedRule,
    to_typed_rule,
)

logger = logging.getLogger("auto-approval")

# datetime.weekday(): Monday is 0
_WEEKDAY_CODES = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")

REASON_NO_ACTIVE_RULES = "No active auto-approval rules"
REASON_NO_MATCH = "No rules matched"


@dataclass(frozen=True)
class DeliveryRequest:
    customer_phone: str
    product_ids: Sequence[str] = field(default_factory=tuple)
    total_amount: float = 0.0
    request_time: Optional[datetime] = None


@dataclass(frozen=True)
class EvaluationResult:
    should_auto_approve: bool
    matched_rule: Optional[TypedRule]
    reason: str


def _resolve_zone(tz_name: Optional[str]) -> tzinfo:
    name = (tz_name or settings.auto_approval_timezone or "UTC").strip()
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning("Unknown timezone %s; using UTC", name)
        return timezone.utc


def local_clock(request_time: Optional[datetime], tz_name: Optional[str] = None) -> Tuple[str, str]:
    """Return the weekday code and zero-padded HH:MM for ``request_time``.

    Aware datetimes are converted to ``tz_name``; naive ones are taken as
    already local. ``None`` means now.
    """
    zone = _resolve_zone(tz_name)
    if request_time is None:
        request_time = datetime.now(timezone.utc)
    if request_time.tzinfo is not None:
        request_time = request_time.astimezone(zone)
    return _WEEKDAY_CODES[request_time.weekday()], f"{request_time.hour:02d}:{request_time.minute:02d}"


def _amount_ok(amount: AmountRange, total: float) -> bool:
    if amount.min_amount is not None and total < amount.min_amount:
        return False
    if amount.max_amount is not None and total > amount.max_amount:
        return False
    return True


def _window_ok(window: Optional[TimeWindow], day: str, hhmm: str) -> bool:
    if window is None:
        return False
    # Zero-padded HH:MM compares correctly as strings
    return day in window.allowed_days and window.start_time <= hhmm <= window.end_time


def _any_product(rule_products: Iterable[str], requested: Sequence[str]) -> bool:
    allowed = set(rule_products)
    return any(pid in allowed for pid in requested)


def rule_matches(rule: TypedRule, request: DeliveryRequest, day: str, hhmm: str) -> bool:
    if isinstance(rule, CustomerRule):
        return request.customer_phone in rule.customer_phones
    if isinstance(rule, ProductRule):
        return _any_product(rule.product_ids, request.product_ids)
    if isinstance(rule, AmountRule):
        return _amount_ok(rule.amount, request.total_amount)
    if isinstance(rule, TimeRule):
        return _window_ok(rule.window, day, hhmm)
    if isinstance(rule, CombinedRule):
        checks: List[bool] = []
        if rule.customer_phones:
            checks.append(request.customer_phone in rule.customer_phones)
        if rule.product_ids:
            checks.append(_any_product(rule.product_ids, request.product_ids))
        if rule.amount is not None:
            checks.append(_amount_ok(rule.amount, request.total_amount))
        if rule.window is not None:
            checks.append(_window_ok(rule.window, day, hhmm))
        return bool(checks) and all(checks)
    raise TypeError(f"Unhandled rule variant: {type(rule).__name__}")


def evaluate(
    rules: Sequence[TypedRule],
    request: DeliveryRequest,
    *,
    tz_name: Optional[str] = None,
) -> EvaluationResult:
    """
    Pick the first matching rule.

    Parameters
    ----------
    rules: Sequence[TypedRule]
        Active rules already in precedence order (lowest priority first).
    request: DeliveryRequest
        The delivery request being considered.
    tz_name: Optional[str]
        IANA zone used to derive weekday and time of day.
    """
    if not rules:
        return EvaluationResult(False, None, REASON_NO_ACTIVE_RULES)

    day, hhmm = local_clock(request.request_time, tz_name)
    for rule in rules:
        if rule_matches(rule, request, day, hhmm):
            return EvaluationResult(True, rule, f"Matched rule: {rule.name}")
    return EvaluationResult(False, None, REASON_NO_MATCH)


def evaluate_for_tenant(
    db: Session,
    tenant: ClientProfile,
    request: DeliveryRequest,
) -> Tuple[EvaluationResult, Optional[AutoApprovalRule]]:
    """Evaluate ``request`` against the tenant's active rules.

    Returns the result together with the stored row of the matched rule.
    """
    rows = load_active_rules(db, tenant.id)
    by_id = {row.id: row for row in rows}
    result = evaluate([to_typed_rule(row) for row in rows], request, tz_name=tenant.timezone)
    matched_row = by_id.get(result.matched_rule.id) if result.matched_rule else None
    logger.debug(
        "Auto-approval evaluated tenant=%s approve=%s rule=%s reason=%s",
        tenant.id,
        result.should_auto_approve,
        matched_row.id if matched_row else None,
        result.reason,
    )
    return result, matched_row
