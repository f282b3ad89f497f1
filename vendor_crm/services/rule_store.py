"""
Tenant-scoped storage for auto-approval rules.

Every operation is scoped to one client profile: a rule owned by another
tenant is reported as not found. Creation enforces the per-type required
fields and the subscription tier's active-rule quota.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import BadRequestError, ForbiddenError, NotFoundError
from ..core.pagination import build_pagination, page_offset
from ..models.auto_approval_rule import AutoApprovalRule
from ..models.client_profile import ClientProfile
from ..models.enums import RuleType, SubscriptionPlan
from ..schemas.auto_approval import RuleCreate, RuleUpdate
from .rule_variants import CONDITION_FIELDS, RULE_TYPE_FIELDS
from .tenants import get_active_subscription
from .tier_policy import can_create_rule, next_plan_upgrade, quota_message, rule_limit_for_plan

logger = logging.getLogger("auto-approval")

NO_SUBSCRIPTION_MSG = "No active subscription found"
RULE_NOT_FOUND_MSG = "Auto-approval rule not found"

_TYPE_REQUIREMENT_MSGS = {
    RuleType.CUSTOMER.value: "Customer whitelist rules require at least one customer phone number",
    RuleType.PRODUCT.value: "Product whitelist rules require at least one product ID",
    RuleType.AMOUNT.value: "Amount threshold rules require at least minAmount or maxAmount",
    RuleType.TIME.value: "Time window rules require allowedDays, startTime, and endTime",
}


def _rule_query(db: Session, tenant_id: str):
    return db.query(AutoApprovalRule).filter(AutoApprovalRule.client_profile_id == tenant_id)


def _lock_tenant(db: Session, tenant_id: str) -> None:
    # Serialises concurrent creates for one tenant so count-then-insert cannot overshoot.
    if db.bind is not None and db.bind.dialect.name == "postgresql":
        db.query(ClientProfile).filter(ClientProfile.id == tenant_id).with_for_update().one()


def count_active_rules(db: Session, tenant_id: str) -> int:
    return (
        db.query(func.count(AutoApprovalRule.id))
        .filter(
            AutoApprovalRule.client_profile_id == tenant_id,
            AutoApprovalRule.is_active.is_(True),
        )
        .scalar()
        or 0
    )


def _ensure_quota(db: Session, tenant: ClientProfile) -> None:
    subscription = get_active_subscription(db, tenant.id)
    if subscription is None:
        raise ForbiddenError(NO_SUBSCRIPTION_MSG)
    active = count_active_rules(db, tenant.id)
    if not can_create_rule(active, subscription.plan):
        logger.warning(
            "Auto-approval quota reached tenant=%s plan=%s active=%s limit=%s",
            tenant.id,
            subscription.plan,
            active,
            rule_limit_for_plan(subscription.plan),
        )
        raise ForbiddenError(
            quota_message(subscription.plan),
            details={"plan": subscription.plan, "limit": rule_limit_for_plan(subscription.plan), "active": active},
        )


def _validate_requirements(rule_type: str, data: dict[str, Any]) -> None:
    missing = False
    if rule_type == RuleType.CUSTOMER.value:
        missing = not data.get("customer_phones")
    elif rule_type == RuleType.PRODUCT.value:
        missing = not data.get("product_ids")
    elif rule_type == RuleType.AMOUNT.value:
        missing = data.get("min_amount") is None and data.get("max_amount") is None
    elif rule_type == RuleType.TIME.value:
        missing = not data.get("allowed_days") or not data.get("start_time") or not data.get("end_time")
    if missing:
        raise BadRequestError(_TYPE_REQUIREMENT_MSGS[rule_type])
    lo, hi = data.get("min_amount"), data.get("max_amount")
    if lo is not None and hi is not None and lo > hi:
        raise BadRequestError("minAmount cannot be greater than maxAmount")


def _owned_conditions(rule_type: str, data: dict[str, Any], *, rule_id: Optional[str] = None) -> dict[str, Any]:
    owned = RULE_TYPE_FIELDS[rule_type]
    foreign = sorted(
        k for k, v in data.items() if k in CONDITION_FIELDS and k not in owned and v is not None
    )
    if foreign:
        logger.info("Dropping fields not used by %s rule=%s fields=%s", rule_type, rule_id, ",".join(foreign))
    return {k: data[k] for k in owned if k in data}


def create_rule(db: Session, tenant: ClientProfile, payload: RuleCreate) -> AutoApprovalRule:
    data = payload.model_dump(mode="json")
    rule_type = data["rule_type"]
    try:
        _lock_tenant(db, tenant.id)
        _ensure_quota(db, tenant)
        _validate_requirements(rule_type, data)
        rule = AutoApprovalRule(
            client_profile_id=tenant.id,
            name=data["name"],
            description=data.get("description"),
            rule_type=rule_type,
            priority=data.get("priority"),
            is_active=data.get("is_active"),
            **_owned_conditions(rule_type, data),
        )
        db.add(rule)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(rule)
    logger.info("Auto-approval rule created tenant=%s rule=%s type=%s", tenant.id, rule.id, rule.rule_type)
    return rule


def list_rules(
    db: Session,
    tenant: ClientProfile,
    *,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    query = _rule_query(db, tenant.id)
    if is_active is not None:
        query = query.filter(AutoApprovalRule.is_active.is_(is_active))
    total = query.count()
    rules = (
        query.order_by(AutoApprovalRule.priority.asc(), AutoApprovalRule.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    subscription = get_active_subscription(db, tenant.id)
    plan = subscription.plan if subscription else SubscriptionPlan.BASIC.value
    return {
        "rules": rules,
        "pagination": build_pagination(total=total, page=page, limit=limit),
        "tier_info": {
            "plan": plan,
            "rules_used": total,
            "rules_limit": rule_limit_for_plan(plan) if subscription else 0,
            "next_plan": next_plan_upgrade(plan),
        },
    }


def get_rule(db: Session, tenant: ClientProfile, rule_id: str) -> AutoApprovalRule:
    rule = _rule_query(db, tenant.id).filter(AutoApprovalRule.id == rule_id).first()
    if rule is None:
        raise NotFoundError(RULE_NOT_FOUND_MSG)
    return rule


def update_rule(db: Session, tenant: ClientProfile, rule_id: str, payload: RuleUpdate) -> AutoApprovalRule:
    rule = get_rule(db, tenant, rule_id)
    data = payload.model_dump(mode="json", exclude_unset=True)
    for key in ("name", "priority"):
        if data.get(key) is not None:
            setattr(rule, key, data[key])
    if "description" in data:
        rule.description = data["description"]
    # Per-type minimums are only enforced at creation
    for key, value in _owned_conditions(rule.rule_type, data, rule_id=rule.id).items():
        setattr(rule, key, value)
    try:
        db.add(rule)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(rule)
    logger.info("Auto-approval rule updated tenant=%s rule=%s fields=%s", tenant.id, rule.id, ",".join(sorted(data)))
    return rule


def toggle_rule_status(db: Session, tenant: ClientProfile, rule_id: str, is_active: bool) -> AutoApprovalRule:
    rule = get_rule(db, tenant, rule_id)
    activating = is_active and not rule.is_active
    try:
        if activating and settings.auto_approval_recheck_on_activate:
            _lock_tenant(db, tenant.id)
            _ensure_quota(db, tenant)
        rule.is_active = is_active
        db.add(rule)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(rule)
    logger.info("Auto-approval rule toggled tenant=%s rule=%s active=%s", tenant.id, rule.id, rule.is_active)
    return rule


def delete_rule(db: Session, tenant: ClientProfile, rule_id: str) -> dict:
    rule = get_rule(db, tenant, rule_id)
    try:
        db.delete(rule)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Auto-approval rule deleted tenant=%s rule=%s", tenant.id, rule_id)
    return {"success": True}


def load_active_rules(db: Session, tenant_id: str) -> list[AutoApprovalRule]:
    """Active rules in evaluation order; equal priorities go earliest-created first."""
    return (
        _rule_query(db, tenant_id)
        .filter(AutoApprovalRule.is_active.is_(True))
        .order_by(
            AutoApprovalRule.priority.asc(),
            AutoApprovalRule.created_at.asc(),
            AutoApprovalRule.id.asc(),
        )
        .all()
    )
