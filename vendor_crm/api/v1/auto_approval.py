"""
API endpoints for tenant auto-approval rules.

Every route works on the caller's own client profile; rules of other
tenants are invisible and reported as not found.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user
from ...core.db import get_db
from ...core.errors import AutoApprovalError
from ...core.pagination import clamp_limit
from ...models.client_profile import ClientProfile
from ...schemas.auto_approval import (
    EvaluateRequest,
    EvaluationOut,
    RuleCreate,
    RuleListOut,
    RuleOut,
    RuleToggle,
    RuleUpdate,
)
from ...services import rule_store
from ...services.rule_evaluator import DeliveryRequest, evaluate_for_tenant
from ...services.tenants import resolve_client_profile


router = APIRouter(prefix="/api/v1/auto-approval", tags=["auto-approval"])

MAX_RULES_PAGE = 100


def get_client_profile(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ClientProfile:
    profile = resolve_client_profile(db, user)
    if profile is None:
        raise HTTPException(status_code=403, detail="Client profile not found")
    return profile


def _http_error(exc: AutoApprovalError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.post("/rules", response_model=RuleOut, status_code=201)
def create_rule(
    payload: RuleCreate,
    db: Session = Depends(get_db),
    tenant: ClientProfile = Depends(get_client_profile),
) -> RuleOut:
    try:
        rule = rule_store.create_rule(db, tenant, payload)
    except AutoApprovalError as exc:
        raise _http_error(exc) from exc
    return RuleOut.model_validate(rule)


@router.get("/rules", response_model=RuleListOut)
def list_rules(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_RULES_PAGE),
    db: Session = Depends(get_db),
    tenant: ClientProfile = Depends(get_client_profile),
) -> RuleListOut:
    limit = clamp_limit(limit)
    result = rule_store.list_rules(db, tenant, is_active=is_active, page=page, limit=limit)
    return RuleListOut.model_validate(
        {
            "rules": [RuleOut.model_validate(r) for r in result["rules"]],
            "pagination": result["pagination"],
            "tier_info": result["tier_info"],
        }
    )


@router.get("/rules/{rule_id}", response_model=RuleOut)
def get_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    tenant: ClientProfile = Depends(get_client_profile),
) -> RuleOut:
    try:
        rule = rule_store.get_rule(db, tenant, rule_id)
    except AutoApprovalError as exc:
        raise _http_error(exc) from exc
    return RuleOut.model_validate(rule)


@router.patch("/rules/{rule_id}", response_model=RuleOut)
def update_rule(
    rule_id: str,
    payload: RuleUpdate,
    db: Session = Depends(get_db),
    tenant: ClientProfile = Depends(get_client_profile),
) -> RuleOut:
    try:
        rule = rule_store.update_rule(db, tenant, rule_id, payload)
    except AutoApprovalError as exc:
        raise _http_error(exc) from exc
    return RuleOut.model_validate(rule)


@router.post("/rules/{rule_id}/toggle", response_model=RuleOut)
def toggle_rule_status(
    rule_id: str,
    payload: RuleToggle,
    db: Session = Depends(get_db),
    tenant: ClientProfile = Depends(get_client_profile),
) -> RuleOut:
    try:
        rule = rule_store.toggle_rule_status(db, tenant, rule_id, payload.is_active)
    except AutoApprovalError as exc:
        raise _http_error(exc) from exc
    return RuleOut.model_validate(rule)


@router.delete("/rules/{rule_id}", response_model=dict)
def delete_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    tenant: ClientProfile = Depends(get_client_profile),
) -> dict:
    try:
        return rule_store.delete_rule(db, tenant, rule_id)
    except AutoApprovalError as exc:
        raise _http_error(exc) from exc


@router.post("/evaluate", response_model=EvaluationOut)
def evaluate_request(
    payload: EvaluateRequest,
    db: Session = Depends(get_db),
    tenant: ClientProfile = Depends(get_client_profile),
) -> EvaluationOut:
    request = DeliveryRequest(
        customer_phone=payload.customer_phone,
        product_ids=tuple(payload.product_ids),
        total_amount=payload.total_amount,
        request_time=payload.request_time,
    )
    result, matched_row = evaluate_for_tenant(db, tenant, request)
    return EvaluationOut(
        should_auto_approve=result.should_auto_approve,
        matched_rule=RuleOut.model_validate(matched_row) if matched_row is not None else None,
        reason=result.reason,
    )
