"""
Pydantic schemas for auto-approval rules and request evaluation.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.enums import RuleType, SubscriptionPlan, Weekday

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RuleConditions(CamelModel):
    customer_phones: Optional[List[str]] = None
    product_ids: Optional[List[str]] = None
    min_amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    max_amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    allowed_days: Optional[List[Weekday]] = None
    start_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)


class RuleCreate(RuleConditions):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    rule_type: RuleType
    priority: int = Field(default=1, ge=1)
    is_active: bool = True


class RuleUpdate(RuleConditions):
    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=1)


class RuleToggle(CamelModel):
    is_active: bool


class RuleOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_profile_id: str
    name: str
    description: Optional[str] = None
    rule_type: RuleType
    priority: int
    is_active: bool
    customer_phones: Optional[List[str]] = None
    product_ids: Optional[List[str]] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    allowed_days: Optional[List[Weekday]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class TierInfo(CamelModel):
    plan: SubscriptionPlan
    rules_used: int
    # None means the plan is unlimited
    rules_limit: Optional[int] = None
    next_plan: Optional[SubscriptionPlan] = None


class RuleListOut(CamelModel):
    rules: List[RuleOut]
    pagination: Pagination
    tier_info: TierInfo


class EvaluateRequest(CamelModel):
    customer_phone: str
    product_ids: List[str] = Field(default_factory=list)
    total_amount: float = Field(..., allow_inf_nan=False)
    request_time: Optional[datetime] = None


class EvaluationOut(CamelModel):
    should_auto_approve: bool
    matched_rule: Optional[RuleOut] = None
    reason: str
