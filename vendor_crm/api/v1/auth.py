"""
Authentication endpoints for the vendor dashboard.

Login returns a signed bearer token; registration creates a vendor user
and, when a business name is given, the client profile it owns. ``/me``
reports the caller together with its tenant and current plan.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from ...core.auth import ADMIN_ROLE, UserContext, get_current_user, get_optional_user
from ...core.config import auth_disabled
from ...core.db import get_db
from ...core.security import create_access_token, hash_password, needs_rehash, verify_password
from ...models.app_user import AppUser
from ...models.client_profile import ClientProfile
from ...services.tenants import get_active_subscription, resolve_client_profile
from ...services.tier_policy import rule_limit_for_plan


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = logging.getLogger("auth")

DEV_TOKEN = "demo-token"


class LoginIn(BaseModel):
    username: str
    password: str


class RegisterIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=3, max_length=128)
    password: str = Field(..., min_length=6, max_length=256)
    role: str | None = Field(default=None, max_length=64)
    business_name: str | None = Field(default=None, alias="businessName", max_length=255)


def _find_user(db: Session, username: str) -> AppUser | None:
    return db.query(AppUser).filter(func.lower(AppUser.username) == username.lower()).first()


def _issue(user: AppUser, *, client_profile_id: str | None) -> dict:
    role = (user.role or "VENDOR").upper()
    token = DEV_TOKEN if auth_disabled() else create_access_token(sub=user.username, role=role, user_id=user.id)
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": {
            "id": user.id,
            "username": user.username,
            "role": role,
            "clientProfileId": client_profile_id,
        },
    }


def _profile_id_for(db: Session, user_id: str) -> str | None:
    row = db.query(ClientProfile.id).filter(ClientProfile.user_id == user_id).first()
    return row[0] if row else None


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)) -> dict:
    username = payload.username.strip()
    if auth_disabled():
        return {
            "access_token": DEV_TOKEN,
            "token_type": "bearer",
            "user": {"id": "demo", "username": username, "role": ADMIN_ROLE, "clientProfileId": None},
        }
    if not username or not payload.password:
        raise HTTPException(status_code=400, detail="username and password are required")
    user = _find_user(db, username)
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("Login rejected username=%s", username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.last_login_at = datetime.utcnow()
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(payload.password)
    db.commit()
    db.refresh(user)
    return _issue(user, client_profile_id=_profile_id_for(db, user.id))


@router.post("/register", status_code=201)
def register(
    payload: RegisterIn,
    db: Session = Depends(get_db),
    requester: UserContext | None = Depends(get_optional_user),
) -> dict:
    username = payload.username.strip()
    if not username:
        raise HTTPException(status_code=400, detail="username is required")
    if " " in username:
        raise HTTPException(status_code=400, detail="username cannot contain spaces")
    if _find_user(db, username):
        raise HTTPException(status_code=409, detail="Username already exists")

    total_users = db.query(func.count(AppUser.id)).scalar() or 0
    role = (payload.role or "").strip().upper() or "VENDOR"
    # Bootstrap: first registered account becomes admin.
    if total_users == 0:
        role = ADMIN_ROLE
    elif role == ADMIN_ROLE and not (requester and requester.is_admin):
        raise HTTPException(status_code=403, detail="Only admin can create admin users")

    user = AppUser(username=username, password_hash=hash_password(payload.password), role=role, is_active=True)
    db.add(user)
    db.flush()
    profile_id = None
    business_name = (payload.business_name or "").strip()
    if business_name:
        profile = ClientProfile(business_name=business_name, user_id=user.id)
        db.add(profile)
        db.flush()
        profile_id = profile.id
    db.commit()
    db.refresh(user)
    logger.info("Registered user=%s role=%s client_profile=%s", user.id, role, profile_id)
    return _issue(user, client_profile_id=profile_id)


@router.get("/me")
def me(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    profile = resolve_client_profile(db, user)
    body: dict = {
        "user": {"id": user.user_id, "username": user.username, "role": user.role},
        "clientProfile": None,
        "subscription": None,
    }
    if profile is None:
        return body
    body["clientProfile"] = {
        "id": profile.id,
        "businessName": profile.business_name,
        "timezone": profile.timezone,
    }
    subscription = get_active_subscription(db, profile.id)
    if subscription is not None:
        body["subscription"] = {
            "plan": subscription.plan,
            "status": subscription.status,
            "endDate": subscription.end_date.isoformat() if subscription.end_date else None,
            "autoApprovalRuleLimit": rule_limit_for_plan(subscription.plan),
        }
    return body
