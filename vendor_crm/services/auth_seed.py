"""
Bootstrap seed helpers for dashboard users and a demo vendor tenant.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.security import hash_password
from ..models.app_user import AppUser
from ..models.client_profile import ClientProfile
from ..models.enums import SubscriptionPlan, SubscriptionStatus
from ..models.subscription import Subscription


def _find_user(db: Session, username: str) -> AppUser | None:
    return db.query(AppUser).filter(func.lower(AppUser.username) == username.lower()).first()


def seed_admin_user(db: Session) -> None:
    logger = logging.getLogger("auth-seed")
    username = (os.getenv("CRM_ADMIN_USERNAME") or "admin").strip()
    password = (os.getenv("CRM_ADMIN_PASSWORD") or "").strip()

    if not username:
        logger.warning("Skipping admin seed: empty CRM_ADMIN_USERNAME")
        return
    if not password:
        logger.warning("Skipping admin seed: CRM_ADMIN_PASSWORD is empty")
        return

    existing = _find_user(db, username)
    if existing:
        if existing.role != "ADMIN" or not existing.is_active:
            existing.role = "ADMIN"
            existing.is_active = True
            db.add(existing)
            db.commit()
        return

    db.add(AppUser(username=username, password_hash=hash_password(password), role="ADMIN", is_active=True))
    db.commit()
    logger.info("Seeded admin user %s", username)


def seed_demo_vendor(db: Session) -> ClientProfile | None:
    """Create a vendor login with a STANDARD trial so rules can be tried locally."""
    logger = logging.getLogger("auth-seed")
    username = (os.getenv("CRM_DEMO_VENDOR_USERNAME") or "demo-vendor").strip()
    password = (os.getenv("CRM_DEMO_VENDOR_PASSWORD") or "").strip()
    if not password:
        logger.warning("Skipping demo vendor seed: CRM_DEMO_VENDOR_PASSWORD is empty")
        return None

    user = _find_user(db, username)
    if user is None:
        user = AppUser(username=username, password_hash=hash_password(password), role="VENDOR", is_active=True)
        db.add(user)
        db.flush()
    profile = db.query(ClientProfile).filter(ClientProfile.user_id == user.id).first()
    if profile is None:
        profile = ClientProfile(business_name=f"{username.title()} Deliveries", user_id=user.id)
        db.add(profile)
        db.flush()
        db.add(
            Subscription(
                client_profile_id=profile.id,
                plan=SubscriptionPlan.STANDARD.value,
                status=SubscriptionStatus.TRIAL.value,
                start_date=datetime.utcnow(),
                end_date=datetime.utcnow() + timedelta(days=14),
            )
        )
        logger.info("Seeded demo vendor %s client_profile=%s", username, profile.id)
    db.commit()
    return profile
