"""
Tenant and subscription lookups.

Resolves the client profile behind an authenticated user and the
subscription that currently governs it.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import nulls_first
from sqlalchemy.orm import Session

from ..core.auth import UserContext
from ..core.config import auth_disabled
from ..models.client_profile import ClientProfile
from ..models.enums import PAYABLE_STATUSES
from ..models.subscription import Subscription


def resolve_client_profile(db: Session, user: UserContext) -> Optional[ClientProfile]:
    if user.user_id:
        return db.query(ClientProfile).filter(ClientProfile.user_id == user.user_id).first()
    if auth_disabled() and user.client_profile_id:
        return db.get(ClientProfile, user.client_profile_id)
    return None


def get_active_subscription(db: Session, client_profile_id: str) -> Optional[Subscription]:
    """Return the ACTIVE/TRIAL subscription with the latest end date.

    An open-ended subscription (no end date) wins over dated ones.
    """
    return (
        db.query(Subscription)
        .filter(
            Subscription.client_profile_id == client_profile_id,
            Subscription.status.in_(PAYABLE_STATUSES),
        )
        .order_by(nulls_first(Subscription.end_date.desc()), Subscription.start_date.desc())
        .first()
    )
