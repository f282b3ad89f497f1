"""
SQLAlchemy model base class for the vendor CRM backend.

This package defines ORM models for dashboard users, tenants (client
profiles), their subscriptions and auto-approval rules. All models
should inherit from the declarative `Base` defined here.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


from .app_user import AppUser  # noqa: E402,F401
from .client_profile import ClientProfile  # noqa: E402,F401
from .subscription import Subscription  # noqa: E402,F401
from .auto_approval_rule import AutoApprovalRule  # noqa: E402,F401

__all__ = [
    "Base",

    # Users / Tenants
    "AppUser",
    "ClientProfile",
    "Subscription",

    # Rules
    "AutoApprovalRule",
]
