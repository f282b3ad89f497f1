"""
ORM model for tenants.

A client profile is the vendor organisation every auto-approval rule and
subscription is scoped to.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base


class ClientProfile(Base):
    __tablename__ = "client_profiles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        index=True,
        default=lambda: str(uuid.uuid4()),
    )
    business_name: Mapped[str] = mapped_column(String(255))
    user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("app_users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True,
    )
    # IANA zone for weekday / HH:MM derivation; empty falls back to settings
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    subscriptions: Mapped[list["Subscription"]] = relationship(  # noqa: F821
        "Subscription", back_populates="client_profile", cascade="all, delete-orphan"
    )
