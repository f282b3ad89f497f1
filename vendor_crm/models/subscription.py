"""
ORM model for tenant subscriptions.

Billing owns the lifecycle of these rows; the auto-approval engine only
reads the plan and status of the current one.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    client_profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("client_profiles.id", ondelete="CASCADE"),
        index=True,
    )
    plan: Mapped[str] = mapped_column(String(16), default="BASIC")  # BASIC, STANDARD, PREMIUM
    status: Mapped[str] = mapped_column(String(16), default="TRIAL", index=True)
    start_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    end_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    client_profile: Mapped["ClientProfile"] = relationship(  # noqa: F821
        "ClientProfile", back_populates="subscriptions"
    )
