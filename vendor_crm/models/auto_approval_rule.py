"""
ORM model for tenant auto-approval rules.

A rule is stored as one flat row; condition columns that do not belong
to the rule's type stay NULL. ``rule_type`` is fixed at creation.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class AutoApprovalRule(Base):
    __tablename__ = "auto_approval_rules"
    __table_args__ = (
        Index("ix_auto_approval_rules_tenant_active_priority", "client_profile_id", "is_active", "priority"),
    )

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
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rule_type: Mapped[str] = mapped_column(String(16), nullable=False)  # CUSTOMER, PRODUCT, AMOUNT, TIME, COMBINED
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    customer_phones: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    product_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    min_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    allowed_days: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, **kwargs):
        if kwargs.get("is_active") is None:
            kwargs["is_active"] = True
        if kwargs.get("priority") is None:
            kwargs["priority"] = 1
        super().__init__(**kwargs)
