"""create users, client profiles, subscriptions and auto-approval rules

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return table_name in set(inspector.get_table_names())


def upgrade() -> None:
    if not _table_exists("app_users"):
        op.create_table(
            "app_users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("username", sa.String(length=128), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("role", sa.String(length=64), nullable=False, server_default="VENDOR"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_app_users_id", "app_users", ["id"])
        op.create_index("ix_app_users_username", "app_users", ["username"], unique=True)

    if not _table_exists("client_profiles"):
        op.create_table(
            "client_profiles",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("business_name", sa.String(length=255), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=True),
            sa.Column("timezone", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["user_id"], ["app_users.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_client_profiles_id", "client_profiles", ["id"])
        op.create_index("ix_client_profiles_user_id", "client_profiles", ["user_id"], unique=True)

    if not _table_exists("subscriptions"):
        op.create_table(
            "subscriptions",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("client_profile_id", sa.String(length=36), nullable=False),
            sa.Column("plan", sa.String(length=16), nullable=False, server_default="BASIC"),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="TRIAL"),
            sa.Column("start_date", sa.DateTime(), nullable=True),
            sa.Column("end_date", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["client_profile_id"], ["client_profiles.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_subscriptions_client_profile_id", "subscriptions", ["client_profile_id"])
        op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    if not _table_exists("auto_approval_rules"):
        op.create_table(
            "auto_approval_rules",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("client_profile_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("rule_type", sa.String(length=16), nullable=False),
            sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("customer_phones", sa.JSON(), nullable=True),
            sa.Column("product_ids", sa.JSON(), nullable=True),
            sa.Column("min_amount", sa.Float(), nullable=True),
            sa.Column("max_amount", sa.Float(), nullable=True),
            sa.Column("allowed_days", sa.JSON(), nullable=True),
            sa.Column("start_time", sa.String(length=5), nullable=True),
            sa.Column("end_time", sa.String(length=5), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["client_profile_id"], ["client_profiles.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_auto_approval_rules_client_profile_id", "auto_approval_rules", ["client_profile_id"])
        op.create_index("ix_auto_approval_rules_created_at", "auto_approval_rules", ["created_at"])
        op.create_index(
            "ix_auto_approval_rules_tenant_active_priority",
            "auto_approval_rules",
            ["client_profile_id", "is_active", "priority"],
        )


def downgrade() -> None:
    op.drop_index("ix_auto_approval_rules_tenant_active_priority", table_name="auto_approval_rules")
    op.drop_index("ix_auto_approval_rules_created_at", table_name="auto_approval_rules")
    op.drop_index("ix_auto_approval_rules_client_profile_id", table_name="auto_approval_rules")
    op.drop_table("auto_approval_rules")
    op.drop_index("ix_subscriptions_status", table_name="subscriptions")
    op.drop_index("ix_subscriptions_client_profile_id", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("ix_client_profiles_user_id", table_name="client_profiles")
    op.drop_index("ix_client_profiles_id", table_name="client_profiles")
    op.drop_table("client_profiles")
    op.drop_index("ix_app_users_username", table_name="app_users")
    op.drop_index("ix_app_users_id", table_name="app_users")
    op.drop_table("app_users")
