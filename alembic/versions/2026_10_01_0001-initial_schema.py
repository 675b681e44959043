"""initial_schema

Revision ID: 5c1e0a7d9b21
Revises:
Create Date: 2026-10-01 00:01:00.000000

This migration creates:
- tenants with slug and custom domain lookups
- staff_users with per-tenant unique email
- staff_refresh_tokens and staff_invitation_tokens (hashed values only)
- staff_permissions (one JSONB grant record per staff member)
- subscriptions with indexed effective dates for the daily sweep
- audit_logs
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "5c1e0a7d9b21"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _tenant_fk() -> sa.Column:
    return sa.Column(
        "tenant_id",
        sa.Uuid(),
        sa.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=63), nullable=False),
        sa.Column("custom_domain", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("billing_status", sa.String(length=32), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tenants_id", "tenants", ["id"])
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True)
    op.create_index(
        "ix_tenants_custom_domain", "tenants", ["custom_domain"], unique=True
    )

    op.create_table(
        "staff_users",
        sa.Column("id", sa.Uuid(), nullable=False),
        _tenant_fk(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("two_factor_secret", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_staff_users_tenant_email"),
    )
    op.create_index("ix_staff_users_id", "staff_users", ["id"])
    op.create_index("ix_staff_users_tenant_id", "staff_users", ["tenant_id"])
    op.create_index("ix_staff_users_email", "staff_users", ["email"])

    op.create_table(
        "staff_refresh_tokens",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "staff_id",
            sa.Uuid(),
            sa.ForeignKey("staff_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked", sa.Boolean(), nullable=False),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_refresh_tokens_id", "staff_refresh_tokens", ["id"])
    op.create_index(
        "ix_staff_refresh_tokens_staff_id", "staff_refresh_tokens", ["staff_id"]
    )
    op.create_index(
        "ix_staff_refresh_tokens_token_hash",
        "staff_refresh_tokens",
        ["token_hash"],
        unique=True,
    )
    # Expired-token purge
    op.create_index(
        "ix_staff_refresh_tokens_expires_at", "staff_refresh_tokens", ["expires_at"]
    )

    op.create_table(
        "staff_invitation_tokens",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "staff_id",
            sa.Uuid(),
            sa.ForeignKey("staff_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_staff_invitation_tokens_id", "staff_invitation_tokens", ["id"]
    )
    op.create_index(
        "ix_staff_invitation_tokens_staff_id", "staff_invitation_tokens", ["staff_id"]
    )
    op.create_index(
        "ix_staff_invitation_tokens_token_hash",
        "staff_invitation_tokens",
        ["token_hash"],
        unique=True,
    )
    op.create_index(
        "ix_staff_invitation_tokens_expires_at",
        "staff_invitation_tokens",
        ["expires_at"],
    )

    op.create_table(
        "staff_permissions",
        sa.Column("id", sa.Uuid(), nullable=False),
        _tenant_fk(),
        sa.Column(
            "staff_id",
            sa.Uuid(),
            sa.ForeignKey("staff_users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("grants", postgresql.JSONB(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_permissions_id", "staff_permissions", ["id"])
    op.create_index(
        "ix_staff_permissions_tenant_id", "staff_permissions", ["tenant_id"]
    )
    op.create_index(
        "ix_staff_permissions_staff_id",
        "staff_permissions",
        ["staff_id"],
        unique=True,
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), nullable=False),
        _tenant_fk(),
        sa.Column("plan_tier", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("pending_plan_tier", sa.String(length=32), nullable=True),
        sa.Column(
            "pending_plan_effective_date", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "cancellation_effective_date", sa.DateTime(timezone=True), nullable=True
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_subscriptions_id", "subscriptions", ["id"])
    op.create_index("ix_subscriptions_tenant_id", "subscriptions", ["tenant_id"])
    op.create_index(
        "ix_subscriptions_pending_plan_effective_date",
        "subscriptions",
        ["pending_plan_effective_date"],
    )
    op.create_index(
        "ix_subscriptions_cancellation_effective_date",
        "subscriptions",
        ["cancellation_effective_date"],
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        _tenant_fk(),
        sa.Column(
            "actor_staff_id",
            sa.Uuid(),
            sa.ForeignKey("staff_users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("resource_type", sa.String(length=100), nullable=False),
        sa.Column("resource_id", sa.String(length=255), nullable=True),
        sa.Column("request_id", sa.String(length=128), nullable=True),
        sa.Column("changes", postgresql.JSONB(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])
    op.create_index("ix_audit_logs_actor_staff_id", "audit_logs", ["actor_staff_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])
    op.create_index("ix_audit_logs_resource_id", "audit_logs", ["resource_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("audit_logs")
    op.drop_table("subscriptions")
    op.drop_table("staff_permissions")
    op.drop_table("staff_invitation_tokens")
    op.drop_table("staff_refresh_tokens")
    op.drop_table("staff_users")
    op.drop_table("tenants")
