"""Initial schema: api keys, registrations, catalog, assessments, videos, subscriptions

Revision ID: 3f9c1e7a2b4d
Revises:
Create Date: 2026-10-19 10:12:41.508213

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9c1e7a2b4d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _tenant_columns() -> list[sa.Column]:
    """id, tenant_id, created_at, updated_at (MultiTenantModel)."""
    return [
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create the gateway schema."""
    op.create_table(
        "api_key",
        *_tenant_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("key", sa.String(length=128), nullable=False),
        sa.Column("key_prefix", sa.String(length=32), nullable=False),
        sa.Column("secret_hash", sa.String(), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("revoked", sa.Boolean(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_api_key_key"), "api_key", ["key"], unique=True)
    op.create_index(op.f("ix_api_key_tenant_id"), "api_key", ["tenant_id"], unique=False)
    op.create_index("ix_api_key_tenant_revoked", "api_key", ["tenant_id", "revoked"], unique=False)

    op.create_table(
        "integration_registration",
        *_tenant_columns(),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("base_url", sa.String(length=2048), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("credentials_encrypted", sa.Text(), nullable=False),
        sa.Column("webhook_secret_encrypted", sa.Text(), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("status_reason", sa.String(length=500), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_integration_registration_tenant_id"),
        "integration_registration",
        ["tenant_id"],
        unique=False,
    )
    op.create_index(
        "ix_registration_tenant_kind_status",
        "integration_registration",
        ["tenant_id", "kind", "status"],
        unique=False,
    )

    op.create_table(
        "content_item",
        *_tenant_columns(),
        sa.Column("registration_id", sa.String(), nullable=False),
        sa.Column("external_id", sa.String(length=200), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("url", sa.String(length=2048), nullable=True),
        sa.Column("format", sa.String(length=64), nullable=True),
        sa.Column("subject", sa.String(length=100), nullable=True),
        sa.Column("key_stage", sa.String(length=32), nullable=True),
        sa.Column("topics", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["registration_id"], ["integration_registration.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("registration_id", "external_id", name="uq_content_item_registration_external"),
    )
    op.create_index(op.f("ix_content_item_registration_id"), "content_item", ["registration_id"], unique=False)
    op.create_index(op.f("ix_content_item_subject"), "content_item", ["subject"], unique=False)
    op.create_index(op.f("ix_content_item_tenant_id"), "content_item", ["tenant_id"], unique=False)

    op.create_table(
        "content_usage",
        *_tenant_columns(),
        sa.Column("content_item_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column("context_id", sa.String(length=200), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("progress", sa.Float(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["content_item_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_content_usage_content_item_id"), "content_usage", ["content_item_id"], unique=False)
    op.create_index(op.f("ix_content_usage_tenant_id"), "content_usage", ["tenant_id"], unique=False)
    op.create_index("ix_content_usage_tenant_user", "content_usage", ["tenant_id", "user_id"], unique=False)

    op.create_table(
        "assessment",
        *_tenant_columns(),
        sa.Column("registration_id", sa.String(), nullable=False),
        sa.Column("external_id", sa.String(length=200), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("time_limit_minutes", sa.Integer(), nullable=True),
        sa.Column("passing_score", sa.Float(), nullable=True),
        sa.Column("max_attempts", sa.Integer(), nullable=True),
        sa.Column("show_feedback", sa.Boolean(), nullable=False),
        sa.Column("show_results", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["registration_id"], ["integration_registration.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("registration_id", "external_id", name="uq_assessment_registration_external"),
    )
    op.create_index(op.f("ix_assessment_registration_id"), "assessment", ["registration_id"], unique=False)
    op.create_index(op.f("ix_assessment_tenant_id"), "assessment", ["tenant_id"], unique=False)

    op.create_table(
        "assessment_attempt",
        *_tenant_columns(),
        sa.Column("assessment_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column("context_id", sa.String(length=200), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("passed", sa.Boolean(), nullable=True),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("external", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessment.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_assessment_attempt_assessment_id"), "assessment_attempt", ["assessment_id"], unique=False
    )
    op.create_index(op.f("ix_assessment_attempt_tenant_id"), "assessment_attempt", ["tenant_id"], unique=False)
    op.create_index("ix_attempt_tenant_user", "assessment_attempt", ["tenant_id", "user_id"], unique=False)

    op.create_table(
        "heygen_video",
        *_tenant_columns(),
        sa.Column("video_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=True),
        sa.Column("thumbnail_url", sa.String(length=2048), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_heygen_video_tenant_id"), "heygen_video", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_heygen_video_video_id"), "heygen_video", ["video_id"], unique=True)

    op.create_table(
        "subscription",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("stripe_customer_id", sa.String(length=128), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(length=128), nullable=True),
        sa.Column("price_id", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_subscription_stripe_customer_id"), "subscription", ["stripe_customer_id"], unique=False
    )
    op.create_index(
        op.f("ix_subscription_stripe_subscription_id"), "subscription", ["stripe_subscription_id"], unique=True
    )
    op.create_index(op.f("ix_subscription_tenant_id"), "subscription", ["tenant_id"], unique=True)


def downgrade() -> None:
    """Drop the gateway schema."""
    op.drop_table("subscription")
    op.drop_table("heygen_video")
    op.drop_table("assessment_attempt")
    op.drop_table("assessment")
    op.drop_table("content_usage")
    op.drop_table("content_item")
    op.drop_table("integration_registration")
    op.drop_table("api_key")
