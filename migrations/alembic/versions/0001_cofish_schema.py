"""CoFish schema - users, catches, info_purchases, karma_events

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Every table carries an integer `version` column used as an optimistic lock
by the application (UPDATE ... WHERE id = :id AND version = :expected).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("points_balance", sa.Integer(), server_default="0", nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # catches table
    # ==========================================================================
    op.create_table(
        "catches",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("species", sa.Text(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("video_key", sa.Text(), nullable=True),
        sa.Column("thumbnail_key", sa.Text(), nullable=True),
        sa.Column("base_points", sa.Integer(), server_default="100", nullable=False),
        sa.Column("karma_points", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "verification_status",
            sa.String(32),
            server_default="PENDING_VERIFICATION",
            nullable=False,
        ),
        sa.Column("alive_score", sa.Float(), nullable=True),
        sa.Column("analysis_confidence", sa.Float(), nullable=True),
        sa.Column("analysis_note", sa.Text(), nullable=True),
        sa.Column("fish_fingerprint", sa.Text(), nullable=True),
        sa.Column("fish_embedding", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "verification_status IN "
            "('PENDING_VERIFICATION', 'VERIFIED', 'REJECTED', 'AWARDED')",
            name="ck_catches_verification_status",
        ),
        sa.CheckConstraint("base_points >= 0", name="ck_catches_base_points_nonneg"),
        sa.CheckConstraint("karma_points >= 0", name="ck_catches_karma_points_nonneg"),
        # Location is all or nothing
        sa.CheckConstraint(
            "(lat IS NULL AND lng IS NULL) OR (lat IS NOT NULL AND lng IS NOT NULL)",
            name="ck_catches_location_pair",
        ),
    )
    op.create_index("ix_catches_user_created", "catches", ["user_id", "created_at"])
    op.create_index("ix_catches_created", "catches", ["created_at"])

    # ==========================================================================
    # info_purchases table
    # ==========================================================================
    op.create_table(
        "info_purchases",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("center_lat", sa.Float(), nullable=False),
        sa.Column("center_lng", sa.Float(), nullable=False),
        sa.Column("radius_miles", sa.Float(), nullable=False),
        sa.Column("species_filter", sa.Text(), nullable=True),
        sa.Column("base_cost_points", sa.Integer(), nullable=False),
        sa.Column("discount_percent", sa.Integer(), server_default="0", nullable=False),
        sa.Column("final_cost_points", sa.Integer(), nullable=False),
        sa.Column("avg_age_hours", sa.Float(), nullable=True),
        sa.Column("included_catch_ids", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("radius_miles > 0", name="ck_info_purchases_radius_positive"),
        sa.CheckConstraint("final_cost_points >= 0", name="ck_info_purchases_cost_nonneg"),
        sa.CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="ck_info_purchases_discount_range",
        ),
    )
    op.create_index(
        "ix_info_purchases_user_created", "info_purchases", ["user_id", "created_at"]
    )
    op.create_index("ix_info_purchases_created", "info_purchases", ["created_at"])

    # ==========================================================================
    # karma_events table (audit only; balances never read it)
    # ==========================================================================
    op.create_table(
        "karma_events",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("helper_user_id", sa.UUID(), nullable=False),
        sa.Column("beneficiary_user_id", sa.UUID(), nullable=False),
        sa.Column("source_catch_id", sa.UUID(), nullable=False),
        sa.Column("beneficiary_catch_id", sa.UUID(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["helper_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["beneficiary_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["source_catch_id"], ["catches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["beneficiary_catch_id"], ["catches.id"], ondelete="CASCADE"),
        sa.CheckConstraint("points > 0", name="ck_karma_events_points_positive"),
    )
    op.create_index(
        "ix_karma_events_helper_created", "karma_events", ["helper_user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_karma_events_helper_created", table_name="karma_events")
    op.drop_table("karma_events")
    op.drop_index("ix_info_purchases_created", table_name="info_purchases")
    op.drop_index("ix_info_purchases_user_created", table_name="info_purchases")
    op.drop_table("info_purchases")
    op.drop_index("ix_catches_created", table_name="catches")
    op.drop_index("ix_catches_user_created", table_name="catches")
    op.drop_table("catches")
    op.drop_table("users")
