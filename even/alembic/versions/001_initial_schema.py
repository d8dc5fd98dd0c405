"""Initial schema: users, chat tables and the review tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("uid", sa.Text(), nullable=False, unique=True),
        sa.Column("phone", sa.Text()),
    )

    # --- Matches / Threads / Messages ---
    op.create_table(
        "matches",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_a_uid", sa.Text(), nullable=False),
        sa.Column("user_b_uid", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_matches_pair", "matches", ["user_a_uid", "user_b_uid"])

    op.create_table(
        "threads",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("match_id", UUID(as_uuid=True), sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
    )
    op.create_index("ix_threads_match_id", "threads", ["match_id"])

    op.create_table(
        "messages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("thread_id", UUID(as_uuid=True), sa.ForeignKey("threads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_uid", sa.Text(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_messages_thread_created", "messages", ["thread_id", "created_at"])

    # --- Reviews ---
    op.create_table(
        "reviews",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("reviewer_uid", sa.Text(), nullable=False),
        sa.Column("target_uid", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False, server_default=sa.text("'normal'")),
        sa.Column("phone_number_used", sa.Text()),
        sa.Column("flagged_by_keyword_scan", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("flagged_by_llm", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pending_human_review", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rejected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("strike_issued", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("reviewer_uid", "target_uid", name="uq_reviews_reviewer_target"),
        sa.CheckConstraint("type IN ('normal','emergency','report')", name="ck_review_type"),
    )
    op.create_index("ix_reviews_reviewer_uid", "reviews", ["reviewer_uid"])
    op.create_index("idx_reviews_target_created", "reviews", ["target_uid", "created_at"])

    # --- Weekly windows ---
    op.create_table(
        "review_week_windows",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_uid", sa.Text(), sa.ForeignKey("users.uid", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("window_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("window_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviews_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("reviews_used >= 0", name="ck_week_window_used"),
    )

    # --- Strikes ---
    op.create_table(
        "review_strikes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_uid", sa.Text(), sa.ForeignKey("users.uid", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("strike_number", sa.Integer(), nullable=False),
        sa.Column("timeout_hours", sa.Integer(), nullable=False),
        sa.Column("timeout_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("user_uid", "strike_number", name="uq_review_strikes_user_number"),
    )
    op.create_index("ix_review_strikes_user_uid", "review_strikes", ["user_uid"])

    # --- Emergency grants ---
    op.create_table(
        "review_emergency",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("reviewer_uid", sa.Text(), sa.ForeignKey("users.uid", ondelete="CASCADE"), nullable=False),
        sa.Column("target_uid", sa.Text(), sa.ForeignKey("users.uid", ondelete="CASCADE"), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True)),
        sa.Column("phone_number_snapshot", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("reviewer_uid", "target_uid", name="uq_review_emergency_pair"),
    )
    op.create_index("ix_review_emergency_reviewer_uid", "review_emergency", ["reviewer_uid"])
    op.create_index("ix_review_emergency_target_uid", "review_emergency", ["target_uid"])


def downgrade() -> None:
    op.drop_table("review_emergency")
    op.drop_table("review_strikes")
    op.drop_table("review_week_windows")
    op.drop_table("reviews")
    op.drop_table("messages")
    op.drop_table("threads")
    op.drop_table("matches")
    op.drop_table("users")
