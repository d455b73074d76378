"""Initial migration: users, buyers and buyer_history tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "buyers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("full_name", sa.String(80), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(15), nullable=False),
        sa.Column("city", sa.String(20), nullable=False),
        sa.Column("property_type", sa.String(20), nullable=False),
        sa.Column("bhk", sa.String(10), nullable=True),
        sa.Column("purpose", sa.String(10), nullable=False),
        sa.Column("budget_min", sa.Integer, nullable=True),
        sa.Column("budget_max", sa.Integer, nullable=True),
        sa.Column("timeline", sa.String(20), nullable=False),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="New"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("tags", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_buyers_owner_id", "buyers", ["owner_id"])
    op.create_index("ix_buyers_city_property_type", "buyers", ["city", "property_type"])
    op.create_index("ix_buyers_status", "buyers", ["status"])
    op.create_index("ix_buyers_full_name", "buyers", ["full_name"])
    op.create_index("ix_buyers_updated_at", "buyers", ["updated_at"])

    op.create_table(
        "buyer_history",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "buyer_id",
            UUID(as_uuid=True),
            sa.ForeignKey("buyers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("changed_by", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("diff", JSONB, nullable=False),
    )
    op.create_index("ix_buyer_history_buyer_changed_at", "buyer_history", ["buyer_id", "changed_at"])


def downgrade() -> None:
    op.drop_table("buyer_history")
    op.drop_table("buyers")
    op.drop_table("users")
