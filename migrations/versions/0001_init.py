"""Initial schema: roster, menus, selections, food status

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    conn = op.get_bind()
    dialect = conn.dialect.name if conn is not None else "sqlite"
    true_def = sa.text("TRUE") if dialect == "postgresql" else sa.text("1")
    false_def = sa.text("FALSE") if dialect == "postgresql" else sa.text("0")
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("generated_id", sa.String(length=80), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("department", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="worker"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=true_def),
        sa.Column("created_at", sa.String(length=40)),
    )
    op.create_table(
        "menus",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.String(length=10), nullable=False, unique=True),
        sa.Column("meals", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.Integer()),
        sa.Column("updated_at", sa.String(length=40)),
    )
    op.create_table(
        "selections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("meal_id", sa.String(length=80), nullable=False),
        sa.Column("meal_name", sa.String(length=200), nullable=False),
        sa.Column("selected_at", sa.String(length=40), nullable=False),
        sa.Column("collected", sa.Boolean(), nullable=False, server_default=false_def),
        sa.Column("collected_at", sa.String(length=40)),
        sa.UniqueConstraint("user_id", "date", name="uq_selections_user_date"),
    )
    op.create_index("ix_selections_date", "selections", ["date"])
    op.create_table(
        "food_status",
        sa.Column("date", sa.String(length=10), primary_key=True),
        sa.Column("ready", sa.Boolean(), nullable=False, server_default=false_def),
        sa.Column("updated_at", sa.String(length=40)),
    )


def downgrade() -> None:
    op.drop_table("food_status")
    op.drop_index("ix_selections_date", table_name="selections")
    op.drop_table("selections")
    op.drop_table("menus")
    op.drop_table("users")
