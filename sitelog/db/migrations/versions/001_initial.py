"""Initial schema - profiles, reports, smart memory, master data

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _owner() -> sa.Column:
    return sa.Column(
        "user_id",
        sa.String(128),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    # Users (identity provider subject ids)
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True, index=True),
        sa.Column("username", sa.String(255), nullable=False, server_default="User"),
        *_timestamps(),
    )

    # Daily reports, one per user and date
    op.create_table(
        "daily_reports",
        sa.Column("id", sa.String(64), primary_key=True),
        _owner(),
        sa.Column("report_date", sa.Date, nullable=False, index=True),
        sa.Column(
            "activities", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "report_date", name="uq_daily_reports_user_date"),
    )

    # Smart memory, one row per user
    op.create_table(
        "resource_memory",
        sa.Column(
            "user_id",
            sa.String(128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        *[
            sa.Column(
                category, postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")
            )
            for category in ("manpower", "material", "equipment", "subcontractor", "risk")
        ],
        *_timestamps(),
    )

    # Name-keyed manpower templates
    op.create_table(
        "manpower_templates",
        sa.Column("id", sa.String(64), primary_key=True),
        _owner(),
        sa.Column("name_key", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("trade", sa.String(255), nullable=True),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("regular_hours", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("overtime", sa.Float, nullable=False, server_default=sa.text("0")),
        sa.Column("cost", sa.Numeric(14, 2), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "name_key", name="uq_manpower_templates_user_key"),
    )

    # Master data catalog
    op.create_table(
        "master_data_items",
        sa.Column("id", sa.String(64), primary_key=True),
        _owner(),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("quantity", sa.Float, nullable=True),
        sa.Column("overtime", sa.Float, nullable=True),
        sa.Column("trade", sa.String(255), nullable=True),
        sa.Column("company", sa.String(255), nullable=True),
        sa.Column("cost", sa.Numeric(14, 2), nullable=True),
        sa.Column("comments", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "category", "code", name="uq_master_data_user_category_code"
        ),
    )


def downgrade() -> None:
    op.drop_table("master_data_items")
    op.drop_table("manpower_templates")
    op.drop_table("resource_memory")
    op.drop_table("daily_reports")
    op.drop_table("users")
