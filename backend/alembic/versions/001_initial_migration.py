"""Initial migration: create camp setup, templates, day schedule and rebuild run tables

Revision ID: 001_initial
Revises:
Create Date: 2026-06-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "division",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("bunks", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_division_name", "division", ["name"], unique=True)

    op.create_table(
        "daytemplate",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("blocks", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_daytemplate_name", "daytemplate", ["name"], unique=True)

    op.create_table(
        "dayschedule",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.String(), nullable=False),
        sa.Column("template_name", sa.String(), nullable=True),
        sa.Column("timeline", sa.JSON(), nullable=True),
        sa.Column("assignments", sa.JSON(), nullable=True),
        sa.Column("pending_rebuild_id", sa.String(length=32), nullable=True),
        sa.Column("is_rainy", sa.Boolean(), nullable=False),
        sa.Column("pre_rainy_template_name", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_dayschedule_day_date", "dayschedule", ["day_date"], unique=True)

    op.create_table(
        "specialactivity",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("setup_minutes", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_specialactivity_name", "specialactivity", ["name"], unique=True)

    op.create_table(
        "campfield",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("time_rules", sa.JSON(), nullable=True),
        sa.Column("rainy_day_capacity", sa.Integer(), nullable=True),
        sa.Column("rainy_day_available_all_day", sa.Boolean(), nullable=False),
        sa.Column("original_saved", sa.Boolean(), nullable=False),
        sa.Column("original_capacity", sa.Integer(), nullable=True),
        sa.Column("original_time_rules", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_campfield_name", "campfield", ["name"], unique=True)

    op.create_table(
        "campsettings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("camp_name", sa.String(), nullable=False),
        sa.Column("rainy_day_template_name", sa.String(), nullable=True),
        sa.Column("default_template_name", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "rebuildrun",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.String(), nullable=False),
        sa.Column("rebuild_id", sa.String(length=32), nullable=True),
        sa.Column("template_name", sa.String(), nullable=True),
        sa.Column("direction", sa.String(length=16), nullable=False),
        sa.Column("transition_minute", sa.Integer(), nullable=True),
        sa.Column("ok", sa.Boolean(), nullable=False),
        sa.Column("error_code", sa.String(), nullable=True),
        sa.Column("dropped", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("summary_json", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rebuildrun_day_date", "rebuildrun", ["day_date"])
    op.create_index("ix_rebuildrun_rebuild_id", "rebuildrun", ["rebuild_id"])


def downgrade() -> None:
    op.drop_index("ix_rebuildrun_rebuild_id", table_name="rebuildrun")
    op.drop_index("ix_rebuildrun_day_date", table_name="rebuildrun")
    op.drop_table("rebuildrun")
    op.drop_table("campsettings")
    op.drop_index("ix_campfield_name", table_name="campfield")
    op.drop_table("campfield")
    op.drop_index("ix_specialactivity_name", table_name="specialactivity")
    op.drop_table("specialactivity")
    op.drop_index("ix_dayschedule_day_date", table_name="dayschedule")
    op.drop_table("dayschedule")
    op.drop_index("ix_daytemplate_name", table_name="daytemplate")
    op.drop_table("daytemplate")
    op.drop_index("ix_division_name", table_name="division")
    op.drop_table("division")
