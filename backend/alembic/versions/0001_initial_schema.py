"""Sub-scenarios and reservations.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "sub_scenarios",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("scenario_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("open_hour", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("close_hour", sa.Integer(), nullable=False, server_default="22"),
        sa.Column("closed_weekdays", sa.String(length=32), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint(
            "open_hour >= 0 AND open_hour < close_hour",
            name="ck_sub_scenarios_open_hour",
        ),
        sa.CheckConstraint("close_hour <= 24", name="ck_sub_scenarios_close_hour"),
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "sub_scenario_id",
            sa.Integer(),
            sa.ForeignKey("sub_scenarios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("initial_date", sa.Date(), nullable=False),
        sa.Column("final_date", sa.Date(), nullable=False),
        sa.Column("start_hour", sa.Integer(), nullable=False),
        sa.Column("end_hour", sa.Integer(), nullable=False),
        sa.Column("state_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("group_id", sa.String(length=64), nullable=True),
        sa.Column("comments", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "initial_date <= final_date", name="ck_reservations_date_range"
        ),
        sa.CheckConstraint("start_hour < end_hour", name="ck_reservations_hour_range"),
    )
    op.create_index(
        "ix_reservations_sub_scenario_id", "reservations", ["sub_scenario_id"]
    )
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservations_group_id", "reservations", ["group_id"])
    op.create_index(
        "ix_reservations_window",
        "reservations",
        ["sub_scenario_id", "initial_date", "final_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_reservations_window", table_name="reservations")
    op.drop_index("ix_reservations_group_id", table_name="reservations")
    op.drop_index("ix_reservations_user_id", table_name="reservations")
    op.drop_index("ix_reservations_sub_scenario_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("sub_scenarios")
