"""Create logbook_entries table.

Revision ID: 20261019_logbook_entries
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_logbook_entries"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "logbook_entries",
        sa.Column("entry_id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("activity", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=250), nullable=True),
        sa.Column("entry_date", sa.Date(), nullable=False),
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
    )
    # Non-unique: one entry per user/date is enforced by the service.
    op.create_index(
        "ix_logbook_entries_user_date",
        "logbook_entries",
        ["user_id", "entry_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_logbook_entries_user_date", table_name="logbook_entries")
    op.drop_table("logbook_entries")
