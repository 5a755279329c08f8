"""Declarative table definitions used by migrations and adapters."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()


def build_logbook_entries_table(target: sa.MetaData) -> sa.Table:
    """Return the ``logbook_entries`` table bound to ``target`` metadata."""

    return sa.Table(
        "logbook_entries",
        target,
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
        sa.Index("ix_logbook_entries_user_date", "user_id", "entry_date"),
    )


logbook_entries = build_logbook_entries_table(metadata)

__all__ = ["build_logbook_entries_table", "logbook_entries", "metadata"]
