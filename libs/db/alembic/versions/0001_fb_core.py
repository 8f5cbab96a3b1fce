# ruff: noqa: I001
"""Ledger core tables: merchants and transactions.

Revision ID: 0001_fb_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_fb_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # fb_merchants
    op.create_table(
        "fb_merchants",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("normalized_key", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("normalized_key", name="uq_fb_merchants_normalized_key"),
    )

    # fb_transactions
    op.create_table(
        "fb_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("raw_description", sa.String(500), nullable=True),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.CHAR(3), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("merchant_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["merchant_id"],
            ["fb_merchants.id"],
            name="fk_fb_tx_merchant",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("external_id", name="uq_fb_transactions_external_id"),
    )

    op.create_index("ix_fb_transactions_category", "fb_transactions", ["category"], unique=False)
    op.create_index(
        "ix_fb_transactions_merchant_id", "fb_transactions", ["merchant_id"], unique=False
    )
    op.create_index("ix_fb_transactions_date", "fb_transactions", ["date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_fb_transactions_date", table_name="fb_transactions")
    op.drop_index("ix_fb_transactions_merchant_id", table_name="fb_transactions")
    op.drop_index("ix_fb_transactions_category", table_name="fb_transactions")
    op.drop_table("fb_transactions")
    op.drop_table("fb_merchants")
