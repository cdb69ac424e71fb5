# ruff: noqa: I001
"""Ledger core tables: accounts, transactions, postings.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2025-10-06
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "lg_accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint("kind in ('TRANSFER','CATEGORY')", name="ck_lg_accounts_kind"),
    )
    op.create_index(
        "uq_lg_accounts_name_kind", "lg_accounts", ["name", "kind"], unique=True
    )

    op.create_table(
        "lg_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("payee", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default=sa.text("'NORMAL'")
        ),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
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
        sa.CheckConstraint("status in ('NORMAL','VOID')", name="ck_lg_transactions_status"),
    )
    op.create_index("ix_lg_transactions_date", "lg_transactions", ["date"])

    op.create_table(
        "lg_postings",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("transaction_id", sa.BigInteger(), nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("is_business", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("cleared", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reconciled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["transaction_id"], ["lg_transactions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["account_id"], ["lg_accounts.id"], ondelete="RESTRICT"),
    )
    op.create_index("ix_lg_postings_transaction_id", "lg_postings", ["transaction_id"])
    op.create_index("ix_lg_postings_account_id", "lg_postings", ["account_id"])


def downgrade() -> None:
    op.drop_index("ix_lg_postings_account_id", table_name="lg_postings")
    op.drop_index("ix_lg_postings_transaction_id", table_name="lg_postings")
    op.drop_table("lg_postings")
    op.drop_index("ix_lg_transactions_date", table_name="lg_transactions")
    op.drop_table("lg_transactions")
    op.drop_index("uq_lg_accounts_name_kind", table_name="lg_accounts")
    op.drop_table("lg_accounts")
