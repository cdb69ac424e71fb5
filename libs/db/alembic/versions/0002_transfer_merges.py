# ruff: noqa: I001
"""Typed provenance table for matched-and-merged transfers.

Revision ID: 0002_transfer_merges
Revises: 0001_ledger_core
Create Date: 2026-02-14
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002_transfer_merges"
down_revision: str | None = "0001_ledger_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "lg_transfer_merges",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("schema_version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("surviving_transaction_id", sa.BigInteger(), nullable=False),
        # The absorbed transaction row is deleted by the merge; keep its id only.
        sa.Column("absorbed_transaction_id", sa.BigInteger(), nullable=False),
        sa.Column("absorbed_payee", sa.Text(), nullable=False),
        sa.Column("absorbed_date", sa.Date(), nullable=False),
        sa.Column("absorbed_account_id", sa.BigInteger(), nullable=False),
        sa.Column("absorbed_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("absorbed_category_account_id", sa.BigInteger(), nullable=True),
        sa.Column("absorbed_memo", sa.Text(), nullable=True),
        sa.Column("absorbed_metadata_json", sa.JSON(), nullable=True),
        sa.Column(
            "absorbed_is_business", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "absorbed_cleared", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column(
            "absorbed_category_is_business",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "absorbed_category_cleared",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("survivor_original_payee", sa.Text(), nullable=False),
        sa.Column("survivor_original_date", sa.Date(), nullable=False),
        sa.Column("survivor_original_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("survivor_category_account_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "survivor_category_is_business",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "survivor_category_cleared",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("created_posting_id", sa.BigInteger(), nullable=False),
        sa.Column("merged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reversed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["surviving_transaction_id"], ["lg_transactions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["absorbed_account_id"], ["lg_accounts.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["absorbed_category_account_id"], ["lg_accounts.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["survivor_category_account_id"], ["lg_accounts.id"], ondelete="RESTRICT"
        ),
        sa.CheckConstraint(
            "surviving_transaction_id <> absorbed_transaction_id",
            name="ck_lg_transfer_merges_distinct",
        ),
    )
    op.create_index(
        "ix_lg_transfer_merges_surviving_transaction_id",
        "lg_transfer_merges",
        ["surviving_transaction_id"],
    )
    op.create_index(
        "ix_lg_transfer_merges_absorbed", "lg_transfer_merges", ["absorbed_transaction_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_lg_transfer_merges_absorbed", table_name="lg_transfer_merges")
    op.drop_index(
        "ix_lg_transfer_merges_surviving_transaction_id", table_name="lg_transfer_merges"
    )
    op.drop_table("lg_transfer_merges")
