from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import expression as sa_expr

# Postings within one transaction must sum to zero within this tolerance.
BALANCE_EPSILON = Decimal("0.01")

# BIGINT ids on Postgres; SQLite needs INTEGER PRIMARY KEY for rowid autoincrement.
_Id = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


class AccountKind(enum.Enum):
    """Closed discriminator for ledger accounts.

    ``TRANSFER`` accounts hold real value (bank, card, loan, equity) and can be
    one side of a transfer. ``CATEGORY`` accounts classify income/expense.
    """

    TRANSFER = "TRANSFER"
    CATEGORY = "CATEGORY"


class TransactionStatus(enum.Enum):
    NORMAL = "NORMAL"
    VOID = "VOID"


# ---------------------------
# Reference: lg_accounts
# ---------------------------


class Account(Base):
    __tablename__ = "lg_accounts"

    id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    kind: Mapped[AccountKind] = mapped_column(
        Enum(AccountKind, name="lg_account_kind", native_enum=False, length=16),
        nullable=False,
    )
    archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_expr.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (Index("uq_lg_accounts_name_kind", "name", "kind", unique=True),)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Account(id={self.id!r}, name={self.name!r}, kind={self.kind.value})"


# ---------------------------
# Core: lg_transactions / lg_postings
# ---------------------------


class Transaction(Base):
    __tablename__ = "lg_transactions"

    id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    payee: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, name="lg_transaction_status", native_enum=False, length=16),
        nullable=False,
        default=TransactionStatus.NORMAL,
        server_default=TransactionStatus.NORMAL.value,
    )
    # Free-form import metadata (bank reference, batch id, ...). Merge
    # provenance lives in ``lg_transfer_merges``, never here.
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    postings: Mapped[list[Posting]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="Posting.id",
    )

    def balance(self) -> Decimal:
        """Sum of posting amounts; zero for a balanced transaction."""

        return sum((p.amount for p in self.postings), Decimal("0"))

    def is_balanced(self) -> bool:
        return abs(self.balance()) < BALANCE_EPSILON


class Posting(Base):
    __tablename__ = "lg_postings"

    id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        _Id, ForeignKey("lg_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(
        _Id, ForeignKey("lg_accounts.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    is_business: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_expr.false()
    )
    cleared: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_expr.false()
    )
    # Locked by a finalized statement period; never edited retroactively.
    reconciled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_expr.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    transaction: Mapped[Transaction] = relationship(back_populates="postings")
    account: Mapped[Account] = relationship(lazy="joined")


# ---------------------------
# Audit: lg_transfer_merges
# ---------------------------

TRANSFER_MERGE_SCHEMA_VERSION = 1


class TransferMerge(Base):
    """Typed provenance for one matched-and-merged transfer.

    The surviving transaction keeps its id; the absorbed one is deleted, so its
    id is recorded as a plain column. The ``survivor_*`` and ``absorbed_*``
    columns capture everything needed to reverse the merge exactly.
    """

    __tablename__ = "lg_transfer_merges"

    id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    schema_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=TRANSFER_MERGE_SCHEMA_VERSION
    )
    surviving_transaction_id: Mapped[int] = mapped_column(
        _Id, ForeignKey("lg_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    absorbed_transaction_id: Mapped[int] = mapped_column(_Id, nullable=False)
    absorbed_payee: Mapped[str] = mapped_column(Text, nullable=False)
    absorbed_date: Mapped[date] = mapped_column(Date, nullable=False)
    absorbed_memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    absorbed_metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    absorbed_account_id: Mapped[int] = mapped_column(
        _Id, ForeignKey("lg_accounts.id", ondelete="RESTRICT"), nullable=False
    )
    absorbed_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    absorbed_category_account_id: Mapped[int | None] = mapped_column(
        _Id, ForeignKey("lg_accounts.id", ondelete="RESTRICT"), nullable=True
    )
    absorbed_is_business: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    absorbed_cleared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    absorbed_category_is_business: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    absorbed_category_cleared: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    survivor_original_payee: Mapped[str] = mapped_column(Text, nullable=False)
    survivor_original_date: Mapped[date] = mapped_column(Date, nullable=False)
    survivor_original_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    survivor_category_account_id: Mapped[int] = mapped_column(
        _Id, ForeignKey("lg_accounts.id", ondelete="RESTRICT"), nullable=False
    )
    survivor_category_is_business: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    survivor_category_cleared: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_posting_id: Mapped[int] = mapped_column(_Id, nullable=False)
    merged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reversed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "surviving_transaction_id <> absorbed_transaction_id",
            name="ck_lg_transfer_merges_distinct",
        ),
        Index("ix_lg_transfer_merges_absorbed", "absorbed_transaction_id"),
    )


__all__ = [
    "BALANCE_EPSILON",
    "TRANSFER_MERGE_SCHEMA_VERSION",
    "Base",
    "AccountKind",
    "TransactionStatus",
    "Account",
    "Transaction",
    "Posting",
    "TransferMerge",
]
