"""Shared SQLAlchemy models registry for the workspace ledger database.

Currently includes the double-entry ledger models used by ``transfer_matching``.
"""

from .ledger import (
    Account,
    AccountKind,
    Base,
    Posting,
    Transaction,
    TransactionStatus,
    TransferMerge,
)

__all__ = [
    "Base",
    "Account",
    "AccountKind",
    "Posting",
    "Transaction",
    "TransactionStatus",
    "TransferMerge",
]
