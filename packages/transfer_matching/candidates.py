"""Candidate extraction: find one-sided, unresolved transfers on an account.

A candidate is a ``NORMAL`` transaction with exactly two postings: one on the
scanned real account and one on a ``CATEGORY`` account acting as a placeholder
for the other side of the transfer. If the other posting already targets a
``TRANSFER`` account, the transfer is resolved and the transaction is ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple, assert_never

from db.models.ledger import AccountKind, Posting, Transaction, TransactionStatus
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .config import DEFAULT_SETTINGS, MatchingSettings
from .logging_setup import get_logger
from .models import DateRange, TransferCandidate

logger = get_logger("transfer_matching.candidates")


class PostingSplit(NamedTuple):
    real: list[Posting]
    category: list[Posting]


def split_postings(postings: Iterable[Posting]) -> PostingSplit:
    """Partition postings by the kind of account they target."""

    real: list[Posting] = []
    category: list[Posting] = []
    for p in postings:
        kind = p.account.kind
        match kind:
            case AccountKind.TRANSFER:
                real.append(p)
            case AccountKind.CATEGORY:
                category.append(p)
            case _:
                assert_never(kind)
    return PostingSplit(real, category)


def find_transfer_candidates(
    session: Session,
    account_id: int,
    date_range: DateRange | None = None,
    *,
    settings: MatchingSettings | None = None,
) -> list[TransferCandidate]:
    """Return transfer candidates on ``account_id``, ascending by date.

    The optional inclusive ``date_range`` is padded by
    ``settings.date_padding_days`` on both sides. Pure read; no side effects.
    """

    cfg = settings or DEFAULT_SETTINGS

    stmt = (
        select(Transaction)
        .where(Transaction.status == TransactionStatus.NORMAL)
        .where(Transaction.postings.any(Posting.account_id == account_id))
        .options(selectinload(Transaction.postings).joinedload(Posting.account))
        .order_by(Transaction.date, Transaction.id)
    )
    if date_range is not None and not date_range.is_open:
        window = date_range.padded(cfg.date_padding_days)
        if window.start is not None:
            stmt = stmt.where(Transaction.date >= window.start)
        if window.end is not None:
            stmt = stmt.where(Transaction.date <= window.end)

    transactions = session.execute(stmt).scalars().unique().all()

    candidates: list[TransferCandidate] = []
    for tx in transactions:
        candidate = _candidate_from_transaction(tx, account_id, cfg)
        if candidate is not None:
            candidates.append(candidate)

    logger.debug(
        "account %s: %d candidates out of %d transactions",
        account_id,
        len(candidates),
        len(transactions),
    )
    return candidates


def _candidate_from_transaction(
    tx: Transaction, account_id: int, cfg: MatchingSettings
) -> TransferCandidate | None:
    if len(tx.postings) != 2:
        return None

    real = next((p for p in tx.postings if p.account_id == account_id), None)
    other = next((p for p in tx.postings if p.account_id != account_id), None)
    if real is None or other is None:
        return None

    match other.account.kind:
        case AccountKind.TRANSFER:
            # Both legs already on real accounts: a resolved transfer.
            return None
        case AccountKind.CATEGORY:
            pass
        case _:
            assert_never(other.account.kind)

    if not cfg.is_transfer_likely(other.account.name, tx.payee):
        return None

    return TransferCandidate(
        transaction_id=tx.id,
        real_posting_id=real.id,
        real_account_id=real.account_id,
        category_posting_id=other.id,
        category_account_id=other.account_id,
        category_account_name=other.account.name,
        amount=real.amount,
        date=tx.date,
        payee=tx.payee or "",
        is_reconciled=real.reconciled,
        cleared=real.cleared,
    )


__all__ = [
    "PostingSplit",
    "split_postings",
    "find_transfer_candidates",
]
