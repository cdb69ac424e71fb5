"""Merge committer: collapse matched transfer halves into one transaction.

For a pair ``(A, B)`` the merge keeps transaction A and discards B:

- A's category (placeholder) posting is deleted;
- A's real posting is set to the negation of B's real amount. B's amount and
  sign are the source of truth because they reflect how B's own import
  recorded the movement, so A is adjusted to balance against it;
- a posting for B's real account, carrying B's amount, business flag and
  cleared flag, is added to A;
- A takes the earlier of the two dates and keeps its payee (B's when A's is
  empty);
- a typed ``TransferMerge`` row records the provenance;
- B's postings are deleted, then B itself.

Each pair runs in its own database transaction. Any failure rolls that pair
back completely, is reported in the batch result and does not stop the batch.
Nothing is retried automatically.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import TypeVar

from db.client import session_scope
from db.models.ledger import (
    TRANSFER_MERGE_SCHEMA_VERSION,
    Posting,
    Transaction,
    TransactionStatus,
    TransferMerge,
)
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .candidates import split_postings
from .errors import (
    InvariantViolation,
    NotFound,
    StoreFailure,
    StructuralMismatch,
    TransferMatchError,
)
from .logging_setup import get_logger
from .models import CommitPair, CommitResult

logger = get_logger("transfer_matching.commit")

_DEFAULT_PAYEE = "Transfer"

T = TypeVar("T")


def lock_transactions(session: Session, transaction_ids: Iterable[int]) -> dict[int, Transaction]:
    """Load transactions fresh with their postings, row-locking where supported.

    Locks are taken with plain id selects first so that ``FOR UPDATE`` never
    has to apply to an outer join from eager loading. SQLite ignores the
    clause; its writer lock serializes the whole pair instead.
    """

    ids = sorted(set(transaction_ids))
    session.execute(select(Transaction.id).where(Transaction.id.in_(ids)).with_for_update())
    session.execute(
        select(Posting.id).where(Posting.transaction_id.in_(ids)).with_for_update()
    )
    rows = (
        session.execute(
            select(Transaction)
            .where(Transaction.id.in_(ids))
            .options(selectinload(Transaction.postings).joinedload(Posting.account))
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    return {tx.id: tx for tx in rows}


def _pick_payee(a: str | None, b: str | None) -> str:
    for payee in (a, b):
        if payee and payee.strip():
            return payee
    return _DEFAULT_PAYEE


def _two_leg_shape(tx: Transaction, role: str) -> tuple[Posting, Posting]:
    """Return ``(real, category)`` for a live two-posting candidate transaction."""

    if tx.status is not TransactionStatus.NORMAL:
        raise StructuralMismatch(f"transaction {tx.id} ({role}) is {tx.status.value}")
    if len(tx.postings) != 2:
        raise StructuralMismatch(
            f"transaction {tx.id} ({role}) has {len(tx.postings)} postings, expected 2"
        )
    split = split_postings(tx.postings)
    if len(split.real) != 1 or len(split.category) != 1:
        raise StructuralMismatch(
            f"transaction {tx.id} ({role}) is not one real posting plus one category posting"
        )
    return split.real[0], split.category[0]


def merge_pair(
    session: Session,
    pair: CommitPair,
    *,
    now: datetime | None = None,
) -> TransferMerge:
    """Merge ``pair.candidate_b_id`` into ``pair.candidate_a_id`` inside ``session``.

    The caller owns the transaction: commit on success, roll back on any
    exception. Raises a ``TransferMatchError`` subclass when the pair fails a
    safety check.
    """

    if pair.candidate_a_id == pair.candidate_b_id:
        raise InvariantViolation(f"transaction {pair.candidate_a_id} cannot merge with itself")

    txs = lock_transactions(session, (pair.candidate_a_id, pair.candidate_b_id))
    tx_a = txs.get(pair.candidate_a_id)
    tx_b = txs.get(pair.candidate_b_id)
    missing = [
        str(tx_id)
        for tx_id, tx in ((pair.candidate_a_id, tx_a), (pair.candidate_b_id, tx_b))
        if tx is None
    ]
    if missing or tx_a is None or tx_b is None:
        raise NotFound(f"transaction(s) not found: {', '.join(missing)}")

    a_real, a_category = _two_leg_shape(tx_a, "A")
    b_real, b_category = _two_leg_shape(tx_b, "B")

    if a_real.account_id == b_real.account_id:
        raise InvariantViolation(
            f"both transactions post to the same account ({a_real.account_id})"
        )
    if a_real.reconciled or b_real.reconciled:
        raise InvariantViolation("cannot merge reconciled transactions")

    merged_at = now or datetime.now(UTC)
    survivor_payee = tx_a.payee
    survivor_date = tx_a.date
    survivor_amount = a_real.amount
    b_amount = b_real.amount

    # Rewrite A: drop the placeholder, balance A's real leg against B's amount,
    # then add B's real leg.
    tx_a.postings.remove(a_category)
    a_real.amount = -b_amount
    created = Posting(
        account_id=b_real.account_id,
        amount=b_amount,
        is_business=b_real.is_business,
        cleared=b_real.cleared,
    )
    tx_a.postings.append(created)

    tx_a.payee = _pick_payee(tx_a.payee, tx_b.payee)
    tx_a.date = min(tx_a.date, tx_b.date)
    session.flush()

    record = TransferMerge(
        schema_version=TRANSFER_MERGE_SCHEMA_VERSION,
        surviving_transaction_id=tx_a.id,
        absorbed_transaction_id=tx_b.id,
        absorbed_payee=tx_b.payee or "",
        absorbed_date=tx_b.date,
        absorbed_memo=tx_b.memo,
        absorbed_metadata_json=dict(tx_b.metadata_json) if tx_b.metadata_json else None,
        absorbed_account_id=b_real.account_id,
        absorbed_amount=b_amount,
        absorbed_category_account_id=b_category.account_id,
        absorbed_is_business=b_real.is_business,
        absorbed_cleared=b_real.cleared,
        absorbed_category_is_business=b_category.is_business,
        absorbed_category_cleared=b_category.cleared,
        survivor_original_payee=survivor_payee or "",
        survivor_original_date=survivor_date,
        survivor_original_amount=survivor_amount,
        survivor_category_account_id=a_category.account_id,
        survivor_category_is_business=a_category.is_business,
        survivor_category_cleared=a_category.cleared,
        created_posting_id=created.id,
        merged_at=merged_at,
    )
    session.add(record)

    # The postings cascade deletes B's postings ahead of B itself.
    session.delete(tx_b)
    session.flush()

    if not tx_a.is_balanced():
        raise InvariantViolation(
            f"merged transaction {tx_a.id} does not balance (sum={tx_a.balance()})"
        )

    logger.info(
        "merged transaction %s into %s (%s -> %s, amount %s)",
        record.absorbed_transaction_id,
        tx_a.id,
        a_real.account_id,
        b_real.account_id,
        b_amount,
    )
    return record


def _as_pair(p: CommitPair | tuple[int, int]) -> CommitPair:
    return p if isinstance(p, CommitPair) else CommitPair(int(p[0]), int(p[1]))


def run_isolated(
    items: Iterable[T],
    operation: Callable[[Session, T], object],
    *,
    database_url: str | None = None,
    label: str = "pair",
) -> CommitResult:
    """Apply ``operation`` to each item in its own session scope.

    Store errors are surfaced as ``StoreFailure``. Domain and store failures
    roll the item back and are counted as skipped; other exceptions propagate.
    """

    result = CommitResult()
    for item in items:
        try:
            try:
                with session_scope(database_url=database_url) as session:
                    operation(session, item)
            except SQLAlchemyError as exc:
                raise StoreFailure(str(exc).splitlines()[0]) from exc
        except TransferMatchError as exc:
            result.skipped += 1
            message = f"{item}: {type(exc).__name__}: {exc}"
            result.errors.append(message)
            logger.warning("skipped %s %s", label, message)
            continue
        result.merged += 1
    return result


def commit_matches(
    pairs: Iterable[CommitPair | tuple[int, int]],
    *,
    database_url: str | None = None,
) -> CommitResult:
    """Merge each pair in its own transaction and report per-batch counts.

    Pairs are processed sequentially in the given order. A failing pair is
    rolled back and recorded in ``skipped``/``errors``; the rest proceed.
    """

    result = run_isolated(
        (_as_pair(p) for p in pairs),
        lambda session, pair: merge_pair(session, pair),
        database_url=database_url,
    )
    logger.info("commit finished: %d merged, %d skipped", result.merged, result.skipped)
    return result


__all__ = [
    "lock_transactions",
    "merge_pair",
    "run_isolated",
    "commit_matches",
]
