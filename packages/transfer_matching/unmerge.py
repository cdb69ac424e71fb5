"""Reverse previously committed transfer merges.

The ``lg_transfer_merges`` record keeps everything the merge overwrote, so a
reversal restores both original transactions exactly: the survivor gets back
its placeholder category posting, amount, payee and date, and the absorbed
side is recreated with its memo, metadata, real posting and a balancing
posting on its original category account (flags included). The absorbed
transaction comes back under a new id.

A merge is only reversed while the surviving transaction still looks exactly
as the merge left it; later edits or reconciliation block the reversal.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from db.models.ledger import Posting, Transaction, TransferMerge
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from .commit import lock_transactions, run_isolated
from .errors import InvariantViolation, NotFound, StructuralMismatch
from .logging_setup import get_logger
from .models import CommitResult

logger = get_logger("transfer_matching.unmerge")


def list_merges(session: Session, *, include_reversed: bool = False) -> list[TransferMerge]:
    stmt = select(TransferMerge)
    if not include_reversed:
        stmt = stmt.where(TransferMerge.reversed_at.is_(None))
    stmt = stmt.order_by(TransferMerge.merged_at, TransferMerge.id)
    return list(session.execute(stmt).scalars().all())


def merges_for_transaction(session: Session, transaction_id: int) -> list[TransferMerge]:
    """Return merge records where ``transaction_id`` survived or was absorbed."""

    stmt = (
        select(TransferMerge)
        .where(
            or_(
                TransferMerge.surviving_transaction_id == transaction_id,
                TransferMerge.absorbed_transaction_id == transaction_id,
            )
        )
        .order_by(TransferMerge.merged_at, TransferMerge.id)
    )
    return list(session.execute(stmt).scalars().all())


def unmerge_transfer(
    session: Session,
    merge_id: int,
    *,
    now: datetime | None = None,
) -> int:
    """Reverse merge ``merge_id`` inside ``session`` and return the recreated id.

    The caller owns the transaction and must roll back on any exception.
    """

    record = session.get(TransferMerge, merge_id, with_for_update=True)
    if record is None:
        raise NotFound(f"merge record {merge_id} not found")
    if record.reversed_at is not None:
        raise InvariantViolation(f"merge record {merge_id} was already reversed")
    if record.absorbed_category_account_id is None:
        raise StructuralMismatch(f"merge record {merge_id} has no category account to restore")

    tx_a = lock_transactions(session, [record.surviving_transaction_id]).get(
        record.surviving_transaction_id
    )
    if tx_a is None:
        raise NotFound(f"transaction {record.surviving_transaction_id} not found")

    created = next((p for p in tx_a.postings if p.id == record.created_posting_id), None)
    if created is None or len(tx_a.postings) != 2:
        raise StructuralMismatch(
            f"transaction {tx_a.id} no longer has the shape left by merge {merge_id}"
        )
    a_real = next(p for p in tx_a.postings if p.id != created.id)
    if created.amount != record.absorbed_amount or a_real.amount != -record.absorbed_amount:
        raise StructuralMismatch(f"transaction {tx_a.id} was edited after merge {merge_id}")
    if a_real.reconciled or created.reconciled:
        raise InvariantViolation(f"transaction {tx_a.id} has reconciled postings")

    # Restore the survivor.
    tx_a.postings.remove(created)
    a_real.amount = record.survivor_original_amount
    tx_a.postings.append(
        Posting(
            account_id=record.survivor_category_account_id,
            amount=-record.survivor_original_amount,
            is_business=record.survivor_category_is_business,
            cleared=record.survivor_category_cleared,
        )
    )
    tx_a.payee = record.survivor_original_payee
    tx_a.date = record.survivor_original_date

    # Recreate the absorbed side.
    tx_b = Transaction(
        date=record.absorbed_date,
        payee=record.absorbed_payee,
        memo=record.absorbed_memo,
        metadata_json=record.absorbed_metadata_json,
        postings=[
            Posting(
                account_id=record.absorbed_account_id,
                amount=record.absorbed_amount,
                is_business=record.absorbed_is_business,
                cleared=record.absorbed_cleared,
            ),
            Posting(
                account_id=record.absorbed_category_account_id,
                amount=-record.absorbed_amount,
                is_business=record.absorbed_category_is_business,
                cleared=record.absorbed_category_cleared,
            ),
        ],
    )
    session.add(tx_b)
    record.reversed_at = now or datetime.now(UTC)
    session.flush()

    for tx in (tx_a, tx_b):
        if not tx.is_balanced():
            raise InvariantViolation(f"transaction {tx.id} does not balance after unmerge")

    logger.info(
        "reversed merge %s: transaction %s restored, absorbed side recreated as %s",
        merge_id,
        tx_a.id,
        tx_b.id,
    )
    return tx_b.id


def unmerge_transfers(
    merge_ids: Iterable[int],
    *,
    database_url: str | None = None,
) -> CommitResult:
    """Reverse each merge in its own transaction; failures are skipped, not retried."""

    result = run_isolated(
        merge_ids,
        lambda session, merge_id: unmerge_transfer(session, merge_id),
        database_url=database_url,
        label="merge",
    )
    logger.info("unmerge finished: %d reversed, %d skipped", result.merged, result.skipped)
    return result


__all__ = [
    "list_merges",
    "merges_for_transaction",
    "unmerge_transfer",
    "unmerge_transfers",
]
