from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

from db import Posting, Transaction, TransactionStatus, TransferMerge
from db.client import session_scope
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

import transfer_matching.commit as commit_mod
from transfer_matching.commit import commit_matches, merge_pair
from transfer_matching.models import CommitPair

from tests.helpers.db import account_total, add_two_leg, count_transactions, ledger_total


def _seed_pair(ledger, *, a_amount="200.00", b_amount="-200.00", a_payee="Transfer to Saver",
               b_payee="", a_date=date(2024, 5, 2), b_date=date(2024, 5, 1), **a_kwargs):
    with session_scope(database_url=ledger.url) as s:
        a = add_two_leg(
            s,
            real_account_id=ledger.checking,
            category_account_id=ledger.uncategorized,
            amount=a_amount,
            on=a_date,
            payee=a_payee,
            **a_kwargs,
        )
        b = add_two_leg(
            s,
            real_account_id=ledger.savings,
            category_account_id=ledger.transfer_in,
            amount=b_amount,
            on=b_date,
            payee=b_payee,
            cleared=True,
            is_business=True,
        )
    return a, b


def _postings(url, tx_id):
    with session_scope(database_url=url) as s:
        tx = s.get(Transaction, tx_id)
        if tx is None:
            return None
        return sorted((p.account_id, p.amount) for p in tx.postings)


def test_merge_collapses_pair_into_one_balanced_transaction(ledger_db):
    a, b = _seed_pair(ledger_db)
    checking_before = account_total(ledger_db.url, ledger_db.checking)
    savings_before = account_total(ledger_db.url, ledger_db.savings)
    when = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    with session_scope(database_url=ledger_db.url) as s:
        record = merge_pair(s, CommitPair(a, b), now=when)
        record_id = record.id

    assert count_transactions(ledger_db.url) == 1
    assert _postings(ledger_db.url, b) is None
    assert _postings(ledger_db.url, a) == sorted(
        [(ledger_db.checking, Decimal("200.00")), (ledger_db.savings, Decimal("-200.00"))]
    )
    assert ledger_total(ledger_db.url) == Decimal("0.00")
    assert account_total(ledger_db.url, ledger_db.checking) == checking_before
    assert account_total(ledger_db.url, ledger_db.savings) == savings_before
    assert account_total(ledger_db.url, ledger_db.uncategorized) == Decimal("0.00")
    assert account_total(ledger_db.url, ledger_db.transfer_in) == Decimal("0.00")

    with session_scope(database_url=ledger_db.url) as s:
        tx = s.get(Transaction, a)
        assert tx.date == date(2024, 5, 1)
        assert tx.payee == "Transfer to Saver"
        created = next(p for p in tx.postings if p.account_id == ledger_db.savings)
        assert created.cleared is True
        assert created.is_business is True

        rec = s.get(TransferMerge, record_id)
        assert rec.surviving_transaction_id == a
        assert rec.absorbed_transaction_id == b
        assert rec.absorbed_amount == Decimal("-200.00")
        assert rec.absorbed_category_account_id == ledger_db.transfer_in
        assert rec.survivor_original_amount == Decimal("200.00")
        assert rec.survivor_original_date == date(2024, 5, 2)
        assert rec.created_posting_id == created.id
        assert rec.reversed_at is None


def test_absorbed_side_amount_wins_on_mismatch(ledger_db):
    a, b = _seed_pair(ledger_db, a_amount="200.50")

    result = commit_matches([CommitPair(a, b)], database_url=ledger_db.url)

    assert (result.merged, result.skipped) == (1, 0)
    assert _postings(ledger_db.url, a) == sorted(
        [(ledger_db.checking, Decimal("200.00")), (ledger_db.savings, Decimal("-200.00"))]
    )
    assert ledger_total(ledger_db.url) == Decimal("0.00")


def test_empty_payee_falls_back_to_other_side_then_default(ledger_db):
    a, b = _seed_pair(ledger_db, a_payee="", b_payee="Deposit from Checking")
    commit_matches([(a, b)], database_url=ledger_db.url)
    with session_scope(database_url=ledger_db.url) as s:
        assert s.get(Transaction, a).payee == "Deposit from Checking"

    c, d = _seed_pair(ledger_db, a_payee="", b_payee="")
    commit_matches([(c, d)], database_url=ledger_db.url)
    with session_scope(database_url=ledger_db.url) as s:
        assert s.get(Transaction, c).payee == "Transfer"


def test_self_transfer_is_skipped(ledger_db):
    with session_scope(database_url=ledger_db.url) as s:
        a = add_two_leg(
            s,
            real_account_id=ledger_db.checking,
            category_account_id=ledger_db.uncategorized,
            amount="10.00",
            on=date(2024, 1, 1),
        )
        b = add_two_leg(
            s,
            real_account_id=ledger_db.checking,
            category_account_id=ledger_db.uncategorized,
            amount="-10.00",
            on=date(2024, 1, 1),
        )

    result = commit_matches([(a, b)], database_url=ledger_db.url)

    assert (result.merged, result.skipped) == (0, 1)
    assert "InvariantViolation" in result.errors[0]
    assert count_transactions(ledger_db.url) == 2


def test_reconciled_pair_is_skipped_and_untouched(ledger_db):
    a, b = _seed_pair(ledger_db, reconciled=True)

    result = commit_matches([(a, b)], database_url=ledger_db.url)

    assert result.skipped == 1
    assert "reconciled" in result.errors[0]
    assert _postings(ledger_db.url, a) == sorted(
        [(ledger_db.checking, Decimal("200.00")), (ledger_db.uncategorized, Decimal("-200.00"))]
    )
    assert count_transactions(ledger_db.url) == 2


def test_missing_and_identical_ids_are_skipped(ledger_db):
    a, _ = _seed_pair(ledger_db)

    result = commit_matches([(a, 9999), (a, a)], database_url=ledger_db.url)

    assert (result.merged, result.skipped) == (0, 2)
    assert "NotFound" in result.errors[0]
    assert "InvariantViolation" in result.errors[1]


def test_void_or_multi_leg_transactions_are_structural_mismatches(ledger_db):
    a, b = _seed_pair(ledger_db)
    with session_scope(database_url=ledger_db.url) as s:
        s.get(Transaction, b).status = TransactionStatus.VOID
        split = Transaction(
            date=date(2024, 5, 1),
            payee="Split",
            postings=[
                Posting(account_id=ledger_db.savings, amount=Decimal("-200.00")),
                Posting(account_id=ledger_db.uncategorized, amount=Decimal("150.00")),
                Posting(account_id=ledger_db.groceries, amount=Decimal("50.00")),
            ],
        )
        s.add(split)
        s.flush()
        split_id = split.id

    result = commit_matches([(a, b), (a, split_id)], database_url=ledger_db.url)

    assert result.skipped == 2
    assert all("StructuralMismatch" in e for e in result.errors)
    assert count_transactions(ledger_db.url) == 3


def test_batch_continues_past_failures_in_order(ledger_db):
    a1, b1 = _seed_pair(ledger_db)
    a2, b2 = _seed_pair(ledger_db, a_date=date(2024, 5, 9), b_date=date(2024, 5, 9))

    result = commit_matches(
        [(a1, 424242), (a1, b1), (a2, b2), (a1, b1)], database_url=ledger_db.url
    )

    assert (result.merged, result.skipped) == (2, 2)
    assert result.errors[0].startswith(f"{a1}<-424242: NotFound")
    # The repeated pair finds its absorbed side already gone.
    assert result.errors[1].startswith(f"{a1}<-{b1}: NotFound")
    assert count_transactions(ledger_db.url) == 2
    assert ledger_total(ledger_db.url) == Decimal("0.00")


def test_store_failure_rolls_the_pair_back(ledger_db, monkeypatch):
    a, b = _seed_pair(ledger_db)
    real_merge = commit_mod.merge_pair

    def failing_merge(session, pair, **kwargs):
        real_merge(session, pair, **kwargs)
        raise OperationalError("UPDATE lg_postings", {}, Exception("disk I/O error"))

    monkeypatch.setattr(commit_mod, "merge_pair", failing_merge)

    result = commit_matches([(a, b)], database_url=ledger_db.url)

    assert (result.merged, result.skipped) == (0, 1)
    assert "StoreFailure" in result.errors[0]
    assert count_transactions(ledger_db.url) == 2
    assert _postings(ledger_db.url, a) == sorted(
        [(ledger_db.checking, Decimal("200.00")), (ledger_db.uncategorized, Decimal("-200.00"))]
    )
    with session_scope(database_url=ledger_db.url) as s:
        assert s.execute(select(TransferMerge)).scalars().all() == []
