"""In-memory ``TransferCandidate`` factory for tests that need no database."""

from __future__ import annotations

import itertools
from datetime import date
from decimal import Decimal

from transfer_matching.models import TransferCandidate

_ids = itertools.count(1)


def make_candidate(
    amount: str,
    on: date,
    payee: str = "",
    *,
    account_id: int = 1,
    category: str = "Uncategorized",
    reconciled: bool = False,
) -> TransferCandidate:
    n = next(_ids)
    return TransferCandidate(
        transaction_id=n,
        real_posting_id=n * 10,
        real_account_id=account_id,
        category_posting_id=n * 10 + 1,
        category_account_id=99,
        category_account_name=category,
        amount=Decimal(amount),
        date=on,
        payee=payee,
        is_reconciled=reconciled,
    )
