"""Derived (never persisted) data shapes for transfer matching.

Candidates are snapshots of live ledger rows taken by the extractor; match
pairs and previews only exist for the duration of one matching run. Amounts are
``Decimal`` with two decimal places, dates are calendar ``date`` values.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive date window; either bound may be open (``None``)."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    def padded(self, days: int = 1) -> DateRange:
        """Widen both bounds by ``days`` to absorb timezone date shifts between feeds."""

        delta = timedelta(days=days)
        return DateRange(
            start=self.start - delta if self.start is not None else None,
            end=self.end + delta if self.end is not None else None,
        )

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True, slots=True)
class TransferCandidate:
    """One unresolved side of a suspected transfer.

    ``real_*`` fields describe the posting on the real (``TRANSFER``) account
    being scanned; ``category_*`` fields describe the placeholder posting on a
    ``CATEGORY`` account that stands in for the unrecognized other side.
    """

    transaction_id: int
    real_posting_id: int
    real_account_id: int
    category_posting_id: int
    category_account_id: int
    category_account_name: str
    amount: Decimal
    date: date
    payee: str
    is_reconciled: bool = False
    cleared: bool = False


class MatchTier(enum.Enum):
    EXACT = "exact"
    PROBABLE = "probable"
    POSSIBLE = "possible"


@dataclass(frozen=True, slots=True)
class ScoreResult:
    score: int
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MatchPair:
    candidate_a: TransferCandidate
    candidate_b: TransferCandidate
    score: int
    tier: MatchTier
    reasons: tuple[str, ...] = ()

    @property
    def is_mergeable(self) -> bool:
        return not (self.candidate_a.is_reconciled or self.candidate_b.is_reconciled)


@dataclass(frozen=True, slots=True)
class MatchSummary:
    total_candidates_a: int
    total_candidates_b: int
    exact_matches: int = 0
    probable_matches: int = 0
    possible_matches: int = 0
    unmatched: int = 0


@dataclass(frozen=True, slots=True)
class MatchPreview:
    """Reviewable result of one matching run between two accounts."""

    matches: tuple[MatchPair, ...]
    unmatched_a: tuple[TransferCandidate, ...]
    unmatched_b: tuple[TransferCandidate, ...]
    summary: MatchSummary


@dataclass(frozen=True, slots=True)
class AccountPairPreview:
    account_a_id: int
    account_a_name: str
    account_b_id: int
    account_b_name: str
    preview: MatchPreview


@dataclass(frozen=True, slots=True)
class CommitPair:
    """Ids of the transaction to keep (A) and the one to absorb (B)."""

    candidate_a_id: int
    candidate_b_id: int

    def __str__(self) -> str:
        return f"{self.candidate_a_id}<-{self.candidate_b_id}"


@dataclass(slots=True)
class CommitResult:
    merged: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


__all__ = [
    "DateRange",
    "TransferCandidate",
    "MatchTier",
    "ScoreResult",
    "MatchPair",
    "MatchSummary",
    "MatchPreview",
    "AccountPairPreview",
    "CommitPair",
    "CommitResult",
]
