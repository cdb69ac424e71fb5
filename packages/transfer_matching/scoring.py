"""Pairwise scoring of transfer candidates.

Three additive signals, each capped so no single one can carry a pair into
the "exact" tier without a plausible amount correlation:

- amount (0..50): equal magnitude with opposite signs is the expected shape;
- date proximity (0..30);
- transfer wording in the payees (0..20).
"""

from __future__ import annotations

from decimal import Decimal

from .config import DEFAULT_SETTINGS, MatchingSettings
from .models import MatchTier, ScoreResult, TransferCandidate

MAX_SCORE = 100

_CENT = Decimal("0.01")
_ONE_DOLLAR = Decimal("1.00")


def _amount_points(a: Decimal, b: Decimal) -> tuple[int, str | None]:
    diff = abs(abs(a) - abs(b))
    opposite = (a > 0 > b) or (a < 0 < b)
    if opposite and diff < _CENT:
        return 50, "Exact amount match with opposite signs"
    if diff < _CENT:
        return 30, "Exact amount match (same sign)"
    if diff < _ONE_DOLLAR:
        return 15, "Amount within $1"
    return 0, None


def _date_points(days: int) -> tuple[int, str | None]:
    if days == 0:
        return 30, "Same date"
    if days <= 1:
        return 25, "Date within 1 day"
    if days <= 3:
        return 15, "Date within 3 days"
    if days <= 7:
        return 5, "Date within 7 days"
    return 0, None


def _keyword_points(a_hit: bool, b_hit: bool) -> tuple[int, str | None]:
    if a_hit and b_hit:
        return 20, "Both payees contain transfer keywords"
    if a_hit or b_hit:
        return 10, "One payee contains transfer keyword"
    return 0, None


def score_pair(
    a: TransferCandidate,
    b: TransferCandidate,
    *,
    settings: MatchingSettings | None = None,
) -> ScoreResult:
    """Score how likely ``a`` and ``b`` are the two sides of one transfer."""

    cfg = settings or DEFAULT_SETTINGS
    parts = (
        _amount_points(a.amount, b.amount),
        _date_points(abs((a.date - b.date).days)),
        _keyword_points(cfg.payee_has_keyword(a.payee), cfg.payee_has_keyword(b.payee)),
    )
    total = sum(points for points, _ in parts)
    reasons = tuple(reason for _, reason in parts if reason is not None)
    return ScoreResult(score=total, reasons=reasons)


def classify_score(score: int, *, settings: MatchingSettings | None = None) -> MatchTier:
    cfg = settings or DEFAULT_SETTINGS
    if score >= cfg.exact_threshold:
        return MatchTier.EXACT
    if score >= cfg.probable_threshold:
        return MatchTier.PROBABLE
    return MatchTier.POSSIBLE


__all__ = [
    "MAX_SCORE",
    "score_pair",
    "classify_score",
]
