"""Packaging match previews for human review and for automated policies."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import CommitPair, MatchPair, MatchPreview, MatchTier, TransferCandidate

_TIER_STYLE = {
    MatchTier.EXACT: "green",
    MatchTier.PROBABLE: "yellow",
    MatchTier.POSSIBLE: "red",
}


def candidate_to_dict(c: TransferCandidate) -> dict[str, Any]:
    return {
        "transaction_id": c.transaction_id,
        "account_id": c.real_account_id,
        "date": c.date.isoformat(),
        "amount": f"{c.amount:.2f}",
        "payee": c.payee,
        "category": c.category_account_name,
        "reconciled": c.is_reconciled,
    }


def pair_to_dict(m: MatchPair) -> dict[str, Any]:
    return {
        "score": m.score,
        "tier": m.tier.value,
        "reasons": list(m.reasons),
        "a": candidate_to_dict(m.candidate_a),
        "b": candidate_to_dict(m.candidate_b),
    }


def preview_to_dict(preview: MatchPreview) -> dict[str, Any]:
    """JSON-ready view of a preview (amounts as 2dp strings, dates ISO)."""

    s = preview.summary
    return {
        "matches": [pair_to_dict(m) for m in preview.matches],
        "unmatched_a": [candidate_to_dict(c) for c in preview.unmatched_a],
        "unmatched_b": [candidate_to_dict(c) for c in preview.unmatched_b],
        "summary": {
            "total_candidates_a": s.total_candidates_a,
            "total_candidates_b": s.total_candidates_b,
            "exact_matches": s.exact_matches,
            "probable_matches": s.probable_matches,
            "possible_matches": s.possible_matches,
            "unmatched": s.unmatched,
        },
    }


def _side(c: TransferCandidate, width: int = 40) -> str:
    payee = c.payee if len(c.payee) <= width else c.payee[: width - 1] + "…"
    lock = " [dim](reconciled)[/dim]" if c.is_reconciled else ""
    return escape(f"{c.date.isoformat()} {payee!r} ({c.amount:.2f})") + lock


def build_preview_table(preview: MatchPreview, *, title: str | None = None) -> Table:
    table = Table(title=escape(title) if title else None, show_lines=False)
    table.add_column("Tier")
    table.add_column("Score", justify="right")
    table.add_column("A")
    table.add_column("B")
    table.add_column("Reasons")
    for m in preview.matches:
        style = _TIER_STYLE[m.tier]
        table.add_row(
            f"[{style}]{m.tier.value}[/{style}]",
            str(m.score),
            _side(m.candidate_a),
            _side(m.candidate_b),
            ", ".join(m.reasons),
        )
    return table


def render_preview(preview: MatchPreview, console: Console, *, title: str | None = None) -> None:
    """Print the matches table followed by a one-line summary."""

    s = preview.summary
    if preview.matches:
        console.print(build_preview_table(preview, title=title))
    elif title:
        console.print(f"[bold]{escape(title)}[/bold]: no matches")
    console.print(
        f"candidates: {s.total_candidates_a} / {s.total_candidates_b}  "
        f"exact: {s.exact_matches}  probable: {s.probable_matches}  "
        f"possible: {s.possible_matches}  unmatched: {s.unmatched}"
    )


def select_pairs(
    matches: Iterable[MatchPair],
    *,
    min_score: int,
) -> list[CommitPair]:
    """Caller-level policy: pick mergeable matches scoring at least ``min_score``.

    Matches involving a reconciled candidate are reported in previews but are
    never selected for commit.
    """

    return [
        CommitPair(m.candidate_a.transaction_id, m.candidate_b.transaction_id)
        for m in matches
        if m.score >= min_score and m.is_mergeable
    ]


__all__ = [
    "candidate_to_dict",
    "pair_to_dict",
    "preview_to_dict",
    "build_preview_table",
    "render_preview",
    "select_pairs",
]
