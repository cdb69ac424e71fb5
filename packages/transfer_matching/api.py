"""Stable import surface for ``transfer_matching``.

Read-side operations (candidate extraction, scoring, assignment, previews)
never mutate the ledger. Write-side operations (``commit_matches``,
``unmerge_transfers``) run one database transaction per pair and report a
``CommitResult``.
"""

from __future__ import annotations

from .assignment import hungarian, solve_assignment
from .candidates import find_transfer_candidates, split_postings
from .commit import commit_matches, merge_pair
from .config import DEFAULT_SETTINGS, MatchingSettings, load_settings
from .matching import (
    list_transfer_accounts,
    match_accounts,
    match_candidates,
    resolve_transfer_account,
    scan_account_pairs,
)
from .preview import preview_to_dict, render_preview, select_pairs
from .scoring import MAX_SCORE, classify_score, score_pair
from .unmerge import list_merges, merges_for_transaction, unmerge_transfer, unmerge_transfers

__all__ = [
    "DEFAULT_SETTINGS",
    "MAX_SCORE",
    "MatchingSettings",
    "classify_score",
    "commit_matches",
    "find_transfer_candidates",
    "hungarian",
    "list_merges",
    "list_transfer_accounts",
    "load_settings",
    "match_accounts",
    "match_candidates",
    "merge_pair",
    "merges_for_transaction",
    "preview_to_dict",
    "render_preview",
    "resolve_transfer_account",
    "scan_account_pairs",
    "score_pair",
    "select_pairs",
    "solve_assignment",
    "split_postings",
    "unmerge_transfer",
    "unmerge_transfers",
]
