"""Match orchestration: candidates -> score matrix -> optimal pairing -> preview.

Everything here is read-only and safe to re-run: calling ``match_accounts``
twice with no commit in between yields the same pairs and scores, and a
re-run after a partial commit simply sees fewer candidates.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from db.models.ledger import Account, AccountKind
from sqlalchemy import select
from sqlalchemy.orm import Session

from .assignment import solve_assignment
from .candidates import find_transfer_candidates
from .config import DEFAULT_SETTINGS, MatchingSettings
from .errors import NotFound
from .logging_setup import get_logger
from .models import (
    AccountPairPreview,
    DateRange,
    MatchPair,
    MatchPreview,
    MatchSummary,
    MatchTier,
    ScoreResult,
    TransferCandidate,
)
from .scoring import MAX_SCORE, classify_score, score_pair

logger = get_logger("transfer_matching.matching")


def match_candidates(
    candidates_a: Sequence[TransferCandidate],
    candidates_b: Sequence[TransferCandidate],
    *,
    settings: MatchingSettings | None = None,
) -> MatchPreview:
    """Pair two candidate lists optimally and package the result as a preview."""

    cfg = settings or DEFAULT_SETTINGS
    a_list = tuple(candidates_a)
    b_list = tuple(candidates_b)

    if not a_list or not b_list:
        return MatchPreview(
            matches=(),
            unmatched_a=a_list,
            unmatched_b=b_list,
            summary=MatchSummary(
                total_candidates_a=len(a_list),
                total_candidates_b=len(b_list),
                unmatched=len(a_list) + len(b_list),
            ),
        )

    results: list[list[ScoreResult]] = [
        [score_pair(a, b, settings=cfg) for b in b_list] for a in a_list
    ]
    score_matrix = [[r.score for r in row] for row in results]

    matches: list[MatchPair] = []
    matched_a: set[int] = set()
    matched_b: set[int] = set()
    for i, j in solve_assignment(score_matrix, max_score=MAX_SCORE):
        result = results[i][j]
        # Pairings forced by padding or weak signals are not matches.
        if result.score < cfg.min_score:
            continue
        matched_a.add(i)
        matched_b.add(j)
        matches.append(
            MatchPair(
                candidate_a=a_list[i],
                candidate_b=b_list[j],
                score=result.score,
                tier=classify_score(result.score, settings=cfg),
                reasons=result.reasons,
            )
        )

    matches.sort(key=lambda m: m.score, reverse=True)
    unmatched_a = tuple(c for i, c in enumerate(a_list) if i not in matched_a)
    unmatched_b = tuple(c for j, c in enumerate(b_list) if j not in matched_b)

    tiers = Counter(m.tier for m in matches)
    summary = MatchSummary(
        total_candidates_a=len(a_list),
        total_candidates_b=len(b_list),
        exact_matches=tiers[MatchTier.EXACT],
        probable_matches=tiers[MatchTier.PROBABLE],
        possible_matches=tiers[MatchTier.POSSIBLE],
        unmatched=len(unmatched_a) + len(unmatched_b),
    )
    return MatchPreview(
        matches=tuple(matches),
        unmatched_a=unmatched_a,
        unmatched_b=unmatched_b,
        summary=summary,
    )


def match_accounts(
    session: Session,
    account_a_id: int,
    account_b_id: int,
    date_range: DateRange | None = None,
    *,
    settings: MatchingSettings | None = None,
) -> MatchPreview:
    """Preview optimal transfer matches between two real accounts."""

    cfg = settings or DEFAULT_SETTINGS
    candidates_a = find_transfer_candidates(session, account_a_id, date_range, settings=cfg)
    candidates_b = find_transfer_candidates(session, account_b_id, date_range, settings=cfg)
    preview = match_candidates(candidates_a, candidates_b, settings=cfg)
    s = preview.summary
    logger.info(
        "accounts %s <-> %s: %d matches (%d exact, %d probable, %d possible), %d unmatched",
        account_a_id,
        account_b_id,
        len(preview.matches),
        s.exact_matches,
        s.probable_matches,
        s.possible_matches,
        s.unmatched,
    )
    return preview


def list_transfer_accounts(session: Session, *, include_archived: bool = False) -> list[Account]:
    stmt = select(Account).where(Account.kind == AccountKind.TRANSFER)
    if not include_archived:
        stmt = stmt.where(Account.archived.is_(False))
    return list(session.execute(stmt.order_by(Account.name, Account.id)).scalars().all())


def resolve_transfer_account(session: Session, ref: str | int) -> Account:
    """Resolve a real account by id or by (case-insensitive, trimmed) name.

    Raises ``NotFound`` when nothing or more than one account matches, or when
    the account is not a ``TRANSFER`` account.
    """

    text = str(ref).strip()
    if text.isdigit():
        account = session.get(Account, int(text))
        if account is None or account.kind is not AccountKind.TRANSFER:
            raise NotFound(f"no real account with id {text}")
        return account

    wanted = text.lower()
    hits = [
        a for a in list_transfer_accounts(session, include_archived=True)
        if a.name.strip().lower() == wanted
    ]
    if not hits:
        raise NotFound(f"no real account named {text!r}")
    if len(hits) > 1:
        raise NotFound(f"account name {text!r} is ambiguous; use an id")
    return hits[0]


def scan_account_pairs(
    session: Session,
    *,
    settings: MatchingSettings | None = None,
    date_range: DateRange | None = None,
) -> list[AccountPairPreview]:
    """Run ``match_accounts`` over every unordered pair of active real accounts.

    Only pairs with at least one match are returned. Nothing is committed;
    overlapping candidates across pairs are expected and left to the caller's
    priority policy.
    """

    cfg = settings or DEFAULT_SETTINGS
    accounts = list_transfer_accounts(session)
    # Extract once per account; each account takes part in len(accounts) - 1 pairs.
    by_account = {
        a.id: find_transfer_candidates(session, a.id, date_range, settings=cfg) for a in accounts
    }
    found: list[AccountPairPreview] = []
    for idx, a in enumerate(accounts):
        for b in accounts[idx + 1 :]:
            preview = match_candidates(by_account[a.id], by_account[b.id], settings=cfg)
            if preview.matches:
                found.append(
                    AccountPairPreview(
                        account_a_id=a.id,
                        account_a_name=a.name,
                        account_b_id=b.id,
                        account_b_name=b.name,
                        preview=preview,
                    )
                )
    logger.info("scanned %d real accounts: %d pairs with matches", len(accounts), len(found))
    return found


__all__ = [
    "match_candidates",
    "match_accounts",
    "list_transfer_accounts",
    "resolve_transfer_account",
    "scan_account_pairs",
]
