"""Transfer reconciliation for a double-entry ledger.

Finds the two imported halves of one inter-account movement, pairs them
optimally and, on request, merges each pair into a single balanced
transaction. Only symbol re-exports live here.
"""

from .api import *  # noqa: F403
from .api import __all__ as _api_all
from .errors import (
    InvariantViolation,
    NotFound,
    StoreFailure,
    StructuralMismatch,
    TransferMatchError,
)
from .models import (
    AccountPairPreview,
    CommitPair,
    CommitResult,
    DateRange,
    MatchPair,
    MatchPreview,
    MatchSummary,
    MatchTier,
    ScoreResult,
    TransferCandidate,
)

__all__ = [
    *_api_all,
    "AccountPairPreview",
    "CommitPair",
    "CommitResult",
    "DateRange",
    "InvariantViolation",
    "MatchPair",
    "MatchPreview",
    "MatchSummary",
    "MatchTier",
    "NotFound",
    "ScoreResult",
    "StoreFailure",
    "StructuralMismatch",
    "TransferCandidate",
    "TransferMatchError",
]
