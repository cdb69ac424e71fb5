"""Error taxonomy for transfer matching and merging.

Every error is local to one pair: batch operations catch these per pair,
record them as ``skipped`` with a message, and continue with the rest.
Nothing is retried automatically.
"""

from __future__ import annotations


class TransferMatchError(Exception):
    """Base class for all per-pair failures."""


class NotFound(TransferMatchError):
    """A candidate id no longer resolves to a live transaction."""


class InvariantViolation(TransferMatchError):
    """A merge would self-transfer or touch a reconciled posting."""


class StructuralMismatch(TransferMatchError):
    """A transaction lacks the expected real/category posting shape."""


class StoreFailure(TransferMatchError):
    """The backing store rejected a mutation; the pair was rolled back."""


__all__ = [
    "TransferMatchError",
    "NotFound",
    "InvariantViolation",
    "StructuralMismatch",
    "StoreFailure",
]
