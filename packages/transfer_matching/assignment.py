"""Optimal one-to-one assignment (Kuhn-Munkres / Hungarian algorithm).

Greedy nearest-score pairing can lock in a mediocre pair early and strand a
better one later, which matters when the same amount recurs (monthly interest,
fixed savings sweeps) and only dates and wording tell the entries apart. The
solver here finds the globally best pairing instead.

``solve_assignment`` is the entry point for callers: it takes an N x M score
matrix (higher is better), converts it to costs, pads it to a square and
returns only the pairs inside the real N x M region. ``hungarian`` is the
underlying square minimum-cost solver, backed by SciPy's shortest augmenting
path implementation.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from scipy.optimize import linear_sum_assignment

from .scoring import MAX_SCORE


def hungarian(cost: Sequence[Sequence[float]]) -> list[int]:
    """Solve a square minimum-cost assignment problem in O(n^3).

    Returns ``assignment`` where ``assignment[row]`` is the column assigned to
    ``row``.
    """

    n = len(cost)
    if n == 0:
        return []
    if any(len(row) != n for row in cost):
        raise ValueError("hungarian() requires a square cost matrix")

    rows, cols = linear_sum_assignment(np.asarray(cost, dtype=float))
    assignment = [-1] * n
    for i, j in zip(rows, cols, strict=True):
        assignment[int(i)] = int(j)
    return assignment


def solve_assignment(
    scores: Sequence[Sequence[int]],
    *,
    max_score: int = MAX_SCORE,
) -> list[tuple[int, int]]:
    """Return the score-maximizing one-to-one pairing as ``(row, col)`` tuples.

    ``scores`` is N x M with values in ``[0, max_score]``. Padding cells cost
    ``max_score`` (the same as a zero score), so a row that only pairs with
    padding is simply left out of the result. Pairs are ordered by row.
    """

    n_rows = len(scores)
    if n_rows == 0:
        return []
    n_cols = len(scores[0])
    if any(len(row) != n_cols for row in scores):
        raise ValueError("score matrix rows must all have the same length")
    if n_cols == 0:
        return []

    matrix = np.asarray(scores, dtype=float)
    if matrix.min() < 0 or matrix.max() > max_score:
        raise ValueError(f"scores must lie in [0, {max_score}]")

    size = max(n_rows, n_cols)
    cost = np.full((size, size), float(max_score))
    cost[:n_rows, :n_cols] = max_score - matrix

    assignment = hungarian(cost.tolist())
    return [(i, j) for i, j in enumerate(assignment) if i < n_rows and 0 <= j < n_cols]


__all__ = [
    "hungarian",
    "solve_assignment",
]
