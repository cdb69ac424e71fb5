from __future__ import annotations

import itertools
import random

import pytest

from transfer_matching.assignment import hungarian, solve_assignment


def _total(scores, pairs):
    return sum(scores[i][j] for i, j in pairs)


def test_hungarian_minimizes_cost():
    cost = [
        [4, 1, 3],
        [2, 0, 5],
        [3, 2, 2],
    ]

    assert hungarian(cost) == [1, 0, 2]


def test_hungarian_rejects_non_square_input():
    with pytest.raises(ValueError):
        hungarian([[1, 2], [3, 4], [5, 6]])


def test_optimal_pairing_beats_greedy():
    # Greedy would take (0, 0)=100 first and strand row 1 with nothing.
    scores = [
        [100, 90, 0],
        [90, 0, 0],
        [0, 0, 0],
    ]

    pairs = solve_assignment(scores)

    assert (0, 1) in pairs
    assert (1, 0) in pairs
    assert _total(scores, pairs) == 180


def test_more_columns_than_rows():
    scores = [
        [10, 80, 20],
        [70, 60, 0],
    ]

    pairs = solve_assignment(scores)

    assert pairs == [(0, 1), (1, 0)]


def test_more_rows_than_columns_leaves_rows_unpaired():
    pairs = solve_assignment([[10], [90], [40]])

    assert pairs == [(1, 0)]


def test_each_row_and_column_used_at_most_once():
    scores = [[50, 50, 50], [50, 50, 50]]

    pairs = solve_assignment(scores)

    assert len({i for i, _ in pairs}) == len(pairs) == 2
    assert len({j for _, j in pairs}) == len(pairs)


@pytest.mark.parametrize("scores", [[], [[]]])
def test_empty_input(scores):
    assert solve_assignment(scores) == []


def test_ragged_matrix_is_rejected():
    with pytest.raises(ValueError):
        solve_assignment([[1, 2], [3]])


def test_out_of_range_scores_are_rejected():
    with pytest.raises(ValueError):
        solve_assignment([[101]])
    with pytest.raises(ValueError):
        solve_assignment([[-1]])


def test_matches_brute_force_on_small_matrices():
    rng = random.Random(7)
    for _ in range(40):
        n_rows = rng.randint(1, 5)
        n_cols = rng.randint(1, 5)
        scores = [[rng.randint(0, 100) for _ in range(n_cols)] for _ in range(n_rows)]

        pairs = solve_assignment(scores)

        if n_rows <= n_cols:
            best = max(
                sum(scores[i][cols[i]] for i in range(n_rows))
                for cols in itertools.permutations(range(n_cols), n_rows)
            )
        else:
            best = max(
                sum(scores[rows[j]][j] for j in range(n_cols))
                for rows in itertools.permutations(range(n_rows), n_cols)
            )
        assert _total(scores, pairs) == best
