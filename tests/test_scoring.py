from __future__ import annotations

from datetime import date, timedelta

import pytest

from transfer_matching.config import MatchingSettings
from transfer_matching.models import MatchTier
from transfer_matching.scoring import classify_score, score_pair

from tests.helpers.candidates import make_candidate

D = date(2024, 3, 15)


def test_exact_amount_same_day_both_keywords_scores_100():
    a = make_candidate("-500.00", date(2025, 8, 20), "Savings Transfer", account_id=1)
    b = make_candidate("500.00", date(2025, 8, 20), "Transfer to Savings", account_id=2)

    result = score_pair(a, b)

    assert result.score == 100
    assert result.reasons == (
        "Exact amount match with opposite signs",
        "Same date",
        "Both payees contain transfer keywords",
    )
    assert classify_score(result.score) is MatchTier.EXACT


def test_one_day_apart_without_keywords_is_probable():
    a = make_candidate("-1500.00", D, "Payment", account_id=1)
    b = make_candidate("1500.00", D + timedelta(days=1), "Deposit", account_id=2)

    result = score_pair(a, b)

    assert result.score == 75
    assert result.reasons == ("Exact amount match with opposite signs", "Date within 1 day")
    assert classify_score(result.score) is MatchTier.PROBABLE


def test_unrelated_pair_scores_zero_with_no_reasons():
    a = make_candidate("-250.00", D, "Payment")
    b = make_candidate("200.00", D + timedelta(days=10), "Deposit")

    result = score_pair(a, b)

    assert result.score == 0
    assert result.reasons == ()


@pytest.mark.parametrize(
    ("a_amount", "b_amount", "points", "reason"),
    [
        ("200.00", "-200.00", 50, "Exact amount match with opposite signs"),
        ("200.00", "200.00", 30, "Exact amount match (same sign)"),
        ("200.00", "-199.50", 15, "Amount within $1"),
        ("200.00", "-201.00", 0, None),
    ],
)
def test_amount_component(a_amount, b_amount, points, reason):
    far = D + timedelta(days=30)
    result = score_pair(make_candidate(a_amount, D), make_candidate(b_amount, far))

    assert result.score == points
    assert result.reasons == ((reason,) if reason else ())


@pytest.mark.parametrize(
    ("days", "points"),
    [(0, 30), (1, 25), (2, 15), (3, 15), (4, 5), (7, 5), (8, 0)],
)
def test_date_component(days, points):
    # Amounts far apart so only the date contributes.
    a = make_candidate("10.00", D)
    b = make_candidate("900.00", D - timedelta(days=days))

    assert score_pair(a, b).score == points


def test_single_keyword_gives_ten_points():
    a = make_candidate("10.00", D, "TFR 12345")
    b = make_candidate("900.00", D + timedelta(days=30), "Salary")

    result = score_pair(a, b)

    assert result.score == 10
    assert result.reasons == ("One payee contains transfer keyword",)


def test_score_is_symmetric_and_bounded():
    a = make_candidate("200.00", D, "Transfer")
    b = make_candidate("-200.40", D + timedelta(days=2), "Deposit")

    ab, ba = score_pair(a, b), score_pair(b, a)

    assert ab.score == ba.score
    assert 0 <= ab.score <= 100


def test_custom_keywords_change_the_keyword_signal():
    settings = MatchingSettings(transfer_keywords=("sweep",))
    a = make_candidate("10.00", D, "Nightly SWEEP")
    b = make_candidate("900.00", D + timedelta(days=30), "Transfer")

    assert score_pair(a, b, settings=settings).score == 10
    assert score_pair(a, b).score == 10  # default list matches "Transfer" instead


@pytest.mark.parametrize(
    ("score", "tier"),
    [
        (100, MatchTier.EXACT),
        (80, MatchTier.EXACT),
        (79, MatchTier.PROBABLE),
        (60, MatchTier.PROBABLE),
        (59, MatchTier.POSSIBLE),
        (40, MatchTier.POSSIBLE),
    ],
)
def test_classify_score_boundaries(score, tier):
    assert classify_score(score) is tier


def test_classify_score_uses_configured_thresholds():
    settings = MatchingSettings(min_score=30, probable_threshold=50, exact_threshold=90)

    assert classify_score(85, settings=settings) is MatchTier.PROBABLE
    assert classify_score(90, settings=settings) is MatchTier.EXACT
    assert classify_score(49, settings=settings) is MatchTier.POSSIBLE
