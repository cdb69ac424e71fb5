from __future__ import annotations

from datetime import date

from rich.console import Console

from transfer_matching.models import MatchPair, MatchPreview, MatchSummary, MatchTier
from transfer_matching.preview import preview_to_dict, render_preview, select_pairs

from tests.helpers.candidates import make_candidate


def _pair(score: int, *, tier=MatchTier.PROBABLE, reconciled_b=False, reasons=()) -> MatchPair:
    a = make_candidate("-300.00", date(2024, 10, 1), "Transfer to Saver", account_id=1)
    b = make_candidate(
        "300.00",
        date(2024, 10, 2),
        "Transfer from Checking",
        account_id=2,
        category="Transfer In",
        reconciled=reconciled_b,
    )
    return MatchPair(a, b, score, tier, tuple(reasons))


def _preview(*matches: MatchPair, unmatched_b=()) -> MatchPreview:
    summary = MatchSummary(
        total_candidates_a=len(matches),
        total_candidates_b=len(matches) + len(unmatched_b),
        exact_matches=sum(m.tier is MatchTier.EXACT for m in matches),
        probable_matches=sum(m.tier is MatchTier.PROBABLE for m in matches),
        possible_matches=sum(m.tier is MatchTier.POSSIBLE for m in matches),
        unmatched=len(unmatched_b),
    )
    return MatchPreview(tuple(matches), (), tuple(unmatched_b), summary)


def test_select_pairs_threshold_is_inclusive():
    below, at, above = _pair(64), _pair(65), _pair(66)

    selected = select_pairs([below, at, above], min_score=65)

    assert [p.candidate_a_id for p in selected] == [
        at.candidate_a.transaction_id,
        above.candidate_a.transaction_id,
    ]
    assert selected[0].candidate_b_id == at.candidate_b.transaction_id


def test_select_pairs_skips_reconciled_matches():
    locked = _pair(100, tier=MatchTier.EXACT, reconciled_b=True)
    open_ = _pair(100, tier=MatchTier.EXACT)

    selected = select_pairs([locked, open_], min_score=65)

    assert len(selected) == 1
    assert selected[0].candidate_b_id == open_.candidate_b.transaction_id


def test_preview_to_dict_formats_fields():
    m = _pair(100, tier=MatchTier.EXACT, reasons=("exact amount", "same day"))
    leftover = make_candidate("12.5", date(2024, 10, 9), "Interest", account_id=2)

    payload = preview_to_dict(_preview(m, unmatched_b=[leftover]))

    (row,) = payload["matches"]
    assert row["score"] == 100
    assert row["tier"] == "exact"
    assert row["reasons"] == ["exact amount", "same day"]
    assert row["a"]["amount"] == "-300.00"
    assert row["a"]["date"] == "2024-10-01"
    assert row["b"]["category"] == "Transfer In"
    assert row["b"]["reconciled"] is False
    assert payload["unmatched_a"] == []
    assert payload["unmatched_b"][0]["amount"] == "12.50"
    assert payload["summary"] == {
        "total_candidates_a": 1,
        "total_candidates_b": 2,
        "exact_matches": 1,
        "probable_matches": 0,
        "possible_matches": 0,
        "unmatched": 1,
    }


def test_render_preview_prints_table_and_summary():
    console = Console(record=True, width=200)
    preview = _preview(
        _pair(100, tier=MatchTier.EXACT, reasons=("exact amount",)),
        _pair(70, reconciled_b=True),
    )

    render_preview(preview, console, title="Everyday Checking <-> Online Saver")

    text = console.export_text()
    assert "Everyday Checking <-> Online Saver" in text
    assert "exact" in text
    assert "100" in text
    assert "'Transfer to Saver' (-300.00)" in text
    assert "(reconciled)" in text
    assert "candidates: 2 / 2  exact: 1  probable: 1  possible: 0  unmatched: 0" in text


def test_render_preview_without_matches_names_the_title():
    console = Console(record=True, width=200)

    render_preview(_preview(), console, title="Everyday Checking <-> Online Saver")

    text = console.export_text()
    assert "Everyday Checking <-> Online Saver: no matches" in text
    assert "candidates: 0 / 0" in text
