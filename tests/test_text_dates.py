"""
Tests for text normalization and date/era/year extraction.
"""

from datetime import datetime

import pytest

from ir_survey.dates import (
    DateCandidate,
    convert_era_year,
    extract_date_candidates,
    extract_years,
    find_most_recent_date,
    minimum_recent_year,
    most_recent_date_in_window,
    recency_window_start,
)
from ir_survey.text import clean_text, first_keyword_in, normalize_digits


def dates_of(text):
    return sorted(c.date for c in extract_date_candidates(text))


class TestTextNormalizer:
    """Tests for digit folding and whitespace collapsing."""

    def test_fullwidth_digits_become_ascii(self):
        """Full-width digits map to ASCII digits."""
        assert normalize_digits("２０２４年９月") == "2024年9月"

    def test_whitespace_runs_collapse_and_trim(self):
        """Whitespace runs become one space; ends are trimmed."""
        assert clean_text("  社長\n\n メッセージ\t 2024 ") == "社長 メッセージ 2024"

    def test_none_and_empty(self):
        """Missing text normalizes to an empty string."""
        assert clean_text(None) == ""
        assert clean_text("   ") == ""

    @pytest.mark.parametrize("raw", [
        "２０２４年　９月１０日",
        "FY２０２３  results",
        "plain ascii 2024/04/01",
    ])
    def test_clean_text_is_idempotent(self, raw):
        """Normalizing twice gives the same result as once."""
        once = clean_text(raw)
        assert clean_text(once) == once

    def test_first_keyword_follows_configured_order(self):
        """The first configured keyword found is returned."""
        text = "ご挨拶 社長メッセージ"
        assert first_keyword_in(text, ["社長メッセージ", "ご挨拶"]) == "社長メッセージ"
        assert first_keyword_in(text, ["CEO"]) is None


class TestEraConversion:
    """Tests for Japanese era to Gregorian conversion."""

    def test_known_eras(self):
        """Each era converts with its fixed offset."""
        assert convert_era_year("令和", 6) == 2024
        assert convert_era_year("平成", 31) == 2019
        assert convert_era_year("昭和", 64) == 1989

    def test_unknown_era_dropped(self):
        """Era names outside the table convert to None."""
        assert convert_era_year("明治", 10) is None

    def test_non_positive_era_year_dropped(self):
        """Era year zero (or below) converts to None."""
        assert convert_era_year("令和", 0) is None
        assert convert_era_year("令和", "x") is None


class TestDateExtraction:
    """Tests for calendar date candidates."""

    def test_japanese_long_form(self):
        """A kanji date resolves to that calendar day."""
        assert dates_of("2024年9月10日に更新") == [datetime(2024, 9, 10)]

    def test_year_alone_is_not_a_date(self):
        """A bare year with no month yields no candidate."""
        assert extract_date_candidates("2024年") == []

    def test_era_date(self):
        """令和6年9月1日 is 2024-09-01."""
        candidates = extract_date_candidates("令和6年9月1日")
        assert [c.date for c in candidates] == [datetime(2024, 9, 1)]
        assert candidates[0].source_text == "令和6年9月1日"

    def test_fullwidth_input(self):
        """Full-width digits are normalized before matching."""
        assert dates_of("２０２４年３月３１日") == [datetime(2024, 3, 31)]

    def test_numeric_forms(self):
        """Slash, dot and hyphen separators; day defaults to 1."""
        assert dates_of("2024/04/05") == [datetime(2024, 4, 5)]
        assert dates_of("2024-11-30") == [datetime(2024, 11, 30)]
        assert dates_of("2024.4") == [datetime(2024, 4, 1)]

    def test_english_forms(self):
        """Month-first and day-first English notations."""
        assert dates_of("Updated March 15, 2024") == [datetime(2024, 3, 15)]
        assert max(dates_of("15 March 2024")) == datetime(2024, 3, 15)
        assert dates_of("June 2024") == [datetime(2024, 6, 1)]

    def test_invalid_month_invalidates_match(self):
        """Month 13 is not clamped; the match is dropped."""
        assert extract_date_candidates("2024/13/01") == []
        assert extract_date_candidates("2024年13月") == []

    def test_impossible_day_dropped(self):
        """February 30th does not roll over into March."""
        assert extract_date_candidates("2024/02/30") == []

    def test_zero_day_means_first(self):
        """A literal day 0 is read as the 1st of the month."""
        candidates = extract_date_candidates("2024年9月0日 更新")
        assert [c.date for c in candidates] == [datetime(2024, 9, 1)]

    def test_invalid_era_year_dropped(self):
        """令和0年 produces nothing and raises nothing."""
        assert extract_date_candidates("令和0年5月1日") == []

    def test_candidates_deduplicated_by_date(self):
        """Two notations for the same day give one candidate; first source wins."""
        candidates = extract_date_candidates("2024年4月1日 (2024/04/01)")
        assert len(candidates) == 1
        assert candidates[0].source_text == "2024年4月1日"

    def test_extraction_stable_under_normalization(self):
        """Raw full-width input and its normalized form give the same dates."""
        raw = "令和６年９月１日 ２０２３年１２月 ２０２４．５．６"
        assert extract_date_candidates(raw) == extract_date_candidates(clean_text(raw))
        assert extract_years(raw) == extract_years(clean_text(raw))


class TestRecencyWindow:
    """Tests for most-recent-date-in-window."""

    def test_window_excludes_future_and_old_dates(self):
        """Only dates inside [lower, upper] are considered."""
        text = "2023年12月1日 2024年3月1日 2026年1月1日"
        assert find_most_recent_date(text, datetime(2024, 1, 1), datetime(2025, 1, 1)) == datetime(2024, 3, 1)

    def test_bounds_are_inclusive(self):
        """A date equal to either bound qualifies."""
        candidates = [
            DateCandidate(datetime(2024, 1, 1), "2024/1/1"),
            DateCandidate(datetime(2025, 6, 1), "2025/6/1"),
        ]
        assert most_recent_date_in_window(candidates, datetime(2024, 1, 1), datetime(2024, 12, 31)) == datetime(2024, 1, 1)
        assert most_recent_date_in_window(candidates, datetime(2024, 1, 1), datetime(2025, 6, 1)) == datetime(2025, 6, 1)

    def test_no_candidate_in_window(self):
        """None when nothing qualifies."""
        assert find_most_recent_date("2020年1月1日", datetime(2024, 1, 1), datetime(2025, 1, 1)) is None

    def test_window_start_is_previous_january_first(self):
        """Window opens on January 1st of the previous year."""
        assert recency_window_start(datetime(2025, 7, 10, 12, 30)) == datetime(2024, 1, 1)

    def test_minimum_recent_year_floor(self):
        """Previous year, never below 2000."""
        assert minimum_recent_year(datetime(2025, 3, 1)) == 2024
        assert minimum_recent_year(datetime(2000, 5, 1)) == 2000


class TestYearExtraction:
    """Tests for fiscal-year extraction."""

    def test_year_forms(self):
        """Plain years, FY years and era fiscal years, sorted and distinct."""
        assert extract_years("FY2023 2024年度 令和5年度 2024") == [2023, 2024]

    def test_years_outside_20xx_ignored(self):
        """Only 20xx years count as bare years."""
        assert extract_years("1999年 20245") == []

    def test_era_year_without_suffix(self):
        """Era year without 年度 still converts."""
        assert extract_years("平成30年") == [2018]
