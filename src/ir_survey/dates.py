"""
Date, era and fiscal-year extraction.

Finds calendar dates written in Gregorian numeric, Japanese kanji, Japanese
era and English month-name notations and converts them to comparable
``datetime`` values. A separate year extractor finds bare fiscal years for
year-level recency judgments.

All patterns run on ``clean_text`` output and are compiled with ``re.ASCII``
so that ``\\d`` and ``\\b`` behave as they would on ASCII digits only (a
Unicode ``\\b`` would not fire between ``2024`` and ``年``).
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .text import clean_text


# Gregorian year of era-year 1, minus one
ERA_OFFSETS: Dict[str, int] = {
    "令和": 2018,
    "平成": 1988,
    "昭和": 1925,
}

ENGLISH_MONTHS: Dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "sept": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# Lowest year accepted by the recency thresholds
RECENCY_YEAR_FLOOR = 2000

_ERA_NAMES = "|".join(ERA_OFFSETS)
_MONTH_NAMES = (
    r"January|February|March|April|May|June|July|August|September|Sept\.?|"
    r"October|November|December|Jan\.?|Feb\.?|Mar\.?|Apr\.?|Jun\.?|Jul\.?|"
    r"Aug\.?|Sep\.?|Oct\.?|Nov\.?|Dec\.?"
)

JAPANESE_DATE_PATTERN = re.compile(
    r"(\d{4})\s*年\s*(\d{1,2})\s*月(?:\s*(\d{1,2})\s*日)?", re.ASCII
)
NUMERIC_DATE_PATTERN = re.compile(
    r"(\d{4})[./-](\d{1,2})(?:[./-](\d{1,2}))?", re.ASCII
)
ERA_DATE_PATTERN = re.compile(
    rf"({_ERA_NAMES})\s*(\d{{1,2}})\s*年\s*(\d{{1,2}})\s*月(?:\s*(\d{{1,2}})\s*日)?",
    re.ASCII,
)
ENGLISH_MONTH_FIRST_PATTERN = re.compile(
    rf"\b({_MONTH_NAMES})\s+(\d{{1,2}},\s*)?(\d{{4}})\b", re.ASCII | re.IGNORECASE
)
ENGLISH_DAY_FIRST_PATTERN = re.compile(
    rf"\b(\d{{1,2}})\s+({_MONTH_NAMES})\s+(\d{{4}})\b", re.ASCII | re.IGNORECASE
)

YEAR_PATTERN = re.compile(r"\b(20\d{2})\b", re.ASCII)
FISCAL_YEAR_PATTERN = re.compile(r"\bFY\s*(20\d{2})\b", re.ASCII | re.IGNORECASE)
ERA_YEAR_PATTERN = re.compile(rf"({_ERA_NAMES})\s*(\d{{1,2}})\s*年度?", re.ASCII)


@dataclass(frozen=True)
class DateCandidate:
    """A calendar date found in text, with the substring that produced it."""
    date: datetime
    source_text: str


def convert_era_year(era: str, era_year) -> Optional[int]:
    """Convert a Japanese era year to a Gregorian year.

    Returns None for unknown era names and for era years below 1.
    """
    offset = ERA_OFFSETS.get(era)
    if offset is None:
        return None
    try:
        year = int(era_year)
    except (TypeError, ValueError):
        return None
    if year <= 0:
        return None
    return offset + year


def _month_name_to_number(name: str) -> Optional[int]:
    return ENGLISH_MONTHS.get(name.replace(".", "").lower())


def _build_date(year, month, day, source: str) -> Optional[DateCandidate]:
    """Build a candidate; a missing or zero day means the 1st.

    Out-of-range months and impossible days are dropped.
    """
    try:
        year_value = int(year)
        month_value = int(month)
        day_value = int(day or 0) or 1
    except (TypeError, ValueError):
        return None
    if not 1 <= month_value <= 12:
        return None
    try:
        return DateCandidate(datetime(year_value, month_value, day_value), source)
    except ValueError:
        return None


def extract_date_candidates(text: Optional[str]) -> List[DateCandidate]:
    """Find every distinct calendar date in ``text``.

    All notations are scanned independently and unioned; candidates are
    deduplicated by resulting date, keeping the first source text seen.
    A year without a month (``2024年``) never produces a candidate.
    """
    normalized = clean_text(text)
    if not normalized:
        return []

    found: List[Optional[DateCandidate]] = []

    for match in JAPANESE_DATE_PATTERN.finditer(normalized):
        found.append(_build_date(match.group(1), match.group(2), match.group(3), match.group(0)))

    for match in NUMERIC_DATE_PATTERN.finditer(normalized):
        found.append(_build_date(match.group(1), match.group(2), match.group(3), match.group(0)))

    for match in ERA_DATE_PATTERN.finditer(normalized):
        year = convert_era_year(match.group(1), match.group(2))
        if year is None:
            continue
        found.append(_build_date(year, match.group(3), match.group(4), match.group(0)))

    for match in ENGLISH_MONTH_FIRST_PATTERN.finditer(normalized):
        month = _month_name_to_number(match.group(1))
        if month is None:
            continue
        day = re.sub(r"[^0-9]", "", match.group(2) or "")
        found.append(_build_date(match.group(3), month, day, match.group(0)))

    for match in ENGLISH_DAY_FIRST_PATTERN.finditer(normalized):
        month = _month_name_to_number(match.group(2))
        if month is None:
            continue
        found.append(_build_date(match.group(3), month, match.group(1), match.group(0)))

    unique: Dict[datetime, DateCandidate] = {}
    for candidate in found:
        if candidate is not None and candidate.date not in unique:
            unique[candidate.date] = candidate
    return list(unique.values())


def most_recent_date_in_window(
    candidates: Iterable[DateCandidate],
    lower: Optional[datetime] = None,
    upper: Optional[datetime] = None,
) -> Optional[datetime]:
    """Latest candidate date with ``lower <= date <= upper``.

    A missing bound leaves that side of the window open.
    """
    in_window = [
        c.date for c in candidates
        if (lower is None or c.date >= lower) and (upper is None or c.date <= upper)
    ]
    if not in_window:
        return None
    return max(in_window)


def find_most_recent_date(
    text: Optional[str],
    threshold_date: Optional[datetime] = None,
    today: Optional[datetime] = None,
) -> Optional[datetime]:
    """Extract dates from ``text`` and return the latest within the window."""
    return most_recent_date_in_window(extract_date_candidates(text), threshold_date, today)


def extract_years(text: Optional[str]) -> List[int]:
    """Sorted distinct fiscal years (``20xx``, ``FY20xx``, era + ``年度``)."""
    normalized = clean_text(text)
    years = set()

    for match in YEAR_PATTERN.finditer(normalized):
        years.add(int(match.group(1)))

    for match in FISCAL_YEAR_PATTERN.finditer(normalized):
        years.add(int(match.group(1)))

    for match in ERA_YEAR_PATTERN.finditer(normalized):
        converted = convert_era_year(match.group(1), match.group(2))
        if converted is not None:
            years.add(converted)

    return sorted(years)


def recency_window_start(run_date: datetime) -> datetime:
    """January 1st of the calendar year before ``run_date``."""
    return datetime(run_date.year - 1, 1, 1)


def minimum_recent_year(run_date: datetime) -> int:
    """Previous calendar year, floored at 2000."""
    return max(run_date.year - 1, RECENCY_YEAR_FLOOR)
