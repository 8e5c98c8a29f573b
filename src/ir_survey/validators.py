"""
Content validators and integrated-report link selection.

Each validator is a pure function over already-fetched text (or link lists)
and returns a judgment dataclass carrying the verdict, the evidence that
justified it and a human-readable note.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from .dates import extract_years, find_most_recent_date
from .page import Link
from .text import clean_text, first_keyword_in

DEFAULT_MINIMUM_TEXT_LENGTH = 15

# Characters removed before the narrative-length check
_NUMERIC_NOISE = re.compile(r"[0-9.,％%]")


@dataclass
class TopMessageJudgment:
    is_valid: bool
    has_keyword: bool
    recent_date: Optional[datetime] = None
    matched_keyword: Optional[str] = None
    note: str = ""


@dataclass
class ShareholderJudgment:
    is_valid: bool
    matched_keyword: Optional[str] = None
    note: str = ""


@dataclass
class FinancialJudgment:
    has_recent_year: bool
    latest_year: Optional[int] = None
    note: str = ""


@dataclass
class FinancialRecencyJudgment:
    is_valid: bool
    has_visual: bool
    latest_year: Optional[int] = None
    note: str = ""


@dataclass
class ProfileJudgment:
    is_valid: bool
    note: str = ""


@dataclass
class LinkCandidate:
    href: str
    text: str
    latest_year: int


def evaluate_top_message(
    text: Optional[str],
    keywords: Sequence[str],
    threshold_date: Optional[datetime],
    today: Optional[datetime],
) -> TopMessageJudgment:
    """Keyword present AND a dated update inside ``[threshold_date, today]``."""
    cleaned = clean_text(text)
    if not cleaned:
        return TopMessageJudgment(False, False, note="page text is empty")

    matched = first_keyword_in(cleaned, keywords)
    if matched is None:
        return TopMessageJudgment(False, False, note="no message keyword in page text")

    recent_date = find_most_recent_date(cleaned, threshold_date, today)
    if recent_date is None:
        since = threshold_date.strftime("%Y-%m-%d") if threshold_date else "any time"
        return TopMessageJudgment(
            False, True, None, matched,
            note=f"keyword '{matched}' found, no qualifying date since {since}",
        )

    return TopMessageJudgment(
        True, True, recent_date, matched,
        note=f"keyword '{matched}' found, dated {recent_date:%Y-%m-%d}",
    )


def evaluate_shareholder_content(
    text: Optional[str],
    primary_keywords: Sequence[str],
    minimum_text_length: int = DEFAULT_MINIMUM_TEXT_LENGTH,
) -> ShareholderJudgment:
    """Narrative text of at least ``minimum_text_length`` chars plus a keyword.

    Digits and percent/comma/period punctuation are stripped before the length
    check so that pure payout-ratio tables are rejected.
    """
    cleaned = clean_text(text)
    if not cleaned:
        return ShareholderJudgment(False, note="page text is empty")

    narrative = _NUMERIC_NOISE.sub("", cleaned)
    if len(narrative) < minimum_text_length:
        return ShareholderJudgment(
            False,
            note=f"only {len(narrative)} non-numeric characters (minimum {minimum_text_length})",
        )

    matched = first_keyword_in(cleaned, primary_keywords)
    if matched is None:
        return ShareholderJudgment(False, note="no shareholder-return keyword in page text")
    return ShareholderJudgment(True, matched, note=f"keyword '{matched}' found")


def evaluate_financial_text(text: Optional[str], min_year: int) -> FinancialJudgment:
    cleaned = clean_text(text)
    if not cleaned:
        return FinancialJudgment(False, note="page text is empty")

    years = extract_years(cleaned)
    if not years:
        return FinancialJudgment(False, note="no fiscal year in page text")

    latest_year = max(years)
    if latest_year < min_year:
        return FinancialJudgment(
            False, latest_year, note=f"latest year {latest_year} is before {min_year}"
        )
    return FinancialJudgment(True, latest_year, note=f"latest year {latest_year}")


def evaluate_financial_recency(
    has_visual: bool, text: Optional[str], min_year: int
) -> FinancialRecencyJudgment:
    """Chart-like visual present AND latest fiscal year >= ``min_year``."""
    financial = evaluate_financial_text(text, min_year)
    if not has_visual:
        return FinancialRecencyJudgment(
            False, False, financial.latest_year, note="no chart-like visual on page"
        )
    if not financial.has_recent_year:
        return FinancialRecencyJudgment(
            False, True, financial.latest_year, note=f"chart found, {financial.note}"
        )
    return FinancialRecencyJudgment(
        True, True, financial.latest_year, note=f"chart found, {financial.note}"
    )


def _matches_year_pattern(text: str, pattern: str) -> bool:
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        return pattern in text


def evaluate_profile(
    text: Optional[str],
    career_keywords: Sequence[str],
    ceo_keywords: Sequence[str],
    year_patterns: Sequence[str],
) -> ProfileJudgment:
    """Career keyword, or CEO keyword together with a year pattern."""
    cleaned = clean_text(text)
    career = first_keyword_in(cleaned, career_keywords)
    if career is not None:
        return ProfileJudgment(True, note=f"career keyword '{career}' found")

    ceo = first_keyword_in(cleaned, ceo_keywords)
    if ceo is None:
        return ProfileJudgment(False, note="no career or CEO keyword in page text")
    if any(_matches_year_pattern(cleaned, pattern) for pattern in year_patterns):
        return ProfileJudgment(True, note=f"CEO keyword '{ceo}' with dated history found")
    return ProfileJudgment(False, note=f"CEO keyword '{ceo}' found without dated history")


def _has_indicator(href: str, text: str, indicators: Iterable[str]) -> bool:
    lower_href = href.lower()
    lower_text = text.lower()
    return any(i in lower_href or i in lower_text for i in indicators)


def select_integrated_report_link(
    links: Sequence[Link],
    min_year: int,
    keywords: Sequence[str],
    pdf_indicators: Sequence[str],
) -> Optional[LinkCandidate]:
    """Pick the most recent downloadable report link.

    Rejection order per link: keyword, document-type indicator, year found
    and ``>= min_year``. The survivor with the highest year wins; ties keep
    input order.
    """
    indicators = [indicator.lower() for indicator in pdf_indicators]
    candidates: List[LinkCandidate] = []

    for link in links:
        href = link.href or ""
        text = link.text or ""
        combined = clean_text(f"{text} {href}")
        if not combined:
            continue

        if first_keyword_in(combined, keywords) is None:
            continue

        if not _has_indicator(href, text, indicators):
            continue

        years = extract_years(combined)
        if not years or max(years) < min_year:
            continue

        candidates.append(LinkCandidate(href=href, text=text, latest_year=max(years)))

    if not candidates:
        return None
    # max() keeps the first of equal keys
    return max(candidates, key=lambda c: c.latest_year)
