"""Text normalization applied before any pattern matching."""

import re
from typing import Iterable, Optional

# U+FF10..U+FF19 -> ASCII 0..9
_FULLWIDTH_DIGITS = str.maketrans("０１２３４５６７８９", "0123456789")

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_digits(text: Optional[str]) -> str:
    """Convert full-width digits to ASCII digits."""
    if not text:
        return ""
    return text.translate(_FULLWIDTH_DIGITS)


def clean_text(text: Optional[str]) -> str:
    """Normalize digits, collapse whitespace runs to one space and trim.

    Idempotent: ``clean_text(clean_text(x)) == clean_text(x)``.
    """
    return _WHITESPACE_RUN.sub(" ", normalize_digits(text)).strip()


def first_keyword_in(text: str, keywords: Iterable[str]) -> Optional[str]:
    """Return the first keyword (in configured order) contained in ``text``."""
    for keyword in keywords:
        if keyword and keyword in text:
            return keyword
    return None
