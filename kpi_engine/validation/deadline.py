from __future__ import annotations

import datetime as dt
import re

from ..models.error_codes import ErrorCode, add_error_code
from ..models.outcomes import DeadlineResult

"""Multi-format deadline parsing.

Order of checks:

(a) markup / script / emoji / template markers -> textual (E305)
(b) quarter, fiscal-year and year-end idioms   -> textual (E305)
(c) twelve concrete grammars, no match          -> invalid format (E304)
(d) strict calendar construction, no rollover   -> invalid format (E304)
(e) year != reference year                      -> wrong year (E303), still valid

Purely numeric dates whose last group has four digits are read day-first.
"""

__all__ = [
    "MONTHS",
    "DATE_GRAMMARS",
    "is_textual_deadline",
    "parse_deadline",
    "current_reference_year",
]

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_MON = r"([A-Za-z]+)"

# (pattern, group order) - order names which group holds year / month / day
DATE_GRAMMARS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), "ymd"),
    (re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$"), "ymd"),
    (re.compile(r"^(\d{4})\.(\d{1,2})\.(\d{1,2})$"), "ymd"),
    (re.compile(r"^(\d{4})\s+(\d{2})\s+(\d{2})$"), "ymd"),
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{2})-(\d{2})-(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{4})-" + _MON + r"-(\d{2})$"), "ymd"),
    (re.compile(r"^(\d{4})\s+" + _MON + r"\s+(\d{1,2})$"), "ymd"),
    (re.compile(r"^(\d{2})-" + _MON + r"-(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{1,2})\s+" + _MON + r"\s+(\d{4})$"), "dmy"),
    (re.compile(r"^" + _MON + r"\s+(\d{1,2}),?\s+(\d{4})$"), "mdy"),
)

_FORBIDDEN_RE = re.compile(r"(<script|</script|<img|iframe|`|\$\{|<[^>]+>)", re.IGNORECASE)
_TEXTUAL_RES = (
    re.compile(r"\bq[1-4]\b"),
    re.compile(r"\bend\s+of\s+q[1-4]\b"),
    re.compile(r"\bfy\s*\d{2}\b"),
    re.compile(r"\bbefore\s+\d{4}\s*ends\b"),
    re.compile(r"\b(?:before|by)\s+(?:year\s*end|the\s+end\s+of\s+the\s+year)\b"),
    re.compile(r"\byear\s*end\b"),
)


def _has_emoji(value: str) -> bool:
    for ch in value:
        cp = ord(ch)
        # 絵文字の主なブロック + 異体字セレクタ
        if cp >= 0x1F000 or 0x2600 <= cp <= 0x27BF or cp == 0xFE0F:
            return True
    return False


def is_textual_deadline(value: str) -> bool:
    """True for markup / emoji and for idioms that do not name a concrete date."""
    if _FORBIDDEN_RE.search(value) or _has_emoji(value):
        return True
    lower = value.strip().lower()
    return any(rx.search(lower) for rx in _TEXTUAL_RES)


def _month_number(token: str) -> int | None:
    if token.isdigit():
        return int(token)
    return MONTHS.get(token.lower())


def _match_grammar(value: str) -> tuple[int, int, int] | None:
    """Return (year, month, day) parts from the first grammar that matches."""
    for pattern, order in DATE_GRAMMARS:
        m = pattern.match(value)
        if not m:
            continue
        parts = dict(zip(order, m.groups()))
        month = _month_number(parts["m"])
        if month is None:
            return None
        return int(parts["y"]), month, int(parts["d"])
    return None


def current_reference_year() -> int:
    return dt.datetime.now(dt.UTC).year


def parse_deadline(
    value: str | None,
    error_codes: list[ErrorCode],
    reference_year: int | None = None,
) -> DeadlineResult:
    """Parse a deadline string.

    Blank input adds no code (the domain validator reports it as missing).
    ``reference_year`` defaults to the current UTC calendar year.
    """
    text = (value or "").strip()
    if not text:
        return DeadlineResult()

    if is_textual_deadline(text):
        add_error_code(error_codes, ErrorCode.DEADLINE_TEXTUAL_NONDATE)
        return DeadlineResult(textual=True)

    parts = _match_grammar(text)
    if parts is None:
        add_error_code(error_codes, ErrorCode.DEADLINE_INVALID_FORMAT)
        return DeadlineResult()

    year, month, day = parts
    try:
        parsed = dt.date(year, month, day)  # 2025-02-30 などは ValueError
    except ValueError:
        add_error_code(error_codes, ErrorCode.DEADLINE_INVALID_FORMAT)
        return DeadlineResult()

    if reference_year is None:
        reference_year = current_reference_year()
    if parsed.year != reference_year:
        add_error_code(error_codes, ErrorCode.DEADLINE_WRONG_YEAR)
        return DeadlineResult(valid=True, wrong_year=True, date=parsed)

    return DeadlineResult(valid=True, date=parsed)
