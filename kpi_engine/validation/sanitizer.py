from __future__ import annotations

import re

from ..models.config_models import SanitizerConfig
from ..models.error_codes import ErrorCode, add_error_code
from ..models.outcomes import TextCheck

"""Dangerous / low-signal text screening.

Dangerous triggers are checked in a fixed priority and the first hit wins:

1. markup tags
2. script / event-handler markers
3. SQL statement fragments
4. JSON / code blob shape
5. spreadsheet formula prefixes (=, +, @)
6. control characters
7. template-injection markers
8. policy-evasion phrases
9. configured deny-list substrings

Only then are the low-signal rules applied. Each verdict appends one
category-level code (E401 / E402); the caller decides which field failed.
"""

__all__ = [
    "HTML_TAG_RE",
    "SCRIPT_MARKER_RE",
    "SQL_FRAGMENT_RE",
    "CODE_BLOB_RE",
    "FORMULA_PREFIX_RE",
    "CONTROL_CHAR_RE",
    "TEMPLATE_MARKERS",
    "EVASION_PHRASES",
    "PLACEHOLDER_VALUES",
    "check_text",
]

HTML_TAG_RE = re.compile(r"<[^>]+>")
SCRIPT_MARKER_RE = re.compile(r"(<script\b|</script|javascript\s*:|\bon[a-z]+\s*=)", re.IGNORECASE)
# 単語単体 (update / select) ではなく文の断片でのみ検出する
SQL_FRAGMENT_RE = re.compile(
    r"("
    r"\bselect\s+(?:\*|\w+(?:\s*,\s*\w+)*)\s+from\b"
    r"|\binsert\s+into\b"
    r"|\bupdate\s+\w+\s+set\s+\w+\s*="
    r"|\bdelete\s+from\b"
    r"|\bdrop\s+(?:table|database|schema)\b"
    r"|\balter\s+table\b"
    r"|\bunion\s+(?:all\s+)?select\b"
    r"|;\s*--"
    r"|'\s*or\s*'?1'?\s*=\s*'?1"
    r")",
    re.IGNORECASE,
)
CODE_BLOB_RE = re.compile(r"^\s*(\{[\s\S]*\}|\[[\s\S]*\])\s*$")
FORMULA_PREFIX_RE = re.compile(r"^[=+@].+")
CONTROL_CHAR_RE = re.compile(r"[\u0000-\u001f\u007f-\u009f]")
TEMPLATE_MARKERS = ("`", "${", "{{", "{%", "<img", "<iframe")
EVASION_PHRASES = (
    "ignore previous instructions",
    "ignore all previous instructions",
    "ignore the above",
    "ignore security guidelines",
    "ignore company policy",
    "bypass security",
    "bypass the filter",
    "disable validation",
)

ALNUM_RE = re.compile(r"[A-Za-z0-9]")
PLACEHOLDER_VALUES = frozenset({
    "n/a",
    "na",
    "none",
    "null",
    "nil",
    "tbd",
    "tba",
    "todo",
    "test",
    "xxx",
    "lorem ipsum",
    "-",
})


def _dangerous_reason(text: str, policy: SanitizerConfig) -> str | None:
    lower = text.lower()
    if HTML_TAG_RE.search(text):
        return "html_tag"
    if SCRIPT_MARKER_RE.search(text):
        return "script_marker"
    if SQL_FRAGMENT_RE.search(text):
        return "sql_fragment"
    if CODE_BLOB_RE.match(text):
        return "code_blob"
    if FORMULA_PREFIX_RE.match(text):
        return "formula_prefix"
    if CONTROL_CHAR_RE.search(text):
        return "control_char"
    if any(marker in lower for marker in TEMPLATE_MARKERS):
        return "template_marker"
    if any(phrase in lower for phrase in EVASION_PHRASES):
        return "policy_evasion"
    if any(s.lower() in lower for s in policy.dangerous_substrings):
        return "deny_list"
    return None


def _low_signal_reason(text: str, policy: SanitizerConfig) -> str | None:
    lower = text.lower()
    if not ALNUM_RE.search(text):
        return "no_alphanumeric"
    tokens = lower.split()
    if len(tokens) >= 3 and len(set(tokens)) == 1 and len(tokens[0]) <= 4:
        return "repeated_token"
    if " ".join(tokens) in PLACEHOLDER_VALUES:
        return "placeholder"
    if any(s.lower() in lower for s in policy.low_signal_substrings):
        return "deny_list"
    return None


def check_text(
    value: str | None,
    error_codes: list[ErrorCode],
    policy: SanitizerConfig | None = None,
) -> TextCheck:
    """Screen one free-text value.

    Blank input is low-signal, never dangerous, and adds no code: missing
    mandatory fields are reported by the domain validator instead.
    """
    text = (value or "").strip()
    if not text:
        return TextCheck(dangerous=False, low_signal=True, reason="blank")

    policy = policy or SanitizerConfig()

    reason = _dangerous_reason(text, policy)
    if reason is not None:
        add_error_code(error_codes, ErrorCode.DANGEROUS_TEXT)
        return TextCheck(dangerous=True, low_signal=False, reason=reason)

    reason = _low_signal_reason(text, policy)
    if reason is not None:
        add_error_code(error_codes, ErrorCode.LOW_SIGNAL_TEXT)
        return TextCheck(dangerous=False, low_signal=True, reason=reason)

    return TextCheck()
