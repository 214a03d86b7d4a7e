from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

"""Error-code taxonomy for the KPI objective engine.

Code ranges:

- E2xx: missing mandatory fields (always INVALID)
- E3xx: invalid enum value / deadline / mode (mode fallback is informational)
- E4xx: dangerous or low-signal text (always INVALID)
- E5xx: metrics auto-suggest (NEEDS_REVIEW, never INVALID)
- E6xx: transport / request-shape problems raised at the boundary

Codes are additive. Final status is derived by the status assembler from the
validation + metrics outcomes, never from a single code's presence.
"""

__all__ = [
    "ErrorCode",
    "ERROR_DESCRIPTIONS",
    "ERROR_COMMENTS",
    "add_error_code",
    "canonical_codes",
]


class ErrorCode(str, Enum):
    """Short error codes surfaced in ``FinalRow.error_codes``."""

    MISSING_TASK_NAME = "E201"
    MISSING_TASK_TYPE = "E202"
    MISSING_TEAM_ROLE = "E203"
    MISSING_DEADLINE = "E204"
    MISSING_STRATEGIC_BENEFIT = "E205"

    INVALID_TASK_TYPE = "E301"
    INVALID_TEAM_ROLE = "E302"
    DEADLINE_WRONG_YEAR = "E303"
    DEADLINE_INVALID_FORMAT = "E304"
    DEADLINE_TEXTUAL_NONDATE = "E305"
    INVALID_MODE_VALUE = "E306"

    DANGEROUS_TEXT = "E401"
    LOW_SIGNAL_TEXT = "E402"

    METRICS_AUTOSUGGEST_ALL = "E501"
    METRICS_AUTOSUGGEST_PARTIAL = "E502"

    INVALID_JSON_BODY = "E601"
    INVALID_REQUEST_STRUCTURE = "E602"
    INVALID_ROWS_ARRAY = "E603"
    EMPTY_ROWS_ARRAY = "E604"
    INVALID_TRANSPORT_PAYLOAD = "E605"
    INVALID_TRANSPORT_SANITIZATION = "E606"
    INTERNAL_ENGINE_ERROR = "E607"

    def __str__(self) -> str:  # pragma: no cover (trivial)
        return self.value

    @property
    def category(self) -> int:
        """Hundreds bucket of the code (2 for E2xx, 5 for E5xx, ...)."""
        return int(self.value[1])


ERROR_DESCRIPTIONS: dict[ErrorCode, str] = {
    ErrorCode.MISSING_TASK_NAME: "Task Name is missing.",
    ErrorCode.MISSING_TASK_TYPE: "Task Type is missing.",
    ErrorCode.MISSING_TEAM_ROLE: "Team Role is missing.",
    ErrorCode.MISSING_DEADLINE: "Deadline is missing.",
    ErrorCode.MISSING_STRATEGIC_BENEFIT: "Strategic Benefit is missing.",
    ErrorCode.INVALID_TASK_TYPE: "Task Type value is not allowed.",
    ErrorCode.INVALID_TEAM_ROLE: "Team Role value is not allowed.",
    ErrorCode.DEADLINE_WRONG_YEAR: "Deadline year is outside the current calendar year.",
    ErrorCode.DEADLINE_INVALID_FORMAT: "Deadline is not in a supported date format.",
    ErrorCode.DEADLINE_TEXTUAL_NONDATE: "Deadline contains non-parsable or textual content.",
    ErrorCode.INVALID_MODE_VALUE: 'Mode value is not supported and was normalized to "both".',
    ErrorCode.DANGEROUS_TEXT: "Field contains dangerous or injection-like content.",
    ErrorCode.LOW_SIGNAL_TEXT: "Field contains low-signal or non-business text.",
    ErrorCode.METRICS_AUTOSUGGEST_ALL: "All three metrics were auto-suggested.",
    ErrorCode.METRICS_AUTOSUGGEST_PARTIAL: "One or more metrics were auto-suggested.",
    ErrorCode.INVALID_JSON_BODY: "Request body is not valid JSON.",
    ErrorCode.INVALID_REQUEST_STRUCTURE: "Request structure is invalid or not a non-null object.",
    ErrorCode.INVALID_ROWS_ARRAY: 'The "rows" property is missing or is not a valid array.',
    ErrorCode.EMPTY_ROWS_ARRAY: 'The "rows" array is present but empty.',
    ErrorCode.INVALID_TRANSPORT_PAYLOAD: "One or more rows are not valid objects.",
    ErrorCode.INVALID_TRANSPORT_SANITIZATION: "Request contains unsafe or non-JSON-safe characters.",
    ErrorCode.INTERNAL_ENGINE_ERROR: "Internal backend processing failure.",
}

# Single-line comment fragments used by the status assembler.
ERROR_COMMENTS: dict[ErrorCode, str] = {
    ErrorCode.DEADLINE_WRONG_YEAR: "Deadline outside the allowed calendar year.",
    ErrorCode.DEADLINE_INVALID_FORMAT: "Invalid deadline format.",
    ErrorCode.DEADLINE_TEXTUAL_NONDATE: "Deadline contains non-parsable or textual content.",
    ErrorCode.INVALID_MODE_VALUE: "Invalid mode value detected; backend fallback applied.",
    ErrorCode.DANGEROUS_TEXT: (
        "Text includes unacceptable or dangerous wording. Please rewrite it in line "
        "with company policy and security standards."
    ),
    ErrorCode.LOW_SIGNAL_TEXT: "Text carries too little business meaning to be used.",
    ErrorCode.INTERNAL_ENGINE_ERROR: "Internal KPI engine error.",
}


def add_error_code(codes: list[ErrorCode], code: ErrorCode) -> None:
    """Append ``code`` once, keeping first-seen order."""
    if code not in codes:
        codes.append(code)


def canonical_codes(codes: Iterable[ErrorCode]) -> tuple[ErrorCode, ...]:
    """Deduplicate and sort codes by their short value (E201 < E301 < ...)."""
    return tuple(sorted(set(codes), key=lambda c: c.value))
