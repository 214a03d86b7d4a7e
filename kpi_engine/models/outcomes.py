from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .error_codes import ErrorCode
from .row import Mode, NormalizedRow

"""Outcome models passed between pipeline stages.

Every record here is frozen: a stage builds its outcome once and the next
stage only reads it.
"""

__all__ = [
    "Status",
    "TextCheck",
    "FieldMatch",
    "DeadlineResult",
    "ValidationOutcome",
    "MatrixKey",
    "MetricsOutcome",
    "ObjectiveResult",
    "FinalRow",
]


class Status(str, Enum):
    """Terminal row status.

    INVALID suppresses objective text, NEEDS_REVIEW keeps it.
    """
    VALID = "VALID"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    INVALID = "INVALID"


@dataclass(frozen=True)
class TextCheck:
    """Sanitizer verdict for one free-text value."""
    dangerous: bool = False
    low_signal: bool = False
    reason: str | None = None  # which trigger fired (html_tag, sql_fragment, ...)

    @property
    def flagged(self) -> bool:
        return self.dangerous or self.low_signal


@dataclass(frozen=True)
class FieldMatch:
    """Result of normalizing an enumerated field against its allow-list."""
    value: str
    allowed: bool


@dataclass(frozen=True)
class DeadlineResult:
    """Deadline parser verdict.

    ``valid`` means a supported grammar matched and the calendar date exists;
    ``wrong_year`` is an independent flag that never clears ``valid``.
    """
    valid: bool = False
    wrong_year: bool = False
    date: dt.date | None = None
    textual: bool = False  # rejected as idiom / markup rather than bad format

    @property
    def canonical(self) -> str:
        return self.date.isoformat() if self.date is not None else ""


@dataclass(frozen=True)
class ValidationOutcome:
    """Structured domain-validation result for one row."""
    normalized: NormalizedRow
    missing_fields: tuple[str, ...] = ()
    invalid_fields: tuple[str, ...] = ()
    invalid_text_fields: tuple[str, ...] = ()
    deadline: DeadlineResult = field(default_factory=DeadlineResult)
    mode: Mode = Mode.BOTH
    mode_was_invalid: bool = False

    @property
    def blocking(self) -> bool:
        # wrong_year は format 失敗ではないので blocking に含めない
        return bool(
            self.missing_fields
            or self.invalid_fields
            or self.invalid_text_fields
            or not self.deadline.valid
        )


@dataclass(frozen=True)
class MatrixKey:
    """Matrix bucket coordinates (role key such as ``design_lead`` + task key)."""
    role_key: str
    task_key: str

    def __str__(self) -> str:
        return f"{self.role_key}|{self.task_key}"


@dataclass(frozen=True)
class MetricsOutcome:
    output: str
    quality: str
    improvement: str
    was_auto_filled: bool = False
    auto_filled_fields: tuple[str, ...] = ()  # subset of ("Output", "Quality", "Improvement")
    source: str | None = None  # "matrix:design|project" / "default:design" / None

    def as_dict(self) -> dict[str, str]:
        return {
            "output_metric": self.output,
            "quality_metric": self.quality,
            "improvement_metric": self.improvement,
        }


@dataclass(frozen=True)
class ObjectiveResult:
    simple_text: str = ""
    complex_text: str = ""


@dataclass(frozen=True)
class FinalRow:
    """Terminal per-row result; rendered by ``to_dict`` into the output contract."""
    row_id: int
    status: Status
    objective: str
    objective_mode: str  # "simple" | "complex" | "" (INVALID)
    comments: str
    summary_reason: str
    error_codes: tuple[ErrorCode, ...]
    resolved_metrics: dict[str, str]
    metrics_auto_suggested: bool
    variation_seed: int
    simple_objective: str = ""
    complex_objective: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_id": self.row_id,
            "objective": self.objective,
            "objective_mode": self.objective_mode,
            "simple_objective": self.simple_objective,
            "complex_objective": self.complex_objective,
            "status": self.status.value,
            "comments": self.comments,
            "summary_reason": self.summary_reason,
            "error_codes": [c.value for c in self.error_codes],
            "resolved_metrics": dict(self.resolved_metrics),
            "metrics_auto_suggested": self.metrics_auto_suggested,
            "variation_seed": self.variation_seed,
        }
