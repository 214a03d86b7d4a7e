from __future__ import annotations

from collections.abc import Iterable

from ..models.error_codes import ERROR_COMMENTS, ErrorCode, canonical_codes
from ..models.outcomes import (
    FinalRow,
    MetricsOutcome,
    ObjectiveResult,
    Status,
    ValidationOutcome,
)

"""Final status / comments assembly.

Merge rule:

- INVALID if validation was blocking, or the deadline is in the wrong year
  and the wrong-year rule is blocking
- NEEDS_REVIEW if metrics were recommended, the mode value was invalid, or
  the deadline is in the wrong year under the lenient rule
- VALID otherwise

This layer validates nothing; it only folds the upstream outcomes together.
"""

__all__ = [
    "VALID_COMMENT",
    "INVALID_SUMMARY",
    "NEEDS_REVIEW_SUMMARY",
    "METRICS_ALL_NOTE",
    "derive_status",
    "build_comments",
    "assemble_row",
]

VALID_COMMENT = "All SMART criteria met."
INVALID_SUMMARY = "Objectives not generated due to validation errors."
NEEDS_REVIEW_SUMMARY = "Objective generated; review required."
METRICS_ALL_NOTE = (
    "Metrics were system-recommended (Output / Quality / Improvement). "
    "Please review for approval."
)


def derive_status(
    validation: ValidationOutcome,
    metrics: MetricsOutcome,
    *,
    wrong_year_blocking: bool = True,
) -> Status:
    if validation.blocking:
        return Status.INVALID
    if wrong_year_blocking and validation.deadline.wrong_year:
        return Status.INVALID
    if metrics.was_auto_filled or validation.mode_was_invalid or validation.deadline.wrong_year:
        return Status.NEEDS_REVIEW
    return Status.VALID


def _metrics_note(metrics: MetricsOutcome) -> str:
    fields = metrics.auto_filled_fields
    if len(fields) == 3:
        return METRICS_ALL_NOTE
    return f"Metrics were system-recommended for: {', '.join(fields)}. Please review for approval."


def _invalid_details(validation: ValidationOutcome, codes: Iterable[ErrorCode]) -> list[str]:
    code_set = set(codes)
    parts: list[str] = []
    if validation.missing_fields:
        parts.append(f"Missing mandatory field(s): {', '.join(validation.missing_fields)}.")
    if validation.invalid_fields:
        parts.append(f"Invalid value(s) for: {', '.join(validation.invalid_fields)}.")
    if ErrorCode.DANGEROUS_TEXT in code_set:
        parts.append(ERROR_COMMENTS[ErrorCode.DANGEROUS_TEXT])
    if ErrorCode.LOW_SIGNAL_TEXT in code_set:
        parts.append(ERROR_COMMENTS[ErrorCode.LOW_SIGNAL_TEXT])
    if validation.invalid_text_fields:
        parts.append(f"Invalid text format for: {', '.join(validation.invalid_text_fields)}.")

    deadline = validation.deadline
    if not deadline.valid:
        if ErrorCode.DEADLINE_TEXTUAL_NONDATE in code_set:
            parts.append(ERROR_COMMENTS[ErrorCode.DEADLINE_TEXTUAL_NONDATE])
        elif ErrorCode.DEADLINE_INVALID_FORMAT in code_set:
            parts.append(ERROR_COMMENTS[ErrorCode.DEADLINE_INVALID_FORMAT])
    elif deadline.wrong_year:
        parts.append(ERROR_COMMENTS[ErrorCode.DEADLINE_WRONG_YEAR])

    if validation.mode_was_invalid:
        parts.append(ERROR_COMMENTS[ErrorCode.INVALID_MODE_VALUE])
    return parts


def build_comments(
    status: Status,
    validation: ValidationOutcome,
    metrics: MetricsOutcome,
    codes: Iterable[ErrorCode],
) -> tuple[str, str]:
    """Return ``(comments, summary_reason)`` as single-line strings."""
    if status is Status.VALID:
        return VALID_COMMENT, VALID_COMMENT

    if status is Status.INVALID:
        parts = [INVALID_SUMMARY, *_invalid_details(validation, codes)]
        return " ".join(parts), INVALID_SUMMARY

    parts = [NEEDS_REVIEW_SUMMARY]
    if metrics.was_auto_filled:
        parts.append(_metrics_note(metrics))
    if validation.deadline.wrong_year:
        # wrong_year_blocking=false のときだけここに来る
        parts.append(ERROR_COMMENTS[ErrorCode.DEADLINE_WRONG_YEAR])
    if validation.mode_was_invalid:
        parts.append(ERROR_COMMENTS[ErrorCode.INVALID_MODE_VALUE])
    return " ".join(parts), NEEDS_REVIEW_SUMMARY


def assemble_row(
    row_id: int,
    validation: ValidationOutcome,
    metrics: MetricsOutcome,
    objectives: ObjectiveResult,
    selected: tuple[str, str],
    error_codes: Iterable[ErrorCode],
    variation_seed: int,
    *,
    wrong_year_blocking: bool = True,
) -> FinalRow:
    """Fold the stage outcomes into the terminal FinalRow.

    ``selected`` is ``(objective_text, objective_mode)`` as chosen by the
    generator; INVALID rows have every objective text forced to "".
    """
    codes = canonical_codes(error_codes)
    status = derive_status(validation, metrics, wrong_year_blocking=wrong_year_blocking)
    comments, summary = build_comments(status, validation, metrics, codes)

    if status is Status.INVALID:
        objective, objective_mode = "", ""
        simple_text, complex_text = "", ""
    else:
        objective, objective_mode = selected
        simple_text, complex_text = objectives.simple_text, objectives.complex_text

    return FinalRow(
        row_id=row_id,
        status=status,
        objective=objective,
        objective_mode=objective_mode,
        comments=comments,
        summary_reason=summary,
        error_codes=codes,
        resolved_metrics=metrics.as_dict(),
        metrics_auto_suggested=metrics.was_auto_filled,
        variation_seed=variation_seed,
        simple_objective=simple_text,
        complex_objective=complex_text,
    )
