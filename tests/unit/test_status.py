from __future__ import annotations

import datetime as dt
from dataclasses import replace

from kpi_engine.engine.status import (
    INVALID_SUMMARY,
    METRICS_ALL_NOTE,
    NEEDS_REVIEW_SUMMARY,
    VALID_COMMENT,
    assemble_row,
    build_comments,
    derive_status,
)
from kpi_engine.models.error_codes import ERROR_COMMENTS, ErrorCode
from kpi_engine.models.outcomes import (
    DeadlineResult,
    MetricsOutcome,
    ObjectiveResult,
    Status,
    ValidationOutcome,
)
from kpi_engine.models.row import Mode, NormalizedRow

_ROW = NormalizedRow(
    row_id=7,
    task_name="Homepage redesign",
    task_type="Project",
    team_role="Design",
    strategic_benefit="Grow revenue",
    company="Acme",
    output_metric="a",
    quality_metric="b",
    improvement_metric="c",
    dead_line="2025-10-01",
    deadline_date=dt.date(2025, 10, 1),
    mode=Mode.BOTH,
)
_OK_DEADLINE = DeadlineResult(valid=True, date=dt.date(2025, 10, 1))
_SUPPLIED = MetricsOutcome(output="a", quality="b", improvement="c")
_ALL_FILLED = MetricsOutcome(
    output="a", quality="b", improvement="c",
    was_auto_filled=True, auto_filled_fields=("Output", "Quality", "Improvement"),
)


def _validation(**overrides) -> ValidationOutcome:
    base = ValidationOutcome(normalized=_ROW, deadline=_OK_DEADLINE)
    return replace(base, **overrides)


def test_valid():
    v = _validation()
    assert derive_status(v, _SUPPLIED) is Status.VALID
    assert build_comments(Status.VALID, v, _SUPPLIED, []) == (VALID_COMMENT, VALID_COMMENT)


def test_blocking_wins_over_everything():
    v = _validation(missing_fields=("Task Name",), mode_was_invalid=True)
    assert derive_status(v, _ALL_FILLED) is Status.INVALID


def test_wrong_year_blocking_switch():
    v = _validation(deadline=DeadlineResult(valid=True, wrong_year=True, date=dt.date(2026, 1, 1)))
    assert derive_status(v, _SUPPLIED) is Status.INVALID
    assert derive_status(v, _SUPPLIED, wrong_year_blocking=False) is Status.NEEDS_REVIEW
    assert derive_status(v, _ALL_FILLED, wrong_year_blocking=False) is Status.NEEDS_REVIEW


def test_needs_review_for_metrics_or_mode():
    assert derive_status(_validation(), _ALL_FILLED) is Status.NEEDS_REVIEW
    assert derive_status(_validation(mode_was_invalid=True), _SUPPLIED) is Status.NEEDS_REVIEW


def test_invalid_comments_list_details():
    v = _validation(
        missing_fields=("Task Name", "Deadline"),
        invalid_fields=("Team Role",),
        invalid_text_fields=("Strategic Benefit",),
        deadline=DeadlineResult(),
    )
    codes = [ErrorCode.MISSING_TASK_NAME, ErrorCode.INVALID_TEAM_ROLE, ErrorCode.LOW_SIGNAL_TEXT]
    comments, summary = build_comments(Status.INVALID, v, _SUPPLIED, codes)
    assert summary == INVALID_SUMMARY
    assert comments == " ".join([
        INVALID_SUMMARY,
        "Missing mandatory field(s): Task Name, Deadline.",
        "Invalid value(s) for: Team Role.",
        ERROR_COMMENTS[ErrorCode.LOW_SIGNAL_TEXT],
        "Invalid text format for: Strategic Benefit.",
    ])
    assert "\n" not in comments


def test_invalid_deadline_comment():
    v = _validation(deadline=DeadlineResult())
    comments, _ = build_comments(Status.INVALID, v, _SUPPLIED, [ErrorCode.DEADLINE_INVALID_FORMAT])
    assert comments.endswith(ERROR_COMMENTS[ErrorCode.DEADLINE_INVALID_FORMAT])


def test_needs_review_comments():
    comments, summary = build_comments(Status.NEEDS_REVIEW, _validation(), _ALL_FILLED, [])
    assert summary == NEEDS_REVIEW_SUMMARY
    assert comments == f"{NEEDS_REVIEW_SUMMARY} {METRICS_ALL_NOTE}"

    partial = replace(_ALL_FILLED, auto_filled_fields=("Output", "Improvement"))
    comments, _ = build_comments(Status.NEEDS_REVIEW, _validation(mode_was_invalid=True), partial, [])
    assert "for: Output, Improvement." in comments
    assert comments.endswith(ERROR_COMMENTS[ErrorCode.INVALID_MODE_VALUE])


def test_assemble_invalid_row_clears_objectives():
    v = _validation(missing_fields=("Task Name",))
    row = assemble_row(
        7, v, _SUPPLIED, ObjectiveResult("S.", "C."), ("S.", "simple"),
        [ErrorCode.MISSING_TASK_NAME], 123,
    )
    assert row.status is Status.INVALID
    assert row.objective == "" and row.objective_mode == ""
    assert row.simple_objective == "" and row.complex_objective == ""
    assert row.error_codes == (ErrorCode.MISSING_TASK_NAME,)
    assert row.variation_seed == 123


def test_assemble_canonical_code_order():
    row = assemble_row(
        7, _validation(), _ALL_FILLED, ObjectiveResult("S.", "C."), ("C.", "complex"),
        [ErrorCode.METRICS_AUTOSUGGEST_ALL, ErrorCode.INVALID_MODE_VALUE, ErrorCode.METRICS_AUTOSUGGEST_ALL],
        1,
    )
    assert row.error_codes == (ErrorCode.INVALID_MODE_VALUE, ErrorCode.METRICS_AUTOSUGGEST_ALL)
    assert row.status is Status.NEEDS_REVIEW
    assert row.objective == "C." and row.objective_mode == "complex"
    assert row.metrics_auto_suggested is True
    assert row.resolved_metrics == {"output_metric": "a", "quality_metric": "b", "improvement_metric": "c"}
