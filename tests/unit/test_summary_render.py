from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from kpi_engine.models.batch_result import BatchResult, RowTimingAccumulator
from kpi_engine.models.error_codes import ErrorCode
from kpi_engine.models.outcomes import FinalRow, Status
from kpi_engine.services.summary import format_number, render_summary_line

"""Unit tests for the SUMMARY line renderer."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+rows=([0-9]+)\s+valid=([0-9]+)\s+needs_review=([0-9]+)\s+"
    r"invalid=([0-9]+)\s+elapsed_sec=([0-9]+\.?[0-9]*)\s+throughput_rps=([0-9]+\.?[0-9]*)$"
)

START = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def _row(row_id: int, status: Status) -> FinalRow:
    return FinalRow(
        row_id=row_id,
        status=status,
        objective="" if status is Status.INVALID else "By 2025-10-01, deliver it.",
        objective_mode="" if status is Status.INVALID else "simple",
        comments="",
        summary_reason="",
        error_codes=(ErrorCode.MISSING_TASK_NAME,) if status is Status.INVALID else (),
        resolved_metrics={"output_metric": "", "quality_metric": "", "improvement_metric": ""},
        metrics_auto_suggested=False,
        variation_seed=0,
    )


def _result(statuses: list[Status], elapsed: float, throughput: float) -> BatchResult:
    return BatchResult(
        rows=tuple(_row(i, s) for i, s in enumerate(statuses, 1)),
        start_time=START,
        end_time=START,
        elapsed_seconds=elapsed,
        throughput_rows_per_sec=throughput,
    )


def test_render_summary_line_counts():
    result = _result(
        [Status.VALID, Status.VALID, Status.NEEDS_REVIEW, Status.INVALID], 2.0, 2.0
    )
    line = render_summary_line(result)
    match = SUMMARY_PATTERN.match(line)
    assert match, f"SUMMARY line should match regex: {line}"
    assert match.groups() == ("4", "2", "1", "1", "2", "2")


def test_render_summary_line_empty():
    line = render_summary_line(_result([], 0.0, 0.0))
    assert line == "SUMMARY rows=0 valid=0 needs_review=0 invalid=0 elapsed_sec=0 throughput_rps=0"


@pytest.mark.parametrize(
    "value,expected",
    [(0, "0"), (2.0, "2"), (1.5, "1.5"), (0.1234, "0.123"), (0.000123, "0.000123"), (66.666666, "66.667")],
)
def test_format_number(value: float, expected: str):
    assert format_number(value) == expected


def test_row_timing_accumulator():
    acc = RowTimingAccumulator()
    assert acc.get_stats() == (0, 0.0, 0.0)
    acc.add_row_time(0.5)
    assert acc.get_stats() == (1, 0.5, 0.5)
    for t in (0.1, 0.2, 0.3):
        acc.add_row_time(t)
    total, avg, p95 = acc.get_stats()
    assert total == 4
    assert avg == pytest.approx(0.275)
    assert 0.3 <= p95 <= 0.5
