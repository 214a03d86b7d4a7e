from __future__ import annotations

import logging

import pytest

from kpi_engine.engine import pipeline
from kpi_engine.engine.pipeline import EngineContext, process_batch, process_row
from kpi_engine.engine.seed import compute_variation_seed
from kpi_engine.logging.error_log import ErrorLogBuffer
from kpi_engine.models.config_models import DeadlineConfig, EngineSettings
from kpi_engine.models.error_codes import ErrorCode
from kpi_engine.models.outcomes import Status
from kpi_engine.models.row import RawRow


def test_context_resolves_reference_year_once():
    ctx = EngineContext.create(EngineSettings(deadline=DeadlineConfig(reference_year=2030)))
    assert ctx.reference_year == 2030
    assert ctx.tables is not None


def test_context_defaults_to_current_year():
    from kpi_engine.validation.deadline import current_reference_year
    assert EngineContext.create().reference_year == current_reference_year()


def test_valid_row(design_row: RawRow, context_2025: EngineContext):
    result = process_row(design_row, context_2025)
    assert result.status is Status.VALID
    assert result.error_codes == ()
    assert result.objective_mode == "simple"
    assert result.objective == result.simple_objective
    assert result.complex_objective
    assert result.variation_seed == compute_variation_seed("Design", "Project", "Acme Corp", 1)


def test_invalid_row_still_resolves_metrics(make_row, context_2025: EngineContext):
    result = process_row(
        make_row(task_name=None, output_metric=None, quality_metric=None, improvement_metric=None),
        context_2025,
    )
    assert result.status is Status.INVALID
    assert result.objective == ""
    assert result.metrics_auto_suggested is True
    assert all(result.resolved_metrics.values())
    assert ErrorCode.METRICS_AUTOSUGGEST_ALL in result.error_codes


def test_wrong_year_lenient_setting(make_row):
    settings = EngineSettings(deadline=DeadlineConfig(reference_year=2025, wrong_year_blocking=False))
    result = process_row(make_row(dead_line="2026-02-01"), EngineContext.create(settings))
    assert result.status is Status.NEEDS_REVIEW
    assert result.objective.startswith("By 2026-02-01, ")
    assert ErrorCode.DEADLINE_WRONG_YEAR in result.error_codes


def test_internal_error_becomes_e607(design_row, context_2025, monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(pipeline, "resolve_metrics", boom)
    with caplog.at_level(logging.ERROR, logger="kpi_engine"):
        result = process_row(design_row, context_2025)
    assert result.status is Status.INVALID
    assert result.error_codes == (ErrorCode.INTERNAL_ENGINE_ERROR,)
    assert result.objective == ""
    assert "internal engine error" in caplog.text


def test_batch_keeps_input_order(make_row, context_2025):
    rows = [make_row(row_id=i, task_name=f"Task {i}") for i in range(1, 9)]
    result = process_batch(rows, context_2025)
    assert [r.row_id for r in result.rows] == list(range(1, 9))
    assert result.total_rows == 8
    assert result.elapsed_seconds >= 0


@pytest.mark.parametrize("workers", [2, 4])
def test_batch_threaded_matches_sequential(make_row, context_2025, workers: int):
    rows = [
        make_row(row_id=i, team_role=role, output_metric=None)
        for i, role in enumerate(["Design", "Design Lead", "Content", "Development", "Development Lead"], 1)
    ]
    sequential = process_batch(rows, context_2025)
    threaded = process_batch(rows, context_2025, max_workers=workers)
    assert [r.to_dict() for r in threaded.rows] == [r.to_dict() for r in sequential.rows]


def test_batch_row_failure_does_not_stop_batch(make_row, context_2025, monkeypatch):
    original = pipeline.resolve_metrics

    def flaky(row, *args, **kwargs):
        if row.row_id == 2:
            raise ValueError("bad row")
        return original(row, *args, **kwargs)

    monkeypatch.setattr(pipeline, "resolve_metrics", flaky)
    result = process_batch([make_row(row_id=i) for i in (1, 2, 3)], context_2025)
    statuses = [r.status for r in result.rows]
    assert statuses == [Status.VALID, Status.INVALID, Status.VALID]
    assert result.rows[1].error_codes == (ErrorCode.INTERNAL_ENGINE_ERROR,)


def test_batch_writes_error_records(make_row, context_2025, temp_workdir):
    buf = ErrorLogBuffer(temp_workdir / "logs")
    process_batch(
        [make_row(row_id=1), make_row(row_id=2, task_name=None, mode="weird")],
        context_2025,
        error_log=buf,
        source="rows.json",
    )
    records = buf.records
    assert [(r.row, r.error_code) for r in records] == [(2, "E201"), (2, "E306")]
    assert all(r.source == "rows.json" for r in records)


def test_batch_counts(make_row, context_2025):
    rows = [
        make_row(row_id=1),
        make_row(row_id=2, quality_metric=None),
        make_row(row_id=3, dead_line="Q4"),
    ]
    result = process_batch(rows, context_2025)
    assert (result.valid_count, result.needs_review_count, result.invalid_count) == (1, 1, 1)
    payload = result.to_dict()
    assert payload["valid_count"] == 1
    assert len(payload["rows"]) == 3
