from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import UTC, datetime

from ..config.tables import EngineTables, load_tables
from ..logging.error_log import ErrorLogBuffer
from ..models.batch_result import BatchResult, RowTimingAccumulator
from ..models.config_models import EngineSettings
from ..models.error_codes import ERROR_COMMENTS, ErrorCode
from ..models.outcomes import FinalRow, ObjectiveResult, Status
from ..models.row import PreparedRow, RawRow
from ..services.progress import ProgressTracker
from ..validation.deadline import current_reference_year
from ..validation.domain import validate_row
from .metrics import resolve_metrics
from .objective import build_objectives, select_objective
from .seed import compute_variation_seed
from .status import INVALID_SUMMARY, assemble_row, derive_status

"""Row pipeline: validate -> seed -> metrics -> objectives -> status.

``process_row`` never raises for row content: every row, however malformed,
comes back as a FinalRow. An unexpected exception inside one row becomes an
INVALID row with E607 and the batch carries on.
"""

__all__ = [
    "EngineContext",
    "process_row",
    "process_batch",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineContext:
    """Immutable per-run state shared by every row of a batch."""
    settings: EngineSettings
    tables: EngineTables
    reference_year: int

    @classmethod
    def create(
        cls,
        settings: EngineSettings | None = None,
        tables: EngineTables | None = None,
    ) -> EngineContext:
        """Resolve tables and the reference year once per run."""
        settings = settings or EngineSettings.default()
        if tables is None:
            tables = load_tables(settings.data_dir)
        year = settings.deadline.reference_year
        if year is None:
            year = current_reference_year()
        return cls(settings=settings, tables=tables, reference_year=year)


def _internal_error_row(raw: RawRow) -> FinalRow:
    seed = compute_variation_seed(raw.team_role, raw.task_type, raw.company, raw.row_id)
    comment = f"{INVALID_SUMMARY} {ERROR_COMMENTS[ErrorCode.INTERNAL_ENGINE_ERROR]}"
    return FinalRow(
        row_id=raw.row_id,
        status=Status.INVALID,
        objective="",
        objective_mode="",
        comments=comment,
        summary_reason=INVALID_SUMMARY,
        error_codes=(ErrorCode.INTERNAL_ENGINE_ERROR,),
        resolved_metrics={
            "output_metric": "",
            "quality_metric": "",
            "improvement_metric": "",
        },
        metrics_auto_suggested=False,
        variation_seed=seed,
    )


def _run_row(raw: RawRow, context: EngineContext) -> FinalRow:
    error_codes: list[ErrorCode] = []
    settings = context.settings
    wrong_year_blocking = settings.deadline.wrong_year_blocking

    validation = validate_row(raw, error_codes, settings, context.reference_year)
    row = validation.normalized
    seed = compute_variation_seed(row.team_role, row.task_type, row.company, row.row_id)
    metrics = resolve_metrics(row, seed, error_codes, context.tables)

    status = derive_status(validation, metrics, wrong_year_blocking=wrong_year_blocking)
    if status is Status.INVALID:
        objectives = ObjectiveResult()
        selected = ("", "")
    else:
        prepared = PreparedRow(
            row_id=row.row_id,
            team_role=row.team_role,
            task_type=row.task_type,
            task_name=row.task_name,
            dead_line=row.dead_line,
            strategic_benefit=row.strategic_benefit,
            company=row.company,
            mode=validation.mode,
            output_metric=metrics.output,
            quality_metric=metrics.quality,
            improvement_metric=metrics.improvement,
            variation_seed=seed,
            company_is_generic=row.company_is_generic,
            metrics_auto_suggested=metrics.was_auto_filled,
        )
        objectives = build_objectives(prepared, context.tables)
        selected = select_objective(prepared, objectives)

    return assemble_row(
        row.row_id,
        validation,
        metrics,
        objectives,
        selected,
        error_codes,
        seed,
        wrong_year_blocking=wrong_year_blocking,
    )


def process_row(raw: RawRow, context: EngineContext | None = None) -> FinalRow:
    """Process one row end to end."""
    context = context or EngineContext.create()
    try:
        return _run_row(raw, context)
    except Exception:
        logger.exception("row %s: internal engine error", raw.row_id)
        return _internal_error_row(raw)


def process_batch(
    rows: Sequence[RawRow],
    context: EngineContext | None = None,
    *,
    max_workers: int | None = None,
    error_log: ErrorLogBuffer | None = None,
    source: str = "request",
) -> BatchResult:
    """Process rows and aggregate them into a BatchResult.

    Output order equals input order and row content does not depend on
    ``max_workers``. With ``max_workers`` > 1 rows fan out to a thread pool;
    otherwise they run sequentially.

    Args:
        rows: raw rows in submission order
        context: shared run state (settings, tables, reference year)
        max_workers: thread pool size; None / 1 means sequential
        error_log: when given, one ErrorRecord per (row, code) is appended
        source: label stored in error records (file name or "request")
    """
    context = context or EngineContext.create()
    start_time = datetime.now(UTC)
    timings = RowTimingAccumulator()
    results: list[FinalRow | None] = [None] * len(rows)

    def timed(raw: RawRow) -> tuple[FinalRow, float]:
        t0 = time.perf_counter()
        result = process_row(raw, context)
        return result, time.perf_counter() - t0

    with ProgressTracker(len(rows)) as progress:
        if max_workers is not None and max_workers > 1 and len(rows) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = {executor.submit(timed, raw): i for i, raw in enumerate(rows)}
                for future in as_completed(futures):
                    index = futures[future]
                    result, elapsed = future.result()
                    results[index] = result
                    timings.add_row_time(elapsed)
                    progress.advance(result.status.value)
        else:
            for index, raw in enumerate(rows):
                result, elapsed = timed(raw)
                results[index] = result
                timings.add_row_time(elapsed)
                progress.advance(result.status.value)

    final_rows = tuple(r for r in results if r is not None)

    if error_log is not None:
        for result in final_rows:
            error_log.append_codes(source, result.row_id, result.error_codes)

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    throughput = len(final_rows) / elapsed_seconds if elapsed_seconds > 0 else 0.0
    _, avg_row, p95_row = timings.get_stats()

    logger.debug(
        "batch done: rows=%d workers=%s avg_row_sec=%.6f p95_row_sec=%.6f",
        len(final_rows),
        max_workers,
        avg_row,
        p95_row,
    )
    return BatchResult(
        rows=final_rows,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput,
        avg_row_seconds=avg_row,
        p95_row_seconds=p95_row,
    )
