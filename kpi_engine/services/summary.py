from __future__ import annotations

from ..models.batch_result import BatchResult

"""SUMMARY line rendering.

Format:
SUMMARY rows={n} valid={a} needs_review={b} invalid={c} elapsed_sec={s} throughput_rps={t}
"""

__all__ = [
    "format_number",
    "render_summary_line",
]


def format_number(value: float) -> str:
    """Render a metric without scientific notation or trailing zeros."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line for a finished batch.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2025, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = BatchResult(
        ...     rows=(), start_time=start, end_time=end,
        ...     elapsed_seconds=2.0, throughput_rows_per_sec=0.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=0 valid=0 needs_review=0 invalid=0 elapsed_sec=2 throughput_rps=0'
    """
    return (
        f"SUMMARY rows={result.total_rows} "
        f"valid={result.valid_count} "
        f"needs_review={result.needs_review_count} "
        f"invalid={result.invalid_count} "
        f"elapsed_sec={format_number(result.elapsed_seconds)} "
        f"throughput_rps={format_number(result.throughput_rows_per_sec)}"
    )
