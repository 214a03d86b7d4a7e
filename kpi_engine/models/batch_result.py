from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime

from .outcomes import FinalRow, Status

"""Batch result models for the KPI objective engine.

BatchResult aggregates the FinalRows of one batch with status counts and
timing, which the summary service renders into the SUMMARY line.
"""

__all__ = [
    "BatchResult",
    "RowTimingAccumulator",
]


@dataclass(frozen=True)
class BatchResult:
    """Aggregated results for one batch invocation."""
    rows: tuple[FinalRow, ...]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    avg_row_seconds: float = 0.0
    p95_row_seconds: float = 0.0

    def _count(self, status: Status) -> int:
        return sum(1 for r in self.rows if r.status is status)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def valid_count(self) -> int:
        return self._count(Status.VALID)

    @property
    def needs_review_count(self) -> int:
        return self._count(Status.NEEDS_REVIEW)

    @property
    def invalid_count(self) -> int:
        return self._count(Status.INVALID)

    def to_dict(self) -> dict[str, object]:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "valid_count": self.valid_count,
            "needs_review_count": self.needs_review_count,
            "invalid_count": self.invalid_count,
        }


class RowTimingAccumulator:
    """Collects per-row processing times and summarises them (avg / p95)."""

    def __init__(self) -> None:
        self.row_times: list[float] = []

    def add_row_time(self, elapsed_seconds: float) -> None:
        self.row_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_rows, avg_row_seconds, p95_row_seconds)."""
        if not self.row_times:
            return (0, 0.0, 0.0)

        total = len(self.row_times)
        avg = statistics.mean(self.row_times)
        if total == 1:
            p95 = self.row_times[0]
        else:
            # 20 分位の 19 番目 = p95
            p95 = statistics.quantiles(self.row_times, n=20, method="inclusive")[18]
        return (total, avg, p95)
