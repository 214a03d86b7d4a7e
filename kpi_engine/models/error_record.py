from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the per-row error log.

One record per (row, error code). ``row=-1`` is the sentinel for problems
that are not tied to a single row (a request rejected at the boundary).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Input being processed (file name or "request")
        row: row_id of the offending row. -1 when no row applies
        error_code: Short code such as "E304"
        message: Human-readable description of the code
    """
    timestamp: str  # ISO8601 UTC
    source: str
    row: int
    error_code: str
    message: str

    @staticmethod
    def create(source: str, row: int, error_code: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with the current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            row=row,
            error_code=error_code,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON Lines entry (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
