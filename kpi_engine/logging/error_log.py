from __future__ import annotations

import threading
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_codes import ERROR_DESCRIPTIONS, ErrorCode
from ..models.error_record import ErrorRecord

"""Per-row error log buffering.

- JSON Lines with a fixed key set (timestamp, source, row, error_code, message)
- One ``logs/errors-YYYYMMDD-HHMMSS.log`` file (UTC) per run, created lazily
- Records are buffered in memory and written on ``flush()``
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "LOGS_DIR",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    append は複数スレッドから呼ばれてもよい (lock で保護)。
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        with self._lock:
            self._records.append(record)

    def append_codes(self, source: str, row: int, codes: Iterable[ErrorCode]) -> None:
        """One record per code, message taken from the code description."""
        for code in codes:
            self.append(ErrorRecord.create(source, row, code.value, ERROR_DESCRIPTIONS[code]))

    @property
    def records(self) -> tuple[ErrorRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None when nothing was buffered."""
        with self._lock:
            if not self._records:
                return None
            fp = self.file_path
            with fp.open("a", encoding="utf-8") as f:
                for r in self._records:
                    f.write(r.to_json_line() + "\n")
            self._records.clear()
            return fp
