from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display service with tqdm (TTY only).

A single tqdm bar per batch run, disabled when stdout is not a TTY so CI
logs do not fill up with ANSI control sequences. The bar is advanced from
the thread that collects row results, never from worker threads.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressTracker:
    """Row progress for one batch.

    Counts per status are kept whether or not the bar is shown, so callers
    can read them back after the run.
    """

    def __init__(self, total_rows: int, *, description: str = "Generating objectives") -> None:
        self.total_rows = total_rows
        self.description = description
        self.done = 0
        self.counts: dict[str, int] = {}

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, status: str) -> None:
        """Record one finished row with its final status."""
        self.done += 1
        self.counts[status] = self.counts.get(status, 0) + 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(**{k.lower(): v for k, v in sorted(self.counts.items())})

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
