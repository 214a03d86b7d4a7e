"""Domain models for the KPI objective engine.

Rows flow RawRow -> NormalizedRow -> PreparedRow -> FinalRow; the outcome
records in ``outcomes`` carry each stage's verdict to the next.
"""

from .batch_result import BatchResult
from .config_models import EngineSettings
from .error_codes import ErrorCode
from .outcomes import (
    DeadlineResult,
    FinalRow,
    MetricsOutcome,
    ObjectiveResult,
    Status,
    ValidationOutcome,
)
from .row import Mode, NormalizedRow, PreparedRow, RawRow

__all__ = [
    # Configuration models
    "EngineSettings",
    # Row models
    "RawRow",
    "NormalizedRow",
    "PreparedRow",
    "Mode",
    # Outcomes
    "DeadlineResult",
    "ValidationOutcome",
    "MetricsOutcome",
    "ObjectiveResult",
    "FinalRow",
    "Status",
    "BatchResult",
    "ErrorCode",
]
