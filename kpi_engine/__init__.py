"""KPI row validation and SMART objective generation engine."""

from .config import ConfigError, load_settings, load_tables
from .engine import EngineContext, process_batch, process_row
from .models import BatchResult, ErrorCode, FinalRow, Mode, RawRow, Status
from .transport import KpiRequest, TransportError, validate_request

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigError",
    "load_settings",
    "load_tables",
    "EngineContext",
    "process_row",
    "process_batch",
    "RawRow",
    "FinalRow",
    "Mode",
    "Status",
    "ErrorCode",
    "BatchResult",
    "KpiRequest",
    "TransportError",
    "validate_request",
]
