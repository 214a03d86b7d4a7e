"""Row validation: text screening, deadline parsing, field normalization."""

from .deadline import parse_deadline
from .domain import validate_row
from .normalize import normalize_mode, normalize_task_type, normalize_team_role, to_safe_str
from .sanitizer import check_text

__all__ = [
    "check_text",
    "parse_deadline",
    "normalize_task_type",
    "normalize_team_role",
    "normalize_mode",
    "to_safe_str",
    "validate_row",
]
