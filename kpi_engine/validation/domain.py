from __future__ import annotations

import logging

from ..models.config_models import EngineSettings
from ..models.error_codes import ErrorCode, add_error_code
from ..models.outcomes import DeadlineResult, ValidationOutcome
from ..models.row import NormalizedRow, RawRow
from .deadline import parse_deadline
from .normalize import normalize_mode, normalize_task_type, normalize_team_role, to_safe_str
from .sanitizer import check_text

"""Per-row domain validation.

Runs the sanitizer, deadline parser and field normalizer over one row in a
fixed field order, so the order in which codes are appended is stable:

task name -> task type -> team role -> strategic benefit -> company
-> metrics (output, quality, improvement) -> deadline -> mode

This module does not decide the final status and does not fill metrics.
"""

__all__ = [
    "MANDATORY_FIELD_ORDER",
    "INVALID_VALUE_ORDER",
    "INVALID_TEXT_ORDER",
    "validate_row",
]

logger = logging.getLogger(__name__)

MANDATORY_FIELD_ORDER = ("Task Name", "Task Type", "Team Role", "Deadline", "Strategic Benefit")
INVALID_VALUE_ORDER = ("Task Type", "Team Role")
INVALID_TEXT_ORDER = (
    "Task Name",
    "Company",
    "Strategic Benefit",
    "Output",
    "Quality",
    "Improvement",
)


def _ordered(items: list[str], order: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(sorted(dict.fromkeys(items), key=order.index))


def validate_row(
    raw: RawRow,
    error_codes: list[ErrorCode],
    settings: EngineSettings | None = None,
    reference_year: int | None = None,
) -> ValidationOutcome:
    """Validate one raw row, appending codes to ``error_codes``.

    ``reference_year`` wins over ``settings.deadline.reference_year``; when
    both are None the deadline parser uses the current UTC year.
    """
    settings = settings or EngineSettings.default()
    policy = settings.sanitizer
    if reference_year is None:
        reference_year = settings.deadline.reference_year

    missing: list[str] = []
    invalid: list[str] = []
    invalid_text: list[str] = []

    task_name = to_safe_str(raw.task_name)
    benefit = to_safe_str(raw.strategic_benefit)
    company = to_safe_str(raw.company)
    deadline_raw = to_safe_str(raw.dead_line)

    # Task Name
    if not task_name:
        missing.append("Task Name")
        add_error_code(error_codes, ErrorCode.MISSING_TASK_NAME)
    elif check_text(task_name, error_codes, policy).flagged:
        invalid_text.append("Task Name")

    # Task Type
    task_type = normalize_task_type(raw.task_type, settings.domain.allowed_task_types)
    if not task_type.value:
        missing.append("Task Type")
        add_error_code(error_codes, ErrorCode.MISSING_TASK_TYPE)
    elif not task_type.allowed:
        invalid.append("Task Type")
        add_error_code(error_codes, ErrorCode.INVALID_TASK_TYPE)

    # Team Role
    team_role = normalize_team_role(raw.team_role, settings.domain.allowed_team_roles)
    if not team_role.value:
        missing.append("Team Role")
        add_error_code(error_codes, ErrorCode.MISSING_TEAM_ROLE)
    elif not team_role.allowed:
        invalid.append("Team Role")
        add_error_code(error_codes, ErrorCode.INVALID_TEAM_ROLE)

    # Strategic Benefit
    if not benefit:
        missing.append("Strategic Benefit")
        add_error_code(error_codes, ErrorCode.MISSING_STRATEGIC_BENEFIT)
    elif check_text(benefit, error_codes, policy).flagged:
        invalid_text.append("Strategic Benefit")

    # Company (任意項目: あれば検査)
    if company and check_text(company, error_codes, policy).flagged:
        invalid_text.append("Company")
    company_is_generic = company.lower() in settings.domain.generic_company_tokens

    # Metrics
    metrics: dict[str, str] = {}
    for label, attr in (
        ("Output", "output_metric"),
        ("Quality", "quality_metric"),
        ("Improvement", "improvement_metric"),
    ):
        text = to_safe_str(getattr(raw, attr))
        metrics[attr] = text
        if text and check_text(text, error_codes, policy).flagged:
            invalid_text.append(label)

    # Deadline
    if not deadline_raw:
        missing.append("Deadline")
        add_error_code(error_codes, ErrorCode.MISSING_DEADLINE)
        deadline = DeadlineResult()
    else:
        deadline = parse_deadline(deadline_raw, error_codes, reference_year)

    # Mode
    mode, mode_was_invalid = normalize_mode(raw.mode, error_codes)

    normalized = NormalizedRow(
        row_id=raw.row_id,
        task_name=task_name,
        task_type=task_type.value,
        team_role=team_role.value,
        strategic_benefit=benefit,
        company=company,
        output_metric=metrics["output_metric"],
        quality_metric=metrics["quality_metric"],
        improvement_metric=metrics["improvement_metric"],
        dead_line=deadline.canonical or deadline_raw,
        deadline_date=deadline.date,
        mode=mode,
        company_is_generic=company_is_generic,
    )

    outcome = ValidationOutcome(
        normalized=normalized,
        missing_fields=_ordered(missing, MANDATORY_FIELD_ORDER),
        invalid_fields=_ordered(invalid, INVALID_VALUE_ORDER),
        invalid_text_fields=_ordered(invalid_text, INVALID_TEXT_ORDER),
        deadline=deadline,
        mode=mode,
        mode_was_invalid=mode_was_invalid,
    )
    if outcome.blocking:
        logger.debug(
            "row %s blocking: missing=%s invalid=%s invalid_text=%s deadline_valid=%s",
            raw.row_id,
            list(outcome.missing_fields),
            list(outcome.invalid_fields),
            list(outcome.invalid_text_fields),
            deadline.valid,
        )
    return outcome
