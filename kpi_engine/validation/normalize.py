from __future__ import annotations

import re
from collections.abc import Sequence

from ..models.config_models import DEFAULT_TASK_TYPES, DEFAULT_TEAM_ROLES
from ..models.error_codes import ErrorCode, add_error_code
from ..models.outcomes import FieldMatch
from ..models.row import Mode

"""Enumerated-field normalization (task type, team role, mode)."""

__all__ = [
    "ROLE_FAMILIES",
    "to_safe_str",
    "normalize_task_type",
    "normalize_team_role",
    "normalize_mode",
    "role_family",
]

ROLE_FAMILIES = ("content", "design", "development")

_SEPARATORS_RE = re.compile(r"[_\-]+")
_SPACES_RE = re.compile(r"\s+")
_DASH_RE = re.compile(r"[-–—]")


def to_safe_str(value: object) -> str:
    """None -> "", everything else -> trimmed ``str``."""
    if value is None:
        return ""
    return str(value).strip()


def _fold(value: str) -> str:
    return _SPACES_RE.sub(" ", _SEPARATORS_RE.sub(" ", value)).strip().lower()


def normalize_task_type(
    value: str | None,
    allowed: Sequence[str] = DEFAULT_TASK_TYPES,
) -> FieldMatch:
    """Match against the allow-list ignoring case, whitespace, ``_`` and ``-``.

    Non-matching input comes back trimmed but otherwise unchanged.
    """
    safe = to_safe_str(value)
    if not safe:
        return FieldMatch(value="", allowed=False)
    folded = _fold(safe)
    for canonical in allowed:
        if _fold(canonical) == folded:
            return FieldMatch(value=canonical, allowed=True)
    return FieldMatch(value=safe, allowed=False)


def role_family(role: str) -> str | None:
    """Role family (``content`` / ``design`` / ``development``) or None."""
    head = _DASH_RE.split(role, maxsplit=1)[0].strip().lower()
    for family in ROLE_FAMILIES:
        if head.startswith(family):
            return family
    return None


def normalize_team_role(
    value: str | None,
    allowed: Sequence[str] = DEFAULT_TEAM_ROLES,
) -> FieldMatch:
    """Exact case-insensitive match first, then family + lead reconstruction.

    ``"design - lead"`` and ``"Design Lead (UX)"`` both become ``Design Lead``;
    the rebuilt label must itself be on the allow-list.
    """
    safe = to_safe_str(value)
    if not safe:
        return FieldMatch(value="", allowed=False)

    by_lower = {r.lower(): r for r in allowed}
    exact = by_lower.get(_SPACES_RE.sub(" ", safe).lower())
    if exact is not None:
        return FieldMatch(value=exact, allowed=True)

    family = role_family(safe)
    if family is None:
        return FieldMatch(value=safe, allowed=False)

    is_lead = re.search(r"\blead\b", safe, re.IGNORECASE) is not None
    candidate = family.capitalize() + (" Lead" if is_lead else "")
    canonical = by_lower.get(candidate.lower())
    if canonical is None:
        return FieldMatch(value=safe, allowed=False)
    return FieldMatch(value=canonical, allowed=True)


def normalize_mode(value: str | None, error_codes: list[ErrorCode]) -> tuple[Mode, bool]:
    """Return ``(mode, was_invalid)``.

    Blank -> BOTH silently; unknown values -> BOTH plus E306.
    """
    safe = to_safe_str(value).lower()
    if not safe:
        return Mode.BOTH, False
    try:
        return Mode(safe), False
    except ValueError:
        add_error_code(error_codes, ErrorCode.INVALID_MODE_VALUE)
        return Mode.BOTH, True
