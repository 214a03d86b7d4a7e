from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import date, datetime
from enum import Enum
from typing import Any

"""Row models for the KPI objective engine.

RawRow is the untrusted input (one per submitted task), NormalizedRow the
canonical form produced by the domain validator, PreparedRow the immutable
hand-off consumed once by the objective generator.
"""

__all__ = [
    "Mode",
    "RawRow",
    "NormalizedRow",
    "PreparedRow",
    "RAW_TEXT_FIELDS",
]


class Mode(str, Enum):
    """Objective mode requested for a row.

    - SIMPLE: generate the simple sentence only
    - COMPLEX: generate the complex sentence only
    - BOTH: generate both, the caller picks (default and fallback)
    """
    SIMPLE = "simple"
    COMPLEX = "complex"
    BOTH = "both"


RAW_TEXT_FIELDS = (
    "company",
    "team_role",
    "task_type",
    "task_name",
    "dead_line",
    "strategic_benefit",
    "output_metric",
    "quality_metric",
    "improvement_metric",
    "mode",
)


def _coerce_cell(value: Any) -> str | None:
    """Turn a transport / spreadsheet cell into ``str | None``.

    NaN (pandas empty cell) and None stay None; dates become ISO text so the
    deadline parser sees a supported grammar.
    """
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class RawRow:
    """Untrusted row as submitted by the caller (JSON body or spreadsheet line)."""
    row_id: int
    company: str | None = None
    team_role: str | None = None
    task_type: str | None = None
    task_name: str | None = None
    dead_line: str | None = None
    strategic_benefit: str | None = None
    output_metric: str | None = None
    quality_metric: str | None = None
    improvement_metric: str | None = None
    mode: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default_row_id: int = 0) -> RawRow:
        """Build a RawRow from a dict, ignoring unknown keys."""
        row_id = data.get("row_id")
        if row_id is None or (isinstance(row_id, float) and math.isnan(row_id)):
            row_id = default_row_id
        values = {name: _coerce_cell(data.get(name)) for name in RAW_TEXT_FIELDS}
        return cls(row_id=int(row_id), **values)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class NormalizedRow:
    """Canonical row after domain validation.

    Mandatory fields are trimmed and canonical-cased; ``dead_line`` holds the
    ISO calendar date when the deadline parsed, otherwise the trimmed input.
    Empty strings stand for absent values.
    """
    row_id: int
    task_name: str
    task_type: str
    team_role: str
    strategic_benefit: str
    company: str
    output_metric: str
    quality_metric: str
    improvement_metric: str
    dead_line: str
    deadline_date: date | None
    mode: Mode
    company_is_generic: bool = False


@dataclass(frozen=True)
class PreparedRow:
    """Canonical row + resolved metrics + seed; input of the objective generator."""
    row_id: int
    team_role: str
    task_type: str
    task_name: str
    dead_line: str
    strategic_benefit: str
    company: str
    mode: Mode
    output_metric: str
    quality_metric: str
    improvement_metric: str
    variation_seed: int
    company_is_generic: bool = False
    metrics_auto_suggested: bool = False

    @property
    def is_lead(self) -> bool:
        return "lead" in self.team_role.lower().split()

    @property
    def has_company(self) -> bool:
        return bool(self.company)
