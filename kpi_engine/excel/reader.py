from __future__ import annotations

import math
import re
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.row import RAW_TEXT_FIELDS, RawRow

"""Spreadsheet row adapter (.xlsx / .csv -> RawRow).

The first row is the header; every following non-empty row is one KPI row.
Header cells are matched through ``COLUMN_ALIASES`` after folding case and
punctuation, so "Team Role", "team_role" and "TEAM-ROLE" all land on
``team_role``. Unknown columns are ignored.

Only reading is supported here; workbook export is not part of this tool.
"""

__all__ = [
    "SheetHeaderError",
    "MissingColumnsError",
    "COLUMN_ALIASES",
    "REQUIRED_COLUMNS",
    "SUPPORTED_SUFFIXES",
    "canonical_column",
    "read_table",
    "frame_to_rows",
    "read_rows",
]


class SheetHeaderError(Exception):
    """Raised when the header row is missing or unreadable."""


class MissingColumnsError(Exception):
    """Raised when mandatory KPI columns are missing from the header."""


SUPPORTED_SUFFIXES = (".xlsx", ".csv")

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "row_id": ("row_id", "row", "id", "no", "number"),
    "company": ("company", "company_name", "organization", "organisation"),
    "team_role": ("team_role", "role"),
    "task_type": ("task_type", "type"),
    "task_name": ("task_name", "task", "name"),
    "dead_line": ("dead_line", "deadline", "due_date", "due"),
    "strategic_benefit": ("strategic_benefit", "benefit"),
    "output_metric": ("output_metric", "output"),
    "quality_metric": ("quality_metric", "quality"),
    "improvement_metric": ("improvement_metric", "improvement"),
    "mode": ("mode", "objective_mode"),
}

REQUIRED_COLUMNS = ("task_name", "task_type", "team_role", "dead_line", "strategic_benefit")

_ALIAS_LOOKUP = {alias: field for field, aliases in COLUMN_ALIASES.items() for alias in aliases}


def canonical_column(header: Any) -> str | None:
    """Map a header cell to a RawRow field name, or None when unknown."""
    folded = re.sub(r"[^a-z0-9]+", "_", str(header).strip().lower()).strip("_")
    return _ALIAS_LOOKUP.get(folded)


def read_table(path: Path, sheet_name: str | int = 0) -> pd.DataFrame:
    """Read the raw sheet without header handling.

    Strings such as "N/A" or "NA" are kept as text (only empty cells become
    NaN) so the sanitizer sees what the user typed.
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(
            path, header=None, dtype=str, keep_default_na=False, na_values=[""]
        )
    if suffix == ".xlsx":
        return pd.read_excel(
            path,
            sheet_name=sheet_name,
            header=None,
            dtype=object,
            keep_default_na=False,
            na_values=[""],
        )
    raise SheetHeaderError(f"unsupported input type: {path.suffix or '<none>'}")


def _row_id(value: Any, default: int) -> int:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return default
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return default


def frame_to_rows(df: pd.DataFrame, *, source: str = "sheet") -> list[RawRow]:
    """Convert a header-less DataFrame (row 0 = header) into RawRows."""
    if df.shape[0] < 1:
        raise SheetHeaderError(f"{source}: header row is missing")

    columns = [canonical_column(c) for c in df.iloc[0].tolist()]
    present = {c for c in columns if c is not None}
    if not present:
        raise SheetHeaderError(f"{source}: no recognised KPI columns in header")
    missing = [c for c in REQUIRED_COLUMNS if c not in present]
    if missing:
        raise MissingColumnsError(f"{source}: missing columns: {missing}")

    rows: list[RawRow] = []
    for ordinal, (_, raw) in enumerate(df.iloc[1:].iterrows(), start=1):
        if raw.isna().all():
            continue
        data: dict[str, Any] = {}
        for field, value in zip(columns, raw.tolist(), strict=False):
            if field is None or field in data:
                continue
            data[field] = None if pd.isna(value) else value
        row_id = _row_id(data.pop("row_id", None), ordinal)
        values = {k: v for k, v in data.items() if k in RAW_TEXT_FIELDS}
        rows.append(RawRow.from_mapping({"row_id": row_id, **values}))
    return rows


def read_rows(path: Path, sheet_name: str | int = 0) -> list[RawRow]:
    """Read ``.xlsx`` / ``.csv`` into RawRows (empty rows skipped)."""
    return frame_to_rows(read_table(path, sheet_name), source=path.name)
