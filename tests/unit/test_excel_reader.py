from __future__ import annotations

import datetime as dt
from pathlib import Path

import pandas as pd
import pytest

from kpi_engine.excel.reader import (
    MissingColumnsError,
    SheetHeaderError,
    canonical_column,
    frame_to_rows,
    read_rows,
)

HEADER = ["Row ID", "Company", "Team Role", "Task Type", "Task Name", "Deadline", "Strategic Benefit"]


def _write_csv(path: Path, lines: list[str]) -> Path:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Team Role", "team_role"),
        ("TEAM-ROLE", "team_role"),
        ("  role ", "team_role"),
        ("Due Date", "dead_line"),
        ("dead_line", "dead_line"),
        ("No.", "row_id"),
        ("Benefit", "strategic_benefit"),
        ("Owner", None),
    ],
)
def test_canonical_column(header: str, expected: str | None):
    assert canonical_column(header) == expected


def test_read_csv_rows(tmp_path: Path):
    path = _write_csv(
        tmp_path / "rows.csv",
        [
            ",".join(HEADER + ["Output"]),
            "7,Acme Corp,Design,Project,Homepage redesign,2025-10-01,Grow reach,Deliver 3 variants",
            ",,Content,Consultation,N/A,2025-11-01,Improve tone,",
        ],
    )
    rows = read_rows(path)
    assert len(rows) == 2
    first, second = rows
    assert first.row_id == 7
    assert first.company == "Acme Corp"
    assert first.team_role == "Design"
    assert first.output_metric == "Deliver 3 variants"
    assert first.quality_metric is None
    # 空セルは None, "N/A" は文字列のまま
    assert second.row_id == 2
    assert second.company is None
    assert second.task_name == "N/A"
    assert second.output_metric is None


def test_blank_lines_are_skipped(tmp_path: Path):
    path = _write_csv(
        tmp_path / "rows.csv",
        [
            ",".join(HEADER),
            "1,Acme,Design,Project,Task A,2025-10-01,Benefit A",
            ",,,,,,",
            "3,Acme,Design,Project,Task C,2025-10-01,Benefit C",
        ],
    )
    rows = read_rows(path)
    assert [r.row_id for r in rows] == [1, 3]


def test_non_finite_row_id_falls_back_to_ordinal(tmp_path: Path):
    path = _write_csv(
        tmp_path / "rows.csv",
        [
            ",".join(HEADER),
            "inf,Acme,Design,Project,Task A,2025-10-01,Benefit A",
            "1e400,Acme,Design,Project,Task B,2025-10-01,Benefit B",
            "-inf,Acme,Design,Project,Task C,2025-10-01,Benefit C",
        ],
    )
    rows = read_rows(path)
    assert [r.row_id for r in rows] == [1, 2, 3]


def test_unknown_columns_ignored(tmp_path: Path):
    path = _write_csv(
        tmp_path / "rows.csv",
        [
            "Owner,Role,Type,Task,Due,Benefit",
            "someone,Design,Project,Task A,2025-10-01,Benefit A",
        ],
    )
    (row,) = read_rows(path)
    assert row.row_id == 1
    assert row.task_name == "Task A"
    assert row.dead_line == "2025-10-01"


def test_missing_required_columns(tmp_path: Path):
    path = _write_csv(tmp_path / "rows.csv", ["Task Name,Team Role", "A,Design"])
    with pytest.raises(MissingColumnsError) as e:
        read_rows(path)
    assert "task_type" in str(e.value)
    assert "rows.csv" in str(e.value)


def test_header_without_known_columns(tmp_path: Path):
    path = _write_csv(tmp_path / "rows.csv", ["foo,bar", "1,2"])
    with pytest.raises(SheetHeaderError):
        read_rows(path)


def test_unsupported_suffix(tmp_path: Path):
    path = tmp_path / "rows.txt"
    path.write_text("x", encoding="utf-8")
    with pytest.raises(SheetHeaderError):
        read_rows(path)


def test_empty_frame():
    with pytest.raises(SheetHeaderError):
        frame_to_rows(pd.DataFrame())


def test_read_xlsx_with_date_cells(tmp_path: Path):
    path = tmp_path / "rows.xlsx"
    frame = pd.DataFrame(
        [
            HEADER,
            [1, "Acme Corp", "Design", "Project", "Homepage redesign", dt.datetime(2025, 10, 1), "Grow reach"],
            [None, None, "Development", "Project", "API", "2025-12-01", "Stability"],
        ]
    )
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name="KPI", header=False, index=False)

    rows = read_rows(path)
    assert len(rows) == 2
    assert rows[0].row_id == 1
    assert rows[0].dead_line == "2025-10-01"
    assert rows[1].row_id == 2
    assert rows[1].company is None
    assert rows[1].team_role == "Development"
