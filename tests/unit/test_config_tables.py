from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from kpi_engine.config.loader import ConfigError
from kpi_engine.config.tables import DATA_DIR, load_tables


def _copy_data(tmp_path: Path) -> Path:
    target = tmp_path / "tables"
    shutil.copytree(DATA_DIR, target)
    return target


def test_bundled_tables_load(tables):
    assert set(tables.matrix) >= {"design", "design_lead", "development", "content"}
    assert "generic" in tables.default_metrics
    assert tables.patterns and tables.verbs
    assert tables.connectors["simple"] and tables.connectors["complex"]
    assert tables.tail_rules[-1].bucket == "bare"
    assert "deliver" in tables.action_verbs


def test_tables_are_cached_and_read_only(tables):
    assert load_tables() is tables
    with pytest.raises(TypeError):
        tables.matrix["design"] = {}  # type: ignore[index]


def test_every_lead_pattern_has_governance_slot(tables):
    for pattern in tables.patterns:
        if pattern.lead is True and pattern.mode == "complex":
            assert "{governance}" in pattern.template


def test_missing_table_file(tmp_path: Path):
    data_dir = _copy_data(tmp_path)
    (data_dir / "text_rules.yml").unlink()
    with pytest.raises(ConfigError) as e:
        load_tables(str(data_dir))
    assert "not found" in str(e.value)


def test_schema_violation(tmp_path: Path):
    data_dir = _copy_data(tmp_path)
    path = data_dir / "role_metric_matrix.yml"
    text = path.read_text(encoding="utf-8").replace("  generic:\n", "  generic_typo:\n")
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_tables(str(data_dir))
    assert "role_metric_matrix.yml" in str(e.value)


def test_uncompilable_rewrite_pattern(tmp_path: Path):
    data_dir = _copy_data(tmp_path)
    path = data_dir / "text_rules.yml"
    text = path.read_text(encoding="utf-8").replace(
        "task_name_synonyms:\n", "task_name_synonyms:\n  - {pattern: '([unclosed', replacement: x}\n", 1
    )
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_tables(str(data_dir))
    assert "task_name_synonyms[0]" in str(e.value)
