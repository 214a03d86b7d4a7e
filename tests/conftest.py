# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pytest

from kpi_engine.config.loader import CONFIG_PATH_ENV, REFERENCE_YEAR_ENV
from kpi_engine.config.tables import load_tables
from kpi_engine.engine.pipeline import EngineContext
from kpi_engine.logging.init import reset_logging
from kpi_engine.models.config_models import DeadlineConfig, EngineSettings
from kpi_engine.models.row import RawRow

REFERENCE_YEAR = 2025


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    # 実行環境の .env / 環境変数に結果が左右されないようにする
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(REFERENCE_YEAR_ENV, raising=False)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """deadline:
  reference_year: 2025
  wrong_year_blocking: true
domain:
  allowed_task_types: [Project, Change Request, Consultation]
sanitizer:
  dangerous_substrings: [forbidden phrase]
  low_signal_substrings: [asdf]
limits:
  max_rows: 5
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "engine.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture(scope="session")
def tables():
    return load_tables()


@pytest.fixture()
def settings_2025() -> EngineSettings:
    return EngineSettings(deadline=DeadlineConfig(reference_year=REFERENCE_YEAR))


@pytest.fixture()
def context_2025(settings_2025: EngineSettings) -> EngineContext:
    return EngineContext.create(settings_2025)


@pytest.fixture()
def design_row_data() -> dict[str, object]:
    """Complete Design / Project row with every metric supplied."""
    return {
        "row_id": 1,
        "company": "Acme Corp",
        "team_role": "Design",
        "task_type": "Project",
        "task_name": "Homepage redesign",
        "dead_line": "2025-10-01",
        "strategic_benefit": "Enhance the organization's digital presence.",
        "output_metric": "Deliver 3 homepage variants for user testing",
        "quality_metric": "Ensure WCAG AA compliance",
        "improvement_metric": "Increase homepage conversion by 10%",
        "mode": "both",
    }


@pytest.fixture()
def design_row(design_row_data: dict[str, object]) -> RawRow:
    return RawRow.from_mapping(design_row_data)


@pytest.fixture()
def make_row(design_row_data: dict[str, object]):
    """Factory: design row with overrides, e.g. ``make_row(task_name=None)``."""
    def _make(**overrides: object) -> RawRow:
        data = {**design_row_data, **overrides}
        return RawRow.from_mapping(data)
    return _make
