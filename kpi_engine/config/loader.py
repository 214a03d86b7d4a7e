from __future__ import annotations

import json
import os
from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DeadlineConfig,
    DomainConfig,
    EngineSettings,
    LimitsConfig,
    SanitizerConfig,
)

"""Engine config loader.

Responsibilities:
- Load YAML ``config/engine.yml`` (or an explicit path)
- Validate against ``schemas/engine_config.json``
- Apply defaults for every omitted key
- Apply environment overrides (``KPI_ENGINE_REFERENCE_YEAR``)
"""

__all__ = [
    "ConfigError",
    "SCHEMA_DIR",
    "DEFAULT_CONFIG_PATH",
    "CONFIG_PATH_ENV",
    "REFERENCE_YEAR_ENV",
    "load_schema",
    "validate_against_schema",
    "read_yaml",
    "load_settings",
]

SCHEMA_DIR = Path(__file__).parent / "schemas"
DEFAULT_CONFIG_PATH = Path("config") / "engine.yml"
CONFIG_PATH_ENV = "KPI_ENGINE_CONFIG"
REFERENCE_YEAR_ENV = "KPI_ENGINE_REFERENCE_YEAR"


class ConfigError(Exception):
    pass


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    """Load a bundled JSON schema by file stem (``engine_config`` etc.)."""
    path = SCHEMA_DIR / f"{name}.json"
    if not path.exists():
        raise ConfigError(f"schema not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file {path.name}: {e}") from e


def validate_against_schema(data: Any, schema_name: str, *, label: str) -> None:
    """Validate ``data`` against a bundled schema.

    Raises:
        ConfigError: schema missing / unreadable, or ``data`` violates it.
            The message carries ``label`` and the JSON path of the failure.
    """
    schema = load_schema(schema_name)
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"{label} validation failed at {where}: {e.message}") from e


def read_yaml(path: Path) -> Any:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml in {path.name}: {e}") from e


def _reference_year_override() -> int | None:
    raw = os.environ.get(REFERENCE_YEAR_ENV, "").strip()
    if not raw:
        return None
    if not raw.isdigit() or len(raw) != 4:
        raise ConfigError(f"{REFERENCE_YEAR_ENV} must be a 4-digit year, got {raw!r}")
    return int(raw)


def _build_settings(data: dict[str, Any]) -> EngineSettings:
    deadline_raw = data.get("deadline") or {}
    domain_raw = data.get("domain") or {}
    sanitizer_raw = data.get("sanitizer") or {}
    limits_raw = data.get("limits") or {}

    domain_defaults = DomainConfig()
    deadline = DeadlineConfig(
        reference_year=deadline_raw.get("reference_year"),
        wrong_year_blocking=deadline_raw.get("wrong_year_blocking", True),
    )
    domain = DomainConfig(
        allowed_task_types=tuple(
            domain_raw.get("allowed_task_types", domain_defaults.allowed_task_types)
        ),
        allowed_team_roles=tuple(
            domain_raw.get("allowed_team_roles", domain_defaults.allowed_team_roles)
        ),
        generic_company_tokens=tuple(
            t.strip().lower()
            for t in domain_raw.get(
                "generic_company_tokens", domain_defaults.generic_company_tokens
            )
        ),
    )
    sanitizer = SanitizerConfig(
        dangerous_substrings=tuple(sanitizer_raw.get("dangerous_substrings", ())),
        low_signal_substrings=tuple(sanitizer_raw.get("low_signal_substrings", ())),
    )
    limits = LimitsConfig(max_rows=limits_raw.get("max_rows", LimitsConfig().max_rows))
    return EngineSettings(
        deadline=deadline,
        domain=domain,
        sanitizer=sanitizer,
        limits=limits,
        data_dir=data.get("data_dir"),
    )


def load_settings(path: Path | None = None) -> EngineSettings:
    """Load engine settings.

    Resolution order for the file: ``path`` argument, ``KPI_ENGINE_CONFIG``
    env var, ``config/engine.yml``. An explicitly requested file (argument or
    env var) must exist; the implicit default may be absent, in which case the
    built-in defaults apply.

    Raises:
        ConfigError: missing explicit file, invalid YAML, schema violation,
            malformed ``KPI_ENGINE_REFERENCE_YEAR``.
    """
    explicit = path is not None or bool(os.environ.get(CONFIG_PATH_ENV))
    if path is None:
        path = Path(os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)

    if not explicit and not path.exists():
        data: dict[str, Any] = {}
    else:
        loaded = read_yaml(path)
        data = loaded if loaded is not None else {}
        validate_against_schema(data, "engine_config", label=f"config {path.name}")

    settings = _build_settings(data)

    year = _reference_year_override()
    if year is not None:
        settings = replace(settings, deadline=replace(settings.deadline, reference_year=year))
    return settings
