from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the KPI objective engine.

These are the typed form of ``config/engine.yml``; the YAML loading and
schema validation live in ``kpi_engine/config/loader.py``.
"""

__all__ = [
    "DEFAULT_TASK_TYPES",
    "DEFAULT_TEAM_ROLES",
    "DEFAULT_GENERIC_COMPANY_TOKENS",
    "DeadlineConfig",
    "DomainConfig",
    "SanitizerConfig",
    "LimitsConfig",
    "EngineSettings",
]

DEFAULT_TASK_TYPES = ("Project", "Change Request", "Consultation")
DEFAULT_TEAM_ROLES = (
    "Content",
    "Content Lead",
    "Design",
    "Design Lead",
    "Development",
    "Development Lead",
)
DEFAULT_GENERIC_COMPANY_TOKENS = ("the company", "the organization", "the organisation")


@dataclass(frozen=True)
class DeadlineConfig:
    """Calendar-year rule for deadlines.

    reference_year=None means "current UTC year at call time".
    """
    reference_year: int | None = None
    wrong_year_blocking: bool = True


@dataclass(frozen=True)
class DomainConfig:
    """Allow-lists for the enumerated fields."""
    allowed_task_types: tuple[str, ...] = DEFAULT_TASK_TYPES
    allowed_team_roles: tuple[str, ...] = DEFAULT_TEAM_ROLES
    generic_company_tokens: tuple[str, ...] = DEFAULT_GENERIC_COMPANY_TOKENS


@dataclass(frozen=True)
class SanitizerConfig:
    """Tenant-specific deny-lists appended to the built-in sanitizer rules."""
    dangerous_substrings: tuple[str, ...] = ()
    low_signal_substrings: tuple[str, ...] = ()


@dataclass(frozen=True)
class LimitsConfig:
    max_rows: int = 50  # 1 リクエストあたりの上限行数


@dataclass(frozen=True)
class EngineSettings:
    """Root configuration object for the engine."""
    deadline: DeadlineConfig = field(default_factory=DeadlineConfig)
    domain: DomainConfig = field(default_factory=DomainConfig)
    sanitizer: SanitizerConfig = field(default_factory=SanitizerConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    data_dir: str | None = None  # None -> bundled kpi_engine/data tables

    @classmethod
    def default(cls) -> EngineSettings:
        return cls()
