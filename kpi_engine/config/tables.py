from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .loader import ConfigError, read_yaml, validate_against_schema

"""Read-only data tables (metric matrix, objective templates, text rules).

Tables are loaded from YAML once, validated against the bundled JSON schemas
and frozen into the record types below. Nothing downstream re-checks their
shape per row.
"""

__all__ = [
    "DATA_DIR",
    "MetricTriple",
    "ObjectivePattern",
    "VerbEntry",
    "TailRule",
    "RewriteRule",
    "BaselineTables",
    "EngineTables",
    "load_tables",
]

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

MATRIX_FILE = "role_metric_matrix.yml"
TEMPLATES_FILE = "objective_templates.yml"
TEXT_RULES_FILE = "text_rules.yml"


@dataclass(frozen=True)
class MetricTriple:
    output: str
    quality: str
    improvement: str


@dataclass(frozen=True)
class ObjectivePattern:
    """One objective sentence template plus its applicability filters."""
    id: str
    template: str
    mode: str  # simple | complex | both
    verb_slot: str
    roles: tuple[str, ...] = ()  # role families; empty = any
    task_types: tuple[str, ...] = ()  # empty = any
    lead: bool | None = None

    def applies(self, mode: str, family: str, task_type: str, is_lead: bool) -> bool:
        if self.mode not in (mode, "both"):
            return False
        if self.roles and family not in self.roles:
            return False
        if self.task_types and task_type not in self.task_types:
            return False
        if self.lead is not None and self.lead != is_lead:
            return False
        return True


@dataclass(frozen=True)
class VerbEntry:
    text: str
    slot: str
    modes: tuple[str, ...] = ()  # empty = any mode


@dataclass(frozen=True)
class TailRule:
    """Tail-clause bucket; ``None`` match keys accept any value."""
    bucket: str
    templates: tuple[str, ...]
    has_company: bool | None = None
    company_is_generic: bool | None = None
    has_benefit: bool | None = None

    def matches(self, has_company: bool, company_is_generic: bool, has_benefit: bool) -> bool:
        checks = (
            (self.has_company, has_company),
            (self.company_is_generic, company_is_generic),
            (self.has_benefit, has_benefit),
        )
        return all(expected is None or expected == actual for expected, actual in checks)


@dataclass(frozen=True)
class RewriteRule:
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


@dataclass(frozen=True)
class BaselineTables:
    change_verbs: tuple[str, ...]
    quality_keywords: tuple[str, ...]
    output_keywords: tuple[str, ...]
    clauses: Mapping[str, tuple[str, ...]]  # quality / output / generic


@dataclass(frozen=True)
class EngineTables:
    """All read-only lookup data used by the metrics resolver and generator."""
    matrix: Mapping[str, Mapping[str, tuple[MetricTriple, ...]]]
    default_metrics: Mapping[str, MetricTriple]
    patterns: tuple[ObjectivePattern, ...]
    fallback_template: str
    verbs: tuple[VerbEntry, ...]
    fallback_verb: str
    connectors: Mapping[str, tuple[str, ...]]
    baseline: BaselineTables
    tail_rules: tuple[TailRule, ...]
    variations: Mapping[str, tuple[str, ...]]
    task_name_synonyms: tuple[RewriteRule, ...]
    benefit_rewrites: tuple[RewriteRule, ...]
    action_verbs: frozenset[str]
    structural_cleanup: tuple[RewriteRule, ...]
    cosmetic_cleanup: tuple[RewriteRule, ...]
    humanization_cleanup: tuple[RewriteRule, ...]


def _compile_rules(raw: list[dict[str, str]], label: str) -> tuple[RewriteRule, ...]:
    rules: list[RewriteRule] = []
    for i, item in enumerate(raw):
        try:
            compiled = re.compile(item["pattern"], re.IGNORECASE)
        except re.error as e:
            raise ConfigError(f"{label}[{i}]: invalid pattern {item['pattern']!r}: {e}") from e
        rules.append(RewriteRule(pattern=compiled, replacement=item["replacement"]))
    return tuple(rules)


def _triple(raw: Mapping[str, str]) -> MetricTriple:
    return MetricTriple(
        output=raw["output"].strip(),
        quality=raw["quality"].strip(),
        improvement=raw["improvement"].strip(),
    )


def _load(directory: Path, file_name: str, schema_name: str) -> dict[str, Any]:
    path = directory / file_name
    data = read_yaml(path)
    validate_against_schema(data, schema_name, label=f"table {file_name}")
    return data


def _build_matrix(data: dict[str, Any]) -> tuple[
    Mapping[str, Mapping[str, tuple[MetricTriple, ...]]], Mapping[str, MetricTriple]
]:
    matrix = {
        role: MappingProxyType({
            task: tuple(_triple(t) for t in entries) for task, entries in buckets.items()
        })
        for role, buckets in data["matrix"].items()
    }
    defaults = {key: _triple(t) for key, t in data["defaults"].items()}
    return MappingProxyType(matrix), MappingProxyType(defaults)


def _build_patterns(raw: list[dict[str, Any]]) -> tuple[ObjectivePattern, ...]:
    return tuple(
        ObjectivePattern(
            id=p["id"],
            template=p["template"],
            mode=p["mode"],
            verb_slot=p["verb_slot"],
            roles=tuple(r.lower() for r in p.get("roles") or ()),
            task_types=tuple(p.get("task_types") or ()),
            lead=p.get("lead"),
        )
        for p in raw
    )


@lru_cache(maxsize=None)
def load_tables(data_dir: str | None = None) -> EngineTables:
    """Load and freeze all data tables.

    Cached per ``data_dir`` so a process loads each directory once.

    Raises:
        ConfigError: missing file, invalid YAML, schema violation or an
            uncompilable rewrite pattern.
    """
    directory = Path(data_dir) if data_dir else DATA_DIR

    matrix_data = _load(directory, MATRIX_FILE, "role_metric_matrix")
    templates = _load(directory, TEMPLATES_FILE, "objective_templates")
    text_rules = _load(directory, TEXT_RULES_FILE, "text_rules")

    matrix, defaults = _build_matrix(matrix_data)

    baseline_raw = templates["baseline"]
    baseline = BaselineTables(
        change_verbs=tuple(v.lower() for v in baseline_raw["change_verbs"]),
        quality_keywords=tuple(k.lower() for k in baseline_raw["keywords"]["quality"]),
        output_keywords=tuple(k.lower() for k in baseline_raw["keywords"]["output"]),
        clauses=MappingProxyType(
            {kind: tuple(items) for kind, items in baseline_raw["clauses"].items()}
        ),
    )

    tail_rules = tuple(
        TailRule(
            bucket=r["bucket"],
            templates=tuple(r["templates"]),
            has_company=r.get("has_company"),
            company_is_generic=r.get("company_is_generic"),
            has_benefit=r.get("has_benefit"),
        )
        for r in templates["tail_rules"]
    )

    cleanup = text_rules["cleanup"]
    return EngineTables(
        matrix=matrix,
        default_metrics=defaults,
        patterns=_build_patterns(templates["patterns"]),
        fallback_template=templates["fallback_template"],
        verbs=tuple(
            VerbEntry(text=v["text"], slot=v["slot"], modes=tuple(v.get("modes") or ()))
            for v in templates["verbs"]
        ),
        fallback_verb=templates["fallback_verb"],
        connectors=MappingProxyType(
            {mode: tuple(items) for mode, items in templates["connectors"].items()}
        ),
        baseline=baseline,
        tail_rules=tail_rules,
        variations=MappingProxyType(
            {slot: tuple(items) for slot, items in templates["variations"].items()}
        ),
        task_name_synonyms=_compile_rules(text_rules["task_name_synonyms"], "task_name_synonyms"),
        benefit_rewrites=_compile_rules(text_rules["benefit_rewrites"], "benefit_rewrites"),
        action_verbs=frozenset(text_rules["action_verbs"]),
        structural_cleanup=_compile_rules(cleanup["structural"], "cleanup.structural"),
        cosmetic_cleanup=_compile_rules(cleanup["cosmetic"], "cleanup.cosmetic"),
        humanization_cleanup=_compile_rules(cleanup["humanization"], "cleanup.humanization"),
    )
