from __future__ import annotations

import logging
import re

from ..config.tables import EngineTables, ObjectivePattern, RewriteRule
from ..models.outcomes import ObjectiveResult
from ..models.row import Mode, PreparedRow
from ..validation.normalize import role_family
from .seed import (
    BASELINE_SALT,
    CONNECTOR_SALT,
    PATTERN_SALT,
    TAIL_SALT,
    VARIATION_SALT,
    VERB_SALT,
    seeded_pick,
)

"""Seed-driven objective sentence generation.

One sentence is built per requested mode (simple / complex):

1. seeded pattern pick among applicable templates (fallback template if none)
2. seeded verb pick for the pattern's verb slot (fallback verb if none)
3. task-name cleanup (own-role prefix, synonyms, title case)
4. metrics clause with list punctuation, seeded connector and an optional
   baseline clause when the improvement metric is a quantifiable change
5. tail clause from the first matching bucket (company / benefit)
6. substitution, seeded micro-variations, structural / cosmetic /
   humanization cleanup, exactly one trailing period

Generation reads only the PreparedRow and the tables: no clock, no
randomness, no shared state.
"""

__all__ = [
    "DEFAULT_DEADLINE_TEXT",
    "clean_task_name",
    "build_deliverable",
    "join_list",
    "metric_phrase",
    "is_quantifiable",
    "baseline_kind",
    "rewrite_benefit",
    "build_metrics_clause",
    "build_tail_clause",
    "build_objective",
    "build_objectives",
    "select_objective",
]

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_TEXT = "the agreed deadline"
DEFAULT_VERB_SLOT = "deliver"

_PLACEHOLDER_RE = re.compile(r"\{[a-z_]+\}")
_TRAILING_PUNCT_RE = re.compile(r"[\s.;:,!]+$")
_SPACES_RE = re.compile(r"\s+")
_ROLE_PREFIX_SEP = r"\s*[:\-–—|/]\s*"


def _is_acronym(word: str) -> bool:
    letters = [c for c in word if c.isalpha()]
    return len(letters) >= 2 and all(c.isupper() for c in letters)


def _lower_first(text: str) -> str:
    if not text:
        return text
    first = text.split(" ", 1)[0]
    if _is_acronym(first):
        return text
    return text[0].lower() + text[1:]


def _apply_all(text: str, rules: tuple[RewriteRule, ...]) -> str:
    for rule in rules:
        text = rule.apply(text)
    return text


def _first_word(text: str) -> str:
    m = re.match(r"[A-Za-z]+", text)
    return m.group(0).lower() if m else ""


# --------------------------------------------------------------------------
# Task name / deliverable
# --------------------------------------------------------------------------

def _title_word(word: str) -> str:
    if _is_acronym(word) or any(c.isupper() for c in word[1:]):
        return word  # UX, iOS, SaaS などはそのまま
    for i, ch in enumerate(word):
        if ch.isalpha():
            return word[:i] + ch.upper() + word[i + 1:]
    return word


def clean_task_name(task_name: str, team_role: str, tables: EngineTables) -> str:
    """Strip the row's own role prefix, apply synonyms, title-case each word."""
    name = task_name.strip()
    prefixes = [team_role]
    family = role_family(team_role)
    if family:
        prefixes.append(family)
    for prefix in prefixes:
        if not prefix:
            continue
        stripped = re.sub(
            r"^" + re.escape(prefix) + _ROLE_PREFIX_SEP, "", name, count=1, flags=re.IGNORECASE
        )
        if stripped != name and stripped.strip():
            name = stripped
            break

    name = _apply_all(name, tables.task_name_synonyms)
    name = _SPACES_RE.sub(" ", name).strip()
    return " ".join(_title_word(w) for w in name.split(" "))


def build_deliverable(task_name: str, task_type: str) -> str:
    type_text = task_type.strip().lower()
    if not type_text or task_name.lower().endswith(type_text):
        return task_name
    return f"{task_name} {type_text}"


# --------------------------------------------------------------------------
# Metrics clause
# --------------------------------------------------------------------------

def join_list(items: list[str]) -> str:
    """``a`` / ``a and b`` / ``a, b, and c``."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return ", ".join(items[:-1]) + f", and {items[-1]}"


def metric_phrase(text: str, tables: EngineTables) -> str:
    """Verb-led metric phrase usable after ``to`` (``achieve`` prepended if needed)."""
    phrase = _TRAILING_PUNCT_RE.sub("", _SPACES_RE.sub(" ", text).strip())
    if not phrase:
        return ""
    if _first_word(phrase) in tables.action_verbs:
        return _lower_first(phrase)
    return "achieve " + _lower_first(phrase)


def is_quantifiable(text: str, tables: EngineTables) -> bool:
    if not re.search(r"\d", text):
        return False
    if "%" in text:
        return True
    lower = text.lower()
    return any(re.search(rf"\b{re.escape(v)}", lower) for v in tables.baseline.change_verbs)


def baseline_kind(text: str, tables: EngineTables) -> str:
    lower = text.lower()
    if any(k in lower for k in tables.baseline.quality_keywords):
        return "quality"
    if any(k in lower for k in tables.baseline.output_keywords):
        return "output"
    return "generic"


def build_metrics_clause(row: PreparedRow, mode: str, tables: EngineTables) -> str:
    metrics = [
        m for m in (row.output_metric, row.quality_metric, row.improvement_metric) if m.strip()
    ]
    phrases = [p for p in (metric_phrase(m, tables) for m in metrics) if p]
    if not phrases:
        return ""

    connector = seeded_pick(
        row.variation_seed, CONNECTOR_SALT.format(mode=mode), tables.connectors.get(mode, ())
    )
    clause = (connector or " to ") + join_list(phrases)

    if row.improvement_metric and is_quantifiable(row.improvement_metric, tables):
        kind = baseline_kind(row.improvement_metric, tables)
        baseline = seeded_pick(
            row.variation_seed,
            BASELINE_SALT.format(kind=kind, mode=mode),
            tables.baseline.clauses.get(kind, ()),
        )
        if baseline:
            clause += baseline
    return clause


# --------------------------------------------------------------------------
# Tail clause
# --------------------------------------------------------------------------

def rewrite_benefit(benefit: str, tables: EngineTables) -> str:
    """Ordered first-match rewrite, then whitespace / punctuation cleanup."""
    text = _SPACES_RE.sub(" ", benefit).strip()
    for rule in tables.benefit_rewrites:
        if rule.pattern.search(text):
            text = rule.apply(text)
            break
    text = _TRAILING_PUNCT_RE.sub("", _SPACES_RE.sub(" ", text).strip())
    if not text:
        return ""
    if _first_word(text) not in tables.action_verbs:
        return "advance " + _lower_first(text)
    return _lower_first(text)


def build_tail_clause(row: PreparedRow, tables: EngineTables) -> str:
    benefit = rewrite_benefit(row.strategic_benefit, tables) if row.strategic_benefit else ""
    has_company = row.has_company
    generic = has_company and row.company_is_generic
    for rule in tables.tail_rules:
        if not rule.matches(has_company, generic, bool(benefit)):
            continue
        template = seeded_pick(row.variation_seed, TAIL_SALT.format(bucket=rule.bucket), rule.templates)
        if not template:
            return ""
        return template.replace("{company}", row.company).replace("{benefit}", benefit)
    return ""


# --------------------------------------------------------------------------
# Sentence assembly
# --------------------------------------------------------------------------

def _select_pattern(row: PreparedRow, mode: str, tables: EngineTables) -> ObjectivePattern | None:
    family = role_family(row.team_role) or ""
    candidates = [
        p for p in tables.patterns if p.applies(mode, family, row.task_type, row.is_lead)
    ]
    salt = PATTERN_SALT.format(mode=mode, role=row.team_role, task_type=row.task_type)
    return seeded_pick(row.variation_seed, salt, candidates)


def _select_verb(row: PreparedRow, slot: str, mode: str, tables: EngineTables) -> str:
    candidates = [
        v for v in tables.verbs if v.slot == slot and (not v.modes or mode in v.modes)
    ]
    chosen = seeded_pick(row.variation_seed, VERB_SALT.format(slot=slot, mode=mode), candidates)
    return chosen.text if chosen is not None else tables.fallback_verb


def _deadline_text(row: PreparedRow) -> str:
    # dead_line は検証済みの ISO 形式 (YYYY-MM-DD)
    return row.dead_line or DEFAULT_DEADLINE_TEXT


def _apply_variations(text: str, row: PreparedRow, mode: str, tables: EngineTables) -> str:
    for slot, variants in tables.variations.items():
        placeholder = "{" + slot + "}"
        if placeholder not in text:
            continue
        chosen = seeded_pick(row.variation_seed, VARIATION_SALT.format(slot=slot, mode=mode), variants)
        text = text.replace(placeholder, chosen or "")
    return text


def _post_process(text: str, tables: EngineTables) -> str:
    out = text.strip()
    out = _apply_all(out, tables.structural_cleanup)
    out = _apply_all(out, tables.cosmetic_cleanup)
    out = _apply_all(out, tables.humanization_cleanup)
    out = _TRAILING_PUNCT_RE.sub("", out.strip())
    if out:
        out = out[0].upper() + out[1:]
    return out + "."


def _fill(template: str, values: dict[str, str]) -> str:
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


def build_objective(row: PreparedRow, mode: Mode | str, tables: EngineTables) -> str:
    """Build one objective sentence for ``mode`` (``simple`` or ``complex``)."""
    mode = Mode(mode).value
    pattern = _select_pattern(row, mode, tables)
    template = pattern.template if pattern is not None else tables.fallback_template
    verb_slot = pattern.verb_slot if pattern is not None else DEFAULT_VERB_SLOT

    task_name = clean_task_name(row.task_name, row.team_role, tables)
    values = {
        "deadline": _deadline_text(row),
        "verb": _select_verb(row, verb_slot, mode, tables),
        "deliverable": build_deliverable(task_name, row.task_type),
        "metrics_clause": build_metrics_clause(row, mode, tables),
        "tail_clause": build_tail_clause(row, tables),
    }

    text = _apply_variations(_fill(template, values), row, mode, tables)
    if _PLACEHOLDER_RE.search(text):
        logger.warning(
            "row %s: unresolved placeholder in pattern %s, using fallback template",
            row.row_id,
            pattern.id if pattern is not None else "<fallback>",
        )
        text = _fill(tables.fallback_template, values)
        text = _PLACEHOLDER_RE.sub("", text)
    return _post_process(text, tables)


def build_objectives(row: PreparedRow, tables: EngineTables) -> ObjectiveResult:
    """Generate the texts the row's mode asks for (``both`` -> both)."""
    simple = "" if row.mode is Mode.COMPLEX else build_objective(row, Mode.SIMPLE, tables)
    complex_ = "" if row.mode is Mode.SIMPLE else build_objective(row, Mode.COMPLEX, tables)
    return ObjectiveResult(simple_text=simple, complex_text=complex_)


def select_objective(row: PreparedRow, result: ObjectiveResult) -> tuple[str, str]:
    """Pick the single objective surfaced in ``FinalRow.objective``.

    Returns ``(text, objective_mode)``. For ``both``, lead roles and rows with
    recommended metrics get the complex sentence, everyone else the simple one.
    """
    if row.mode is Mode.SIMPLE:
        return result.simple_text, Mode.SIMPLE.value
    if row.mode is Mode.COMPLEX:
        return result.complex_text, Mode.COMPLEX.value
    if row.is_lead or row.metrics_auto_suggested:
        return result.complex_text, Mode.COMPLEX.value
    return result.simple_text, Mode.SIMPLE.value
