from __future__ import annotations

import logging
import re

from ..config.tables import EngineTables, MetricTriple
from ..models.error_codes import ErrorCode, add_error_code
from ..models.outcomes import MatrixKey, MetricsOutcome
from ..models.row import NormalizedRow
from ..validation.normalize import role_family
from .seed import MATRIX_SALT, seeded_index

"""Metric auto-completion.

Caller-supplied metrics are kept verbatim. Each empty slot is filled from the
role x task-type matrix (entry picked with the row seed), or from the role
family's default triple when the matrix has no bucket for the row. A
suggestion that repeats a metric already on the row (case and punctuation
folded) is skipped in favour of the next entry of the same bucket.

Codes: all three filled -> E501, one or two -> E502, none -> nothing.
"""

__all__ = [
    "METRIC_SLOTS",
    "role_key",
    "task_type_key",
    "sanitize_suggested_metric",
    "resolve_metrics",
]

logger = logging.getLogger(__name__)

# (label, NormalizedRow attribute, MetricTriple attribute)
METRIC_SLOTS = (
    ("Output", "output_metric", "output"),
    ("Quality", "quality_metric", "quality"),
    ("Improvement", "improvement_metric", "improvement"),
)

_TASK_KEYS = {
    "project": "project",
    "change request": "change_request",
    "consultation": "consultation",
}

_MEASURED_AGAINST_RE = re.compile(r"\bmeasured\s+against\b[^,.]*?(?=[,.]|$)", re.IGNORECASE)
_BASED_ON_RE = re.compile(r"\(\s*based\s+on\b[^)]*\)", re.IGNORECASE)
_BASELINE_WORDS_RE = re.compile(r"\b(?:measured\s+against|based\s+on)\b", re.IGNORECASE)
_ENSURE_RE = re.compile(r"^ensure\b\s*", re.IGNORECASE)


def role_key(team_role: str) -> str:
    """``design`` / ``design_lead`` / ... or ``generic`` for unknown families."""
    family = role_family(team_role or "")
    if family is None:
        return "generic"
    if re.search(r"\blead\b", team_role, re.IGNORECASE):
        return f"{family}_lead"
    return family


def task_type_key(task_type: str) -> str | None:
    folded = re.sub(r"[\s_\-]+", " ", (task_type or "").strip().lower())
    return _TASK_KEYS.get(folded)


def sanitize_suggested_metric(kind: str, text: str) -> str:
    """Strip baseline wording from table text; the generator owns baseline clauses."""
    s = _MEASURED_AGAINST_RE.sub("", text.strip())
    s = _BASED_ON_RE.sub("", s)
    s = _BASELINE_WORDS_RE.sub("", s)
    s = re.sub(r"\s{2,}", " ", s)
    s = re.sub(r"\s+,", ",", s)
    s = re.sub(r",\s*,", ",", s).strip().rstrip(",").strip()
    if kind == "output" and _ENSURE_RE.match(s):
        s = _ENSURE_RE.sub("Deliver ", s)
    return s


def _fold_metric(text: str) -> str:
    return re.sub(r"[^a-z0-9%]+", " ", text.lower()).strip()


def _matrix_entries(
    rkey: str, tkey: str | None, seed: int, tables: EngineTables
) -> tuple[tuple[MetricTriple, ...], MatrixKey] | None:
    """Bucket entries starting at the seeded pick, then the rest in table order."""
    if tkey is None:
        return None
    candidates = [rkey]
    if rkey.endswith("_lead"):
        candidates.append(rkey[: -len("_lead")])
    for key in candidates:
        bucket = tables.matrix.get(key, {}).get(tkey)
        if bucket:
            start = seeded_index(seed, MATRIX_SALT.format(role_key=key, task_key=tkey), len(bucket))
            rotated = tuple(bucket[start:]) + tuple(bucket[:start])
            return rotated, MatrixKey(role_key=key, task_key=tkey)
    return None


def _default_entry(rkey: str, tables: EngineTables) -> tuple[MetricTriple, str]:
    for key in (rkey, rkey.removesuffix("_lead"), "generic"):
        triple = tables.default_metrics.get(key)
        if triple is not None:
            return triple, key
    # schema で generic は必須
    raise KeyError("generic default metrics missing")


def _suggest(kind: str, entries: tuple[MetricTriple, ...], taken: set[str]) -> str:
    """First entry text for ``kind`` not already on the row; the seeded pick otherwise."""
    texts = [sanitize_suggested_metric(kind, getattr(t, kind)) for t in entries]
    for text in texts:
        if _fold_metric(text) not in taken:
            return text
    return texts[0]


def resolve_metrics(
    row: NormalizedRow,
    seed: int,
    error_codes: list[ErrorCode],
    tables: EngineTables,
) -> MetricsOutcome:
    current = {attr: getattr(row, attr).strip() for _, attr, _ in METRIC_SLOTS}
    missing = [label for label, attr, _ in METRIC_SLOTS if not current[attr]]

    if not missing:
        return MetricsOutcome(
            output=current["output_metric"],
            quality=current["quality_metric"],
            improvement=current["improvement_metric"],
        )

    rkey = role_key(row.team_role)
    tkey = task_type_key(row.task_type)

    found = _matrix_entries(rkey, tkey, seed, tables)
    if found is not None:
        entries, mkey = found
        source = f"matrix:{mkey}"
    else:
        triple, dkey = _default_entry(rkey, tables)
        entries = (triple,)
        source = f"default:{dkey}"
        logger.debug("row %s: no matrix bucket for %s|%s, using %s", row.row_id, rkey, tkey, source)

    taken = {_fold_metric(v) for v in current.values() if v}
    resolved: dict[str, str] = {}
    for label, attr, kind in METRIC_SLOTS:
        if current[attr]:
            resolved[kind] = current[attr]
        else:
            resolved[kind] = _suggest(kind, entries, taken)
            taken.add(_fold_metric(resolved[kind]))

    if len(missing) == len(METRIC_SLOTS):
        add_error_code(error_codes, ErrorCode.METRICS_AUTOSUGGEST_ALL)
    else:
        add_error_code(error_codes, ErrorCode.METRICS_AUTOSUGGEST_PARTIAL)

    return MetricsOutcome(
        output=resolved["output"],
        quality=resolved["quality"],
        improvement=resolved["improvement"],
        was_auto_filled=True,
        auto_filled_fields=tuple(missing),
        source=source,
    )
