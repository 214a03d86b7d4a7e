from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

"""Deterministic per-row seed and salted picks.

The seed is FNV-1a 32-bit over the UTF-16 code units of
``role|task_type|company|row_id`` (each lower-cased and trimmed). Every
pseudo-random choice in the engine goes through ``seeded_index`` with one of
the salt formats below. The salt strings are part of the output contract:
changing one changes which text existing rows receive.
"""

__all__ = [
    "FNV_OFFSET_BASIS",
    "FNV_PRIME",
    "MATRIX_SALT",
    "PATTERN_SALT",
    "VERB_SALT",
    "CONNECTOR_SALT",
    "BASELINE_SALT",
    "TAIL_SALT",
    "VARIATION_SALT",
    "fnv1a_32",
    "compute_variation_seed",
    "seeded_index",
    "seeded_pick",
]

T = TypeVar("T")

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
_MASK_32 = 0xFFFFFFFF

MATRIX_SALT = "matrix|{role_key}|{task_key}"
PATTERN_SALT = "pattern|{mode}|{role}|{task_type}"
VERB_SALT = "verb|{slot}|{mode}"
CONNECTOR_SALT = "connector|{mode}"
BASELINE_SALT = "baseline|{kind}|{mode}"
TAIL_SALT = "tail|{bucket}"
VARIATION_SALT = "variation|{slot}|{mode}"


def _utf16_units(text: str) -> list[int]:
    data = text.encode("utf-16-le")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def fnv1a_32(text: str) -> int:
    """FNV-1a 32-bit hash over UTF-16 code units (surrogate pairs count as two)."""
    h = FNV_OFFSET_BASIS
    for unit in _utf16_units(text):
        h ^= unit
        h = (h * FNV_PRIME) & _MASK_32
    return h


def _norm(value: object) -> str:
    return str(value if value is not None else "").strip().lower()


def compute_variation_seed(
    team_role: str | None,
    task_type: str | None,
    company: str | None,
    row_id: int | str | None,
) -> int:
    """Unsigned 32-bit seed, invariant to case and surrounding whitespace."""
    key = "|".join(_norm(v) for v in (team_role, task_type, company, row_id))
    return fnv1a_32(key)


def seeded_index(seed: int, salt: str, size: int) -> int:
    if size <= 0:
        return 0
    return fnv1a_32(f"{seed}|{salt}") % size


def seeded_pick(seed: int, salt: str, items: Sequence[T]) -> T | None:
    if not items:
        return None
    return items[seeded_index(seed, salt, len(items))]
