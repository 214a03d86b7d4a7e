from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import jsonschema
from jsonschema.exceptions import best_match

from .config.loader import load_schema
from .models.config_models import LimitsConfig
from .models.error_codes import ERROR_DESCRIPTIONS, ErrorCode
from .models.row import RawRow

"""Request boundary validation.

Checks run in a fixed order and the first failure wins:

1. body is JSON text that parses (E601), when given as ``str`` / ``bytes``
2. body is an object (E602)
3. no script / template injection anywhere in the body (E606)
4. ``rows`` exists and is a list (E603), within ``limits.max_rows`` (E603)
5. ``rows`` is not empty (E604)
6. every row is an object with string / null fields (E605)

Domain rules (roles, deadlines, metrics) are not checked here; they belong to
the row pipeline, which never rejects a whole request.
"""

__all__ = [
    "TransportError",
    "KpiRequest",
    "INJECTION_PATTERNS",
    "validate_request",
]

INJECTION_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"\$\{"),
    re.compile(r"`"),
)


class TransportError(Exception):
    """Whole-request rejection carrying one E6xx code."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = code
        self.message = message or ERROR_DESCRIPTIONS[code]
        super().__init__(f"{code.value}: {self.message}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "error_codes": [self.code.value]}


@dataclass(frozen=True)
class KpiRequest:
    rows: tuple[RawRow, ...]
    engine_version: str | None = None
    default_company: str | None = None


def _parse_body(body: Any) -> Any:
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TransportError(ErrorCode.INVALID_JSON_BODY, f"body is not UTF-8: {e}") from e
    if isinstance(body, str):
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise TransportError(ErrorCode.INVALID_JSON_BODY, f"invalid JSON: {e.msg}") from e
    return body


def _has_injection(body: Mapping[str, Any]) -> bool:
    raw = json.dumps(body, ensure_ascii=False, default=str)
    return any(p.search(raw) for p in INJECTION_PATTERNS)


def _check_shape(body: Mapping[str, Any]) -> None:
    validator = jsonschema.Draft202012Validator(load_schema("request"))
    error = best_match(validator.iter_errors(body))
    if error is None:
        return
    path = list(error.absolute_path)
    where = "/".join(str(p) for p in path) or "<root>"
    if path and path[0] == "rows":
        raise TransportError(
            ErrorCode.INVALID_TRANSPORT_PAYLOAD, f"rows invalid at {where}: {error.message}"
        )
    raise TransportError(
        ErrorCode.INVALID_REQUEST_STRUCTURE, f"request invalid at {where}: {error.message}"
    )


def validate_request(body: Any, limits: LimitsConfig | None = None) -> KpiRequest:
    """Validate a request body and turn it into RawRows.

    Args:
        body: JSON text (``str`` / ``bytes``) or an already parsed object
        limits: batch size ceiling; defaults to ``LimitsConfig()``

    Returns:
        KpiRequest whose rows have ``default_company`` applied to blank
        companies and ``row_id`` defaulted to the 1-based position.

    Raises:
        TransportError: the first failed check, see module docstring.
    """
    limits = limits or LimitsConfig()
    body = _parse_body(body)

    if not isinstance(body, dict):
        raise TransportError(ErrorCode.INVALID_REQUEST_STRUCTURE)
    if _has_injection(body):
        raise TransportError(ErrorCode.INVALID_TRANSPORT_SANITIZATION)

    rows = body.get("rows")
    if not isinstance(rows, list):
        raise TransportError(ErrorCode.INVALID_ROWS_ARRAY)
    if not rows:
        raise TransportError(ErrorCode.EMPTY_ROWS_ARRAY)
    if len(rows) > limits.max_rows:
        raise TransportError(
            ErrorCode.INVALID_ROWS_ARRAY,
            f"too many rows: {len(rows)} (limit {limits.max_rows})",
        )
    if not all(isinstance(r, dict) for r in rows):
        raise TransportError(ErrorCode.INVALID_TRANSPORT_PAYLOAD)
    _check_shape(body)

    default_company = (body.get("default_company") or "").strip() or None
    parsed: list[RawRow] = []
    for index, data in enumerate(rows, start=1):
        if default_company and not (data.get("company") or "").strip():
            data = {**data, "company": default_company}
        parsed.append(RawRow.from_mapping(data, default_row_id=index))

    return KpiRequest(
        rows=tuple(parsed),
        engine_version=body.get("engine_version"),
        default_company=default_company,
    )
