from __future__ import annotations

import argparse
import json
import sys
import zipfile
from pathlib import Path

from dotenv import load_dotenv

from kpi_engine.config.loader import ConfigError, load_settings
from kpi_engine.engine.pipeline import EngineContext, process_batch
from kpi_engine.excel.reader import (
    SUPPORTED_SUFFIXES,
    MissingColumnsError,
    SheetHeaderError,
    read_rows,
)
from kpi_engine.logging.error_log import LOGS_DIR, ErrorLogBuffer, ErrorRecord
from kpi_engine.logging.init import log_summary, setup_logging
from kpi_engine.models.config_models import LimitsConfig
from kpi_engine.models.error_codes import ErrorCode
from kpi_engine.models.row import RawRow
from kpi_engine.services.summary import render_summary_line
from kpi_engine.transport import TransportError, validate_request

"""CLI entrypoint.

Flow:
- Load ``.env`` (python-dotenv), then the engine config
- Read rows from a JSON request body, ``.xlsx`` or ``.csv``
- Run the batch, write the JSON result, emit the SUMMARY line
- Optionally flush per-row error records to ``logs/errors-*.log``; a rejected
  request is logged there as one record with ``row=-1``

Exit codes: 0 no INVALID row, 2 at least one INVALID row, 1 fatal
(config, request rejection, unreadable input).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


class InputError(Exception):
    """Input file missing, unsupported or unreadable."""


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env using python-dotenv.

    override=False: 既存の環境変数 (CI 等で明示設定されたもの) を優先する。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="kpi-engine", description="KPI row validation and objective generation"
    )
    p.add_argument("--input", required=True, type=Path, help="Request .json, .xlsx or .csv")
    p.add_argument("--output", type=Path, default=None, help="Result JSON path (default: stdout)")
    p.add_argument("--config", type=Path, default=None, help="Engine config YAML")
    p.add_argument("--workers", type=int, default=1, help="Thread pool size (1 = sequential)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--error-log",
        action="store_true",
        help=f"Write per-row error records under {LOGS_DIR}",
    )
    return p.parse_args(argv)


def _read_input(path: Path, limits: LimitsConfig) -> list[RawRow]:
    """Load rows from the input file.

    Raises:
        InputError: missing file, unsupported suffix, unreadable workbook
        TransportError: JSON request rejected at the boundary
    """
    if not path.exists():
        raise InputError(f"input not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".json":
        try:
            body = path.read_bytes()
        except OSError as e:
            raise InputError(f"cannot read {path}: {e}") from e
        return list(validate_request(body, limits).rows)
    if suffix not in SUPPORTED_SUFFIXES:
        raise InputError(f"unsupported input type: {path.suffix or '<none>'}")
    try:
        rows = read_rows(path)
    except (SheetHeaderError, MissingColumnsError) as e:
        raise InputError(str(e)) from e
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise InputError(f"cannot read {path.name}: {e}") from e
    if not rows:
        raise TransportError(ErrorCode.EMPTY_ROWS_ARRAY, f"{path.name}: no data rows")
    if len(rows) > limits.max_rows:
        raise TransportError(
            ErrorCode.INVALID_ROWS_ARRAY,
            f"too many rows: {len(rows)} (limit {limits.max_rows})",
        )
    return rows


def main(argv: list[str] | None = None) -> int:
    # 空リスト [] のときに sys.argv が混入しないよう None のときだけ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    # JSON を stdout に出すときはログを stderr に逃がす
    logger = setup_logging(
        debug=args.debug, stream=sys.stderr if args.output is None else None
    )
    logger.debug("debug mode enabled")

    try:
        settings = load_settings(args.config)
        context = EngineContext.create(settings)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        rows = _read_input(args.input, settings.limits)
    except InputError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except TransportError as e:
        logger.error(f"request rejected: {e}")
        if args.error_log:
            rejected = ErrorLogBuffer()
            rejected.append(ErrorRecord.create(args.input.name, -1, e.code.value, e.message))
            logger.info(f"error records: {rejected.flush()}")
        return EXIT_FATAL

    logger.info(
        f"Processing {len(rows)} row(s) from: {args.input} "
        f"(reference_year={context.reference_year}, workers={args.workers})"
    )

    error_log = ErrorLogBuffer() if args.error_log else None
    result = process_batch(
        rows,
        context,
        max_workers=args.workers,
        error_log=error_log,
        source=args.input.name,
    )

    payload = json.dumps(result.to_dict(), ensure_ascii=False, indent=2)
    if args.output is None:
        sys.stdout.write(payload + "\n")
    else:
        try:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(payload + "\n", encoding="utf-8")
        except OSError as e:
            logger.error(f"output: cannot write {args.output}: {e}")
            return EXIT_FATAL
        logger.info(f"Wrote {result.total_rows} row(s) to: {args.output}")

    if error_log is not None:
        written = error_log.flush()
        if written is not None:
            logger.info(f"error records: {written}")

    # log_summary が "SUMMARY " を付けるので除いて渡す
    summary_line = render_summary_line(result)
    log_summary(summary_line[len("SUMMARY "):])

    if result.invalid_count > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
