"""CLI entrypoint for sweet-spots."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Any

from sweet_spots.archetypes import classify_players
from sweet_spots.categories import CATEGORIES, RULESET_VERSION
from sweet_spots.errors import SweetSpotError
from sweet_spots.outcomes import grade_candidates
from sweet_spots.pipeline import AnalysisRequest, run_analysis
from sweet_spots.records import (
    ArchetypeAssignment,
    PerformanceRecord,
    SeasonAverages,
    validate_rows,
)
from sweet_spots.runtime_config import (
    current_runtime_config,
    load_runtime_config,
    set_current_runtime_config,
)
from sweet_spots.settings import Settings
from sweet_spots.store import build_store
from sweet_spots.time_utils import et_today, parse_day

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class CLIError(RuntimeError):
    """User-facing CLI error."""


def _extract_global_overrides(argv: list[str]) -> tuple[list[str], str, str, str]:
    """Pull `--config`, `--data-dir`, and `--log-level` from anywhere in argv."""
    cleaned: list[str] = []
    values = {"--config": "", "--data-dir": "", "--log-level": ""}
    idx = 0
    while idx < len(argv):
        token = argv[idx]
        flag, sep, inline = token.partition("=")
        if flag in values:
            if sep:
                values[flag] = inline.strip()
                idx += 1
                continue
            if idx + 1 >= len(argv):
                raise CLIError(f"{flag} requires a value")
            values[flag] = str(argv[idx + 1]).strip()
            idx += 2
            continue
        cleaned.append(token)
        idx += 1
    return cleaned, values["--config"], values["--data-dir"], values["--log-level"]


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings()
    data_dir = str(getattr(args, "data_dir_override", "") or "").strip()
    if data_dir:
        settings = settings.model_copy(update={"data_dir": data_dir})
    return settings


def _close(store: Any) -> None:
    close = getattr(store, "close", None)
    if callable(close):
        close()


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, sort_keys=True, indent=2, default=str))


def _parse_date_arg(value: str, *, flag: str) -> date | None:
    if not value:
        return None
    parsed = parse_day(value)
    if parsed is None:
        raise CLIError(f"{flag} must be YYYY-MM-DD, got {value!r}")
    return parsed


def _cmd_analyze(args: argparse.Namespace) -> int:
    settings = _settings(args)
    config = current_runtime_config().with_overrides(persist_batch_size=args.batch_size)
    request = AnalysisRequest(
        category=args.category or None,
        min_hit_rate=args.min_hit_rate,
        force_refresh=bool(args.force_refresh),
        analysis_date=_parse_date_arg(args.date, flag="--date"),
    )
    store = build_store(settings)
    try:
        result = run_analysis(
            store,
            request,
            config=config,
            max_workers=args.max_workers or settings.max_workers,
        )
    finally:
        _close(store)
    _print_json(result)
    return 0


def _cmd_grade(args: argparse.Namespace) -> int:
    settings = _settings(args)
    analysis_date = _parse_date_arg(args.date, flag="--date") or et_today()
    store = build_store(settings)
    try:
        rows = store.fetch_candidates(analysis_date, active_only=not args.include_inactive)
        raw_records = store.fetch_performance(since=analysis_date)
    finally:
        _close(store)
    records, rejected = validate_rows(PerformanceRecord, raw_records, source="performance")
    report = grade_candidates(
        rows, records, analysis_date=analysis_date, window_days=args.window_days
    )
    report["rejected_rows"] = rejected
    _print_json(report)
    return 0


def _cmd_classify_archetypes(args: argparse.Namespace) -> int:
    settings = _settings(args)
    store = build_store(settings)
    try:
        seasons, rejected_seasons = validate_rows(
            SeasonAverages, store.fetch_season_averages(), source="season_averages"
        )
        existing, rejected_roles = validate_rows(
            ArchetypeAssignment, store.fetch_role_assignments(), source="role_assignments"
        )
        result = classify_players(season_rows=seasons, existing=existing, min_games=args.min_games)
        written = 0
        if not args.dry_run and result["assignments"]:
            written = store.upsert_role_assignments(result["assignments"])
    finally:
        _close(store)
    result["written"] = written
    result["dry_run"] = bool(args.dry_run)
    result["rejected_rows"] = {
        "season_averages": rejected_seasons,
        "role_assignments": rejected_roles,
    }
    _print_json(result)
    return 0


def _cmd_categories(args: argparse.Namespace) -> int:
    rows: list[dict[str, Any]] = []
    for category in CATEGORIES.values():
        row = asdict(category)
        row["required_roles"] = sorted(category.required_roles)
        row["blocked_roles"] = sorted(category.blocked_roles)
        rows.append(row)
    _print_json({"ruleset_version": RULESET_VERSION, "categories": rows})
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sweet-spots",
        epilog="Global flags: --config PATH, --data-dir PATH, --log-level LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command")

    analyze = subparsers.add_parser("analyze", help="Run sweet-spot analysis for a slate")
    analyze.set_defaults(func=_cmd_analyze)
    analyze.add_argument("--category", default="")
    analyze.add_argument("--min-hit-rate", type=float, default=None)
    analyze.add_argument("--force-refresh", action="store_true")
    analyze.add_argument("--date", default="")
    analyze.add_argument("--batch-size", type=int, default=None)
    analyze.add_argument("--max-workers", type=int, default=0)

    grade = subparsers.add_parser("grade", help="Grade persisted candidates against results")
    grade.set_defaults(func=_cmd_grade)
    grade.add_argument("--date", default="")
    grade.add_argument("--window-days", type=int, default=2)
    grade.add_argument("--include-inactive", action="store_true")

    classify = subparsers.add_parser(
        "classify-archetypes", help="Derive player roles from season averages"
    )
    classify.set_defaults(func=_cmd_classify_archetypes)
    classify.add_argument("--min-games", type=int, default=3)
    classify.add_argument("--dry-run", action="store_true")

    categories = subparsers.add_parser("categories", help="Show the category rule set")
    categories.set_defaults(func=_cmd_categories)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    raw_argv = list(argv) if isinstance(argv, list) else sys.argv[1:]
    try:
        parsed_argv, config_override, data_dir_override, log_level = _extract_global_overrides(
            raw_argv
        )
    except CLIError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    level = (log_level or "WARNING").upper()
    if level not in _LOG_LEVELS:
        print(f"--log-level must be one of: {','.join(_LOG_LEVELS)}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config_path = Path(config_override).expanduser() if config_override else None
    if config_path is None:
        env_path = Settings().runtime_config_path.strip()
        config_path = Path(env_path).expanduser() if env_path else None
    try:
        runtime_config = load_runtime_config(config_path)
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    try:
        set_current_runtime_config(runtime_config)
        parser = _build_parser()
        args = parser.parse_args(parsed_argv)
        args.data_dir_override = data_dir_override
        func = getattr(args, "func", None)
        if func is None:
            parser.print_help()
            return 0
        try:
            return int(func(args))
        except (CLIError, SweetSpotError, FileNotFoundError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return 2
    finally:
        set_current_runtime_config(None)


if __name__ == "__main__":
    raise SystemExit(main())
