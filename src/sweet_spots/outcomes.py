"""Grade persisted sweet-spot candidates against box-score results."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from sweet_spots.normalize import normalize_metric, player_key, safe_float
from sweet_spots.records import PerformanceRecord

logger = logging.getLogger(__name__)


def grade_outcome(side: str, line: float, actual: float) -> str:
    normalized = side.strip().lower()
    if actual == line:
        return "push"
    if normalized == "over":
        return "hit" if actual > line else "miss"
    if normalized == "under":
        return "hit" if actual < line else "miss"
    return "no_data"


def _last_name(key: str) -> str:
    parts = key.split()
    return parts[-1] if parts else ""


def _index_results(
    records: Iterable[PerformanceRecord], *, start: date, end: date
) -> tuple[dict[str, PerformanceRecord], dict[str, list[PerformanceRecord]]]:
    latest: dict[str, PerformanceRecord] = {}
    for record in records:
        if not start <= record.game_date <= end:
            continue
        key = player_key(record.player_name)
        current = latest.get(key)
        if current is None or record.game_date > current.game_date:
            latest[key] = record
    by_last: dict[str, list[PerformanceRecord]] = {}
    for key, record in latest.items():
        last = _last_name(key)
        if len(last) >= 3:
            by_last.setdefault(last, []).append(record)
    return latest, by_last


def _match(
    name: str,
    latest: dict[str, PerformanceRecord],
    by_last: dict[str, list[PerformanceRecord]],
) -> tuple[PerformanceRecord | None, str]:
    key = player_key(name)
    record = latest.get(key)
    if record is not None:
        return record, "exact"
    options = by_last.get(_last_name(key), [])
    if len(options) == 1:
        return options[0], "fuzzy_lastname_unique"
    return None, "none"


def grade_candidates(
    rows: Iterable[dict[str, Any]],
    records: Iterable[PerformanceRecord],
    *,
    analysis_date: date,
    window_days: int = 2,
    min_players: int = 10,
) -> dict[str, Any]:
    """Grade each candidate row using the player's latest game in the window.

    The window spans `analysis_date` through `window_days` later. When fewer
    than `min_players` players have results the slate is probably unplayed, so
    unmatched picks stay `pending` instead of `no_data`.
    """
    latest, by_last = _index_results(
        records, start=analysis_date, end=analysis_date + timedelta(days=window_days)
    )
    substantial = len(latest) >= min_players

    results: list[dict[str, Any]] = []
    summary = dict.fromkeys(("total", "hit", "miss", "push", "no_data", "pending", "fuzzy"), 0)
    by_category: dict[str, dict[str, Any]] = {}
    statuses = ("hit", "miss", "push", "no_data", "pending")
    for row in rows:
        summary["total"] += 1
        player = str(row.get("player_name", ""))
        metric = normalize_metric(str(row.get("prop_type", "")))
        line = safe_float(row.get("actual_line"))
        if line is None:
            line = safe_float(row.get("recommended_line"))
        side = str(row.get("recommended_side") or "over")

        record, match_type = _match(player, latest, by_last)
        actual: float | None = None
        if record is None:
            status = "no_data" if substantial else "pending"
        elif line is None:
            status = "no_data"
        else:
            try:
                actual = record.value(metric)
            except KeyError:
                status = "no_data"
            else:
                status = grade_outcome(side, line, actual)
        if match_type.startswith("fuzzy"):
            summary["fuzzy"] += 1
        summary[status] += 1
        bucket = by_category.setdefault(str(row.get("category", "")), dict.fromkeys(statuses, 0))
        bucket[status] += 1
        results.append(
            {
                "category": row.get("category"),
                "player_name": player,
                "prop_type": metric,
                "recommended_side": side,
                "line": line,
                "actual_value": actual,
                "outcome": status,
                "match": match_type,
                "game_date": record.game_date.isoformat() if record is not None else None,
            }
        )

    decided = summary["hit"] + summary["miss"]
    summary_out: dict[str, Any] = dict(summary)
    summary_out["hit_rate"] = round(summary["hit"] / decided, 4) if decided else None
    for bucket in by_category.values():
        graded = bucket["hit"] + bucket["miss"]
        bucket["hit_rate"] = round(bucket["hit"] / graded, 4) if graded else None
    logger.info(
        "graded %d picks for %s: %d hit, %d miss, %d push, %d no data, %d pending",
        summary["total"],
        analysis_date,
        summary["hit"],
        summary["miss"],
        summary["push"],
        summary["no_data"],
        summary["pending"],
    )
    return {
        "analysis_date": analysis_date.isoformat(),
        "results": results,
        "summary": summary_out,
        "by_category": by_category,
    }
