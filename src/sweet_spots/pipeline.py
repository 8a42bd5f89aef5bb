"""End-to-end sweet-spot analysis run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sweet_spots.archetypes import check_role
from sweet_spots.candidate import Candidate
from sweet_spots.categories import RULESET_VERSION, Category, select_categories, tracked_metrics
from sweet_spots.context import RunContext, build_run_context
from sweet_spots.errors import DataFetchError, ValidationInconsistency
from sweet_spots.evaluator import evaluate
from sweet_spots.finalize import deduplicate, group_by_category, persist, rank
from sweet_spots.projection import project
from sweet_spots.reconcile import ReconcileCounters, reconcile
from sweet_spots.runtime_config import RuntimeConfig, current_runtime_config
from sweet_spots.stats import RollingWindow, build_rolling_windows
from sweet_spots.time_utils import et_today, iso_z, utc_now

if TYPE_CHECKING:
    from sweet_spots.store import SweetSpotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisRequest:
    category: str | None = None
    min_hit_rate: float | None = None
    force_refresh: bool = False
    analysis_date: date | None = None


def _validate_request(request: AnalysisRequest) -> list[Category]:
    if request.min_hit_rate is not None and not 0.0 <= request.min_hit_rate <= 1.0:
        raise ValueError(f"min_hit_rate must be within [0, 1], got {request.min_hit_rate}")
    return select_categories(request.category)


def _cached_response(
    store: SweetSpotStore,
    analysis_date: date,
    categories: list[Category],
    *,
    now: datetime,
) -> dict[str, Any] | None:
    try:
        rows = store.fetch_candidates(analysis_date, active_only=True)
    except DataFetchError as exc:
        logger.warning("cached candidate lookup failed, recomputing: %s", exc)
        return None
    if not rows:
        return None
    keys = {category.key for category in categories}
    selected = [row for row in rows if row.get("category") in keys]
    logger.info("returning %d cached candidates for %s", len(selected), analysis_date)
    grouped: dict[str, list[dict[str, Any]]] = {}
    for row in selected:
        grouped.setdefault(str(row.get("category")), []).append(row)
    return {
        "success": True,
        "cached": True,
        "analysis_date": analysis_date.isoformat(),
        "data": selected,
        "grouped": grouped,
        "count": len(selected),
        "categories": sorted(grouped),
        "analyzed_at": iso_z(now),
    }


def screen(
    windows: dict[str, RollingWindow],
    categories: list[Category],
    context: RunContext,
    *,
    min_hit_rate: float | None,
    config: RuntimeConfig,
) -> tuple[list[Candidate], int]:
    """Evaluate every player window against every selected category.

    Returns the candidates plus the number of player/category pairs blocked by
    archetype rules.
    """
    candidates: list[Candidate] = []
    blocked = 0
    for window in windows.values():
        role = context.classifier.role_of(window.player_name)
        for category in categories:
            stats = window.metric(category.metric)
            if stats is None:
                continue
            outcome = evaluate(
                player_name=window.player_name,
                window=stats,
                category=category,
                archetype=check_role(role, category),
                role=role,
                analysis_date=context.analysis_date,
                min_hit_rate=min_hit_rate,
                confidence_ceiling=config.confidence_ceiling,
            )
            if outcome.archetype_blocked:
                blocked += 1
            if outcome.candidate is not None:
                candidates.append(outcome.candidate)
    return candidates, blocked


def _enrich(
    candidate: Candidate,
    context: RunContext,
    *,
    team: str | None,
    config: RuntimeConfig,
) -> None:
    line = context.line_for(candidate.player_name, candidate.metric)
    opponent = context.opponent_for(line, team=team)
    candidate.opponent = opponent
    candidate.season_avg = context.season_average(candidate.player_name, candidate.metric)
    candidate.projection = project(
        candidate.window.median,
        matchup=context.matchup_for(candidate.player_name, candidate.metric, opponent),
        environment=context.environment_for(opponent),
        config=config.projection,
    )


def run_analysis(
    store: SweetSpotStore,
    request: AnalysisRequest | None = None,
    *,
    config: RuntimeConfig | None = None,
    now: datetime | None = None,
    max_workers: int = 4,
) -> dict[str, Any]:
    """Screen, project, reconcile, finalize, and persist one analysis date."""
    request = request or AnalysisRequest()
    cfg = config or current_runtime_config()
    current = now or utc_now()
    analysis_date = request.analysis_date or et_today(current)
    categories = _validate_request(request)

    if not request.force_refresh:
        cached = _cached_response(store, analysis_date, categories, now=current)
        if cached is not None:
            return cached

    context = build_run_context(
        store,
        analysis_date=analysis_date,
        now=current,
        lookback_days=cfg.window.lookback_days,
        max_workers=max_workers,
    )
    windows = build_rolling_windows(
        context.performance,
        metrics=tracked_metrics(categories),
        target_size=cfg.window.target_size,
        min_size=cfg.window.min_size,
    )
    candidates, archetype_blocked = screen(
        windows, categories, context, min_hit_rate=request.min_hit_rate, config=cfg
    )
    logger.info(
        "screened %d players: %d candidates, %d blocked by archetype",
        len(windows),
        len(candidates),
        archetype_blocked,
    )

    counters = ReconcileCounters()
    reconciled: list[Candidate] = []
    skipped = 0
    for candidate in candidates:
        team = windows[candidate.dedupe_key[0]].team
        try:
            _enrich(candidate, context, team=team, config=cfg)
            line = context.line_for(candidate.player_name, candidate.metric)
            reconciled.append(reconcile(candidate, line, config=cfg, counters=counters))
        except ValidationInconsistency as exc:
            skipped += 1
            logger.warning("skipping %s %s: %s", candidate.player_name, candidate.category.key, exc)

    finalized = rank(deduplicate(reconciled))
    persistence = {"deleted": 0, "inserted": 0, "batches": 0, "failed_batches": 0, "failed_rows": 0}
    if finalized:
        persistence = persist(store, analysis_date, finalized, batch_size=cfg.persist_batch_size)

    active = [candidate for candidate in finalized if candidate.active]
    grouped = group_by_category(active)
    logger.info(
        "analysis %s: %d active of %d, %d dropped, %d no game, %d bounce-back, %d line-eligible",
        analysis_date,
        len(active),
        len(reconciled),
        counters.dropped,
        counters.no_game,
        counters.bounce_back,
        counters.line_eligible,
    )
    return {
        "success": True,
        "cached": False,
        "analysis_date": analysis_date.isoformat(),
        "ruleset_version": RULESET_VERSION,
        "data": [candidate.to_row() for candidate in active],
        "grouped": grouped,
        "count": len(active),
        "total_analyzed": len(reconciled),
        "dropped_below_threshold": counters.dropped,
        "no_upcoming_game": counters.no_game,
        "bounce_back_picks": counters.bounce_back,
        "line_eligible_picks": counters.line_eligible,
        "archetype_blocked": archetype_blocked,
        "skipped_inconsistent": skipped,
        "rejected_rows": dict(context.rejected),
        "fetch_errors": list(context.fetch_errors),
        "persistence": persistence,
        "categories": sorted(grouped),
        "analyzed_at": iso_z(current),
    }
