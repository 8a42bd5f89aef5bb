"""Read-only per-run context: every lookup table a run needs, loaded once."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from sweet_spots.archetypes import ArchetypeClassifier
from sweet_spots.errors import DataFetchError
from sweet_spots.game_description import canonical_team, resolve_opponent
from sweet_spots.normalize import player_key
from sweet_spots.records import (
    ArchetypeAssignment,
    GameEnvironment,
    LiveLine,
    MatchupHistory,
    PerformanceRecord,
    SeasonAverages,
    validate_rows,
)
from sweet_spots.time_utils import lookback_start

if TYPE_CHECKING:
    from sweet_spots.store import SweetSpotStore

logger = logging.getLogger(__name__)


def _empty() -> Mapping[Any, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class RunContext:
    analysis_date: date
    performance: tuple[PerformanceRecord, ...] = ()
    classifier: ArchetypeClassifier = field(default_factory=ArchetypeClassifier)
    matchups: Mapping[tuple[str, str, str], MatchupHistory] = field(default_factory=_empty)
    environments: Mapping[str, GameEnvironment] = field(default_factory=_empty)
    live_lines: Mapping[tuple[str, str], LiveLine] = field(default_factory=_empty)
    season_averages: Mapping[str, SeasonAverages] = field(default_factory=_empty)
    rejected: Mapping[str, int] = field(default_factory=_empty)
    fetch_errors: tuple[str, ...] = ()

    def line_for(self, player: str, metric: str) -> LiveLine | None:
        return self.live_lines.get((player_key(player), metric))

    def matchup_for(self, player: str, metric: str, opponent: str | None) -> MatchupHistory | None:
        if not opponent:
            return None
        return self.matchups.get((player_key(player), metric, canonical_team(opponent) or ""))

    def environment_for(self, team: str | None) -> GameEnvironment | None:
        key = canonical_team(team)
        return self.environments.get(key) if key else None

    def season_average(self, player: str, metric: str) -> float | None:
        row = self.season_averages.get(player_key(player))
        return None if row is None else row.average(metric)

    def opponent_for(self, line: LiveLine | None, *, team: str | None = None) -> str | None:
        if line is None:
            return None
        return resolve_opponent(
            opponent=line.opponent,
            game_description=line.game_description,
            player_team=line.player_team or team,
        )


def _commence_key(value: datetime | None) -> datetime:
    if value is None:
        return datetime.max.replace(tzinfo=UTC)
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def index_live_lines(lines: list[LiveLine]) -> dict[tuple[str, str], LiveLine]:
    """Keep the earliest-commencing line per (player, metric)."""
    ordered = sorted(lines, key=lambda row: _commence_key(row.commence_time))
    out: dict[tuple[str, str], LiveLine] = {}
    for row in ordered:
        out.setdefault((player_key(row.player_name), row.metric), row)
    return out


def index_environments(rows: list[GameEnvironment]) -> dict[str, GameEnvironment]:
    """Map each team (home or away) to its next game environment."""
    ordered = sorted(rows, key=lambda row: row.game_date or date.max)
    out: dict[str, GameEnvironment] = {}
    for row in ordered:
        for team in (row.home_team, row.away_team):
            key = canonical_team(team)
            if key:
                out.setdefault(key, row)
    return out


def index_matchups(rows: list[MatchupHistory]) -> dict[tuple[str, str, str], MatchupHistory]:
    out: dict[tuple[str, str, str], MatchupHistory] = {}
    for row in rows:
        out[(player_key(row.player_name), row.metric, canonical_team(row.opponent) or "")] = row
    return out


def build_run_context(
    store: SweetSpotStore,
    *,
    analysis_date: date,
    now: datetime,
    lookback_days: int = 30,
    max_workers: int = 4,
) -> RunContext:
    """Load every input table concurrently and freeze them into a `RunContext`.

    A failed source is logged and contributes whatever partial rows the store
    returned; the run continues with the rest.
    """
    since = lookback_start(analysis_date, days=lookback_days)
    sources: dict[str, tuple[Callable[[], list[dict[str, Any]]], type[Any]]] = {
        "performance": (lambda: store.fetch_performance(since=since), PerformanceRecord),
        "role_assignments": (store.fetch_role_assignments, ArchetypeAssignment),
        "matchup_history": (store.fetch_matchup_history, MatchupHistory),
        "game_environment": (
            lambda: store.fetch_game_environments(on_or_after=analysis_date),
            GameEnvironment,
        ),
        "live_lines": (lambda: store.fetch_live_lines(commence_after=now), LiveLine),
        "season_averages": (store.fetch_season_averages, SeasonAverages),
    }

    raw: dict[str, list[dict[str, Any]]] = {}
    errors: list[str] = []
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {executor.submit(loader): name for name, (loader, _) in sources.items()}
        for future in as_completed(futures):
            name = futures[future]
            try:
                raw[name] = future.result()
            except DataFetchError as exc:
                logger.warning("%s fetch failed (%d partial rows): %s", name, len(exc.partial), exc)
                errors.append(f"{name}: {exc}")
                raw[name] = exc.partial

    parsed: dict[str, list[Any]] = {}
    rejected: dict[str, int] = {}
    for name, (_, model) in sources.items():
        parsed[name], rejected[name] = validate_rows(model, raw.get(name, []), source=name)

    classifier = ArchetypeClassifier.from_assignments(parsed["role_assignments"])
    context = RunContext(
        analysis_date=analysis_date,
        performance=tuple(parsed["performance"]),
        classifier=classifier,
        matchups=MappingProxyType(index_matchups(parsed["matchup_history"])),
        environments=MappingProxyType(index_environments(parsed["game_environment"])),
        live_lines=MappingProxyType(index_live_lines(parsed["live_lines"])),
        season_averages=MappingProxyType(
            {player_key(row.player_name): row for row in parsed["season_averages"]}
        ),
        rejected=MappingProxyType(rejected),
        fetch_errors=tuple(sorted(errors)),
    )
    logger.info(
        "context loaded: %d games, %d roles, %d matchups, %d environments, %d lines, %d seasons",
        len(context.performance),
        len(classifier),
        len(context.matchups),
        len(context.environments),
        len(context.live_lines),
        len(context.season_averages),
    )
    return context
