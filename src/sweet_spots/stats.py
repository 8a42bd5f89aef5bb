"""Rolling-window aggregation of player performance records."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from statistics import fmean, pstdev
from statistics import median as _median

import polars as pl

from sweet_spots.categories import Direction
from sweet_spots.errors import InsufficientSampleError
from sweet_spots.normalize import player_key
from sweet_spots.records import PerformanceRecord

logger = logging.getLogger(__name__)


def median(values: Sequence[float]) -> float:
    """Middle value of the sorted window; mean of the two middle values when even."""
    if not values:
        return 0.0
    return float(_median(values))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return float(fmean(values))


def population_stddev(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return float(pstdev(values))


def hit_rate(values: Sequence[float], threshold: float, direction: Direction) -> float:
    """Fraction of values strictly beyond `threshold` in `direction`."""
    if not values:
        return 0.0
    if direction == "over":
        hits = sum(1 for value in values if value > threshold)
    else:
        hits = sum(1 for value in values if value < threshold)
    return hits / len(values)


@dataclass(frozen=True)
class WindowStats:
    values: tuple[float, ...]
    median: float
    mean: float
    stddev: float
    minimum: float
    maximum: float

    @property
    def sample_size(self) -> int:
        return len(self.values)

    def hit_rate(self, threshold: float, direction: Direction) -> float:
        return hit_rate(self.values, threshold, direction)


def window_stats(values: Sequence[float], *, min_size: int) -> WindowStats:
    if len(values) < min_size:
        raise InsufficientSampleError(f"window has {len(values)} games; need {min_size}")
    ordered = tuple(float(value) for value in values)
    return WindowStats(
        values=ordered,
        median=median(ordered),
        mean=mean(ordered),
        stddev=population_stddev(ordered),
        minimum=min(ordered),
        maximum=max(ordered),
    )


@dataclass(frozen=True)
class RollingWindow:
    """Most-recent-first window for one player across tracked metrics."""

    player_name: str
    game_dates: tuple[date, ...]
    stats: dict[str, WindowStats] = field(default_factory=dict)
    team: str | None = None

    def metric(self, metric: str) -> WindowStats | None:
        return self.stats.get(metric)


def build_rolling_windows(
    records: Iterable[PerformanceRecord],
    *,
    metrics: Sequence[str],
    target_size: int = 10,
    min_size: int = 5,
) -> dict[str, RollingWindow]:
    """Group records per player, keep the latest `target_size` games, derive stats.

    Players with fewer than `min_size` games are skipped silently; duplicate
    rows for the same player and date keep the first occurrence.
    """
    rows = list(records)
    if not rows or not metrics:
        return {}

    columns: dict[str, list[object]] = {
        "player_key": [player_key(row.player_name) for row in rows],
        "player_name": [row.player_name for row in rows],
        "game_date": [row.game_date for row in rows],
        "team": [row.team for row in rows],
    }
    for metric in metrics:
        columns[metric] = [row.value(metric) for row in rows]
    schema: dict[str, pl.DataType] = {
        "player_key": pl.Utf8(),
        "player_name": pl.Utf8(),
        "game_date": pl.Date(),
        "team": pl.Utf8(),
        **{metric: pl.Float64() for metric in metrics},
    }
    frame = pl.DataFrame(columns, schema=schema)

    grouped = (
        frame.unique(subset=["player_key", "game_date"], keep="first", maintain_order=True)
        .sort(["player_key", "game_date"], descending=[False, True])
        .group_by("player_key", maintain_order=True)
        .agg(
            pl.col("player_name").first(),
            pl.col("team").drop_nulls().first(),
            pl.col("game_date").head(target_size),
            *[pl.col(metric).head(target_size) for metric in metrics],
        )
    )

    windows: dict[str, RollingWindow] = {}
    skipped = 0
    for row in grouped.iter_rows(named=True):
        stats: dict[str, WindowStats] = {}
        for metric in metrics:
            try:
                stats[metric] = window_stats(row[metric], min_size=min_size)
            except InsufficientSampleError:
                continue
        if not stats:
            skipped += 1
            continue
        windows[row["player_key"]] = RollingWindow(
            player_name=row["player_name"],
            game_dates=tuple(row["game_date"]),
            stats=stats,
            team=row["team"],
        )
    if skipped:
        logger.debug("skipped %d players with fewer than %d games", skipped, min_size)
    return windows
