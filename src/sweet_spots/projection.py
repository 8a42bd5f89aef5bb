"""True-value projection blending recent form, matchup history, and pace."""

from __future__ import annotations

import math
from dataclasses import dataclass

from sweet_spots.records import GameEnvironment, MatchupHistory
from sweet_spots.runtime_config import ProjectionConfig

BASE_SOURCE = "L10_MEDIAN"


@dataclass(frozen=True)
class Projection:
    projected_value: float
    matchup_adjustment: float
    pace_adjustment: float
    source: str


def round_to_half(value: float) -> float:
    return math.floor(value * 2 + 0.5) / 2


def _round_tenth(value: float) -> float:
    return round(value, 1)


def project(
    median: float,
    *,
    matchup: MatchupHistory | None = None,
    environment: GameEnvironment | None = None,
    config: ProjectionConfig | None = None,
) -> Projection:
    """Project a stat from its window median.

    Matchup history shifts the median toward the player's average against
    this opponent once enough meetings exist. Pace scales it by how far the
    game's pace rating sits from 100. Missing inputs leave the median as-is.
    """
    cfg = config or ProjectionConfig()
    source = BASE_SOURCE
    matchup_adjustment = 0.0
    pace_adjustment = 0.0

    if matchup is not None and matchup.games_played >= cfg.min_meetings:
        matchup_adjustment = (matchup.avg_stat - median) * cfg.matchup_weight
        source = "L10+H2H_STRONG" if matchup.games_played >= cfg.strong_meetings else "L10+H2H"

    if environment is not None and environment.pace_rating is not None:
        pace_adjustment = (environment.pace_rating / 100.0 - 1.0) * median * cfg.pace_weight
        if environment.pace_class == "SLOW" and pace_adjustment < 0:
            source += "+SLOW"
        elif environment.pace_class == "FAST" and pace_adjustment > 0:
            source += "+FAST"

    return Projection(
        projected_value=round_to_half(median + matchup_adjustment + pace_adjustment),
        matchup_adjustment=_round_tenth(matchup_adjustment),
        pace_adjustment=_round_tenth(pace_adjustment),
        source=source,
    )
