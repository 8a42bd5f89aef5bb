from __future__ import annotations

from sweet_spots.projection import BASE_SOURCE, project, round_to_half
from sweet_spots.records import GameEnvironment, MatchupHistory
from sweet_spots.runtime_config import ProjectionConfig


def _matchup(games: int, avg: float) -> MatchupHistory:
    return MatchupHistory.model_validate(
        {
            "player_name": "Big Man",
            "prop_type": "rebounds",
            "opponent": "NYK",
            "games_played": games,
            "avg_stat": avg,
        }
    )


def _environment(pace: float | None, pace_class: str | None) -> GameEnvironment:
    return GameEnvironment.model_validate(
        {
            "game_id": "g1",
            "home_team": "NYK",
            "away_team": "BOS",
            "pace_rating": pace,
            "pace_class": pace_class,
        }
    )


def test_round_to_half() -> None:
    assert round_to_half(10.25) == 10.5
    assert round_to_half(10.2) == 10.0
    assert round_to_half(10.74) == 10.5
    assert round_to_half(10.75) == 11.0


def test_median_only_projection() -> None:
    projection = project(10.0)

    assert projection.projected_value == 10.0
    assert projection.matchup_adjustment == 0.0
    assert projection.pace_adjustment == 0.0
    assert projection.source == BASE_SOURCE


def test_matchup_needs_minimum_meetings() -> None:
    assert project(10.0, matchup=_matchup(1, 14.0)).source == BASE_SOURCE

    projection = project(10.0, matchup=_matchup(2, 14.0))
    assert projection.matchup_adjustment == 1.2
    assert projection.projected_value == 11.0
    assert projection.source == "L10+H2H"

    assert project(10.0, matchup=_matchup(5, 14.0)).source == "L10+H2H_STRONG"


def test_pace_adjustment_and_suffixes() -> None:
    fast = project(10.0, environment=_environment(104.0, "fast"))
    assert fast.pace_adjustment == 0.1
    assert fast.source == "L10_MEDIAN+FAST"

    slow = project(20.0, environment=_environment(90.0, "SLOW"))
    assert slow.pace_adjustment == -0.3
    assert slow.projected_value == 19.5
    assert slow.source == "L10_MEDIAN+SLOW"

    mismatched = project(10.0, environment=_environment(104.0, "SLOW"))
    assert mismatched.source == BASE_SOURCE

    assert project(10.0, environment=_environment(None, "FAST")).pace_adjustment == 0.0


def test_combined_projection_uses_config_weights() -> None:
    config = ProjectionConfig(matchup_weight=0.5, pace_weight=0.0)

    projection = project(10.0, matchup=_matchup(5, 12.0), config=config)

    assert projection.matchup_adjustment == 1.0
    assert projection.projected_value == 11.0
