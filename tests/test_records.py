from datetime import date

import pytest

from sweet_spots.archetypes import Role
from sweet_spots.records import (
    ArchetypeAssignment,
    LiveLine,
    PerformanceRecord,
    SeasonAverages,
    validate_rows,
)


def test_performance_record_coerces_missing_stats() -> None:
    record = PerformanceRecord.model_validate(
        {
            "player_name": " Big Man ",
            "game_date": "2026-01-10",
            "points": None,
            "rebounds": "11",
            "threes_made": 2,
            "team": "",
            "extra": "ignored",
        }
    )

    assert record.player_name == "Big Man"
    assert record.game_date == date(2026, 1, 10)
    assert record.points == 0.0
    assert record.value("reb") == 11.0
    assert record.value("player_threes") == 2.0
    assert record.value("pr") == 11.0
    assert record.team is None
    with pytest.raises(KeyError):
        record.value("dunks")


def test_live_line_aliases() -> None:
    line = LiveLine.model_validate(
        {
            "player_name": "Big Man",
            "prop_type": "player_rebounds",
            "current_line": "10.5",
            "bookmaker": None,
            "commence_time": "2026-01-16T00:30:00Z",
        }
    )

    assert line.metric == "rebounds"
    assert line.line == 10.5
    assert line.bookmaker == ""
    assert line.commence_time is not None


def test_archetype_assignment_accepts_lowercase_primary_archetype() -> None:
    row = ArchetypeAssignment.model_validate(
        {"player_name": "Big Man", "primary_archetype": "glass_cleaner"}
    )

    assert row.role == Role.GLASS_CLEANER
    assert row.manual_override is False


def test_season_averages_support_combo_metrics() -> None:
    season = SeasonAverages.model_validate(
        {"player_name": "A", "avg_points": 20, "avg_rebounds": 5, "avg_assists": 4}
    )

    assert season.average("points") == 20.0
    assert season.average("pra") == 29.0
    assert season.average("turnovers") is None


def test_validate_rows_counts_rejects() -> None:
    rows = [
        {"player_name": "A", "game_date": "2026-01-10"},
        {"player_name": "", "game_date": "2026-01-10"},
        {"player_name": "B", "game_date": "not a date"},
        "not a row",
    ]

    records, rejected = validate_rows(PerformanceRecord, rows, source="performance")

    assert [record.player_name for record in records] == ["A"]
    assert rejected == 3
