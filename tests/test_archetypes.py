from __future__ import annotations

from sweet_spots.archetypes import (
    ArchetypeClassifier,
    Role,
    check_role,
    classify_players,
    classify_role,
)
from sweet_spots.categories import get_category
from sweet_spots.records import ArchetypeAssignment, SeasonAverages


def _season(name: str = "Big Man", **averages) -> SeasonAverages:
    return SeasonAverages.model_validate({"player_name": name, "games_played": 20, **averages})


def test_check_role_blocked_required_and_unknown() -> None:
    category = get_category("ELITE_REB_OVER")

    blocked = check_role(Role.PLAYMAKER, category)
    assert blocked.passes is False
    assert "blocked" in blocked.reason

    outside = check_role(Role.SCORING_WING, category)
    assert outside.passes is False
    assert "required" in outside.reason

    unknown = check_role(Role.UNKNOWN, category)
    assert unknown.passes is True
    assert unknown.caution is True

    assert check_role(Role.ELITE_REBOUNDER, category).passes is True
    assert check_role(Role.PLAYMAKER, get_category("HIGH_ASSIST")).caution is False


def test_classifier_defaults_to_unknown() -> None:
    row = {"player_name": "Big Man Jr.", "role": "rim_protector"}
    classifier = ArchetypeClassifier.from_assignments([ArchetypeAssignment.model_validate(row)])

    assert len(classifier) == 1
    assert classifier.role_of("big man") == Role.RIM_PROTECTOR
    assert classifier.role_of("Nobody") == Role.UNKNOWN
    assert classifier.validate("Nobody", get_category("BIG_REBOUNDER")).caution is True


def test_classify_role_priority_order() -> None:
    assert classify_role(_season(avg_rebounds=12, avg_assists=9))[0] == Role.ELITE_REBOUNDER
    assert classify_role(_season(avg_rebounds=6.5, avg_blocks=2.2))[0] == Role.RIM_PROTECTOR
    assert classify_role(_season(avg_assists=8.5))[0] == Role.ELITE_PLAYMAKER
    assert (
        classify_role(_season(avg_points=26, avg_minutes=34, avg_threes=3))[0]
        == Role.PRIMARY_SCORER
    )
    assert classify_role(_season(avg_points=14, avg_threes=2.8))[0] == Role.PURE_SHOOTER
    assert classify_role(_season(avg_points=16, avg_assists=2))[0] == Role.SCORING_GUARD
    role, description = classify_role(_season(avg_points=4))
    assert role == Role.ROLE_PLAYER
    assert description == "default classification"


def test_classify_players_respects_manual_overrides() -> None:
    seasons = [
        _season("Manual Guy", avg_rebounds=11),
        _season("Same Guy", avg_rebounds=11),
        _season("Changed Guy", avg_rebounds=11),
        _season("New Guy", avg_assists=7),
        SeasonAverages.model_validate({"player_name": "Rookie", "games_played": 1}),
    ]
    existing = [
        ArchetypeAssignment.model_validate(
            {"player_name": "Manual Guy", "role": "PLAYMAKER", "manual_override": True}
        ),
        ArchetypeAssignment.model_validate({"player_name": "Same Guy", "role": "ELITE_REBOUNDER"}),
        ArchetypeAssignment.model_validate({"player_name": "Changed Guy", "role": "ROLE_PLAYER"}),
    ]

    result = classify_players(season_rows=seasons, existing=existing, min_games=3)

    assert result["counts"] == {
        "inserted": 1,
        "updated": 1,
        "skipped_manual": 1,
        "skipped_same": 1,
        "too_few_games": 1,
    }
    assigned = {row["player_name"]: row["primary_archetype"] for row in result["assignments"]}
    assert assigned == {"Changed Guy": "ELITE_REBOUNDER", "New Guy": "PLAYMAKER"}
