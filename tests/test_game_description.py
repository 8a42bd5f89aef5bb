from sweet_spots.game_description import canonical_team, parse_game_description, resolve_opponent


def test_canonical_team_aliases() -> None:
    assert canonical_team("New York Knicks") == "NYK"
    assert canonical_team("knicks") == "NYK"
    assert canonical_team("L.A. Lakers") == "LAL"
    assert canonical_team("Springfield Atoms") == "springfield atoms"
    assert canonical_team("  ") is None
    assert canonical_team(None) is None


def test_parse_game_description_formats() -> None:
    assert parse_game_description("BOS @ NYK") == ("BOS", "NYK")
    assert parse_game_description("Boston Celtics at New York Knicks") == (
        "Boston Celtics",
        "New York Knicks",
    )
    assert parse_game_description("Knicks vs. Celtics") == ("Celtics", "Knicks")
    assert parse_game_description("Celtics tonight") is None
    assert parse_game_description(None) is None


def _resolve(description: str | None, team: str | None, opponent: str | None = None):
    return resolve_opponent(opponent=opponent, game_description=description, player_team=team)


def test_resolve_opponent_prefers_structured_field() -> None:
    assert _resolve("BOS @ NYK", "BOS", opponent="Heat") == "MIA"


def test_resolve_opponent_from_description() -> None:
    description = "Boston Celtics @ New York Knicks"

    assert _resolve(description, "BOS") == "NYK"
    assert _resolve(description, "New York") == "BOS"
    assert _resolve(description, None) == "NYK"
    assert _resolve("", "BOS") is None


def test_resolve_opponent_without_team_uses_second_named_side() -> None:
    assert _resolve("Knicks vs. Celtics", None) == "BOS"
    assert _resolve("Knicks vs. Celtics", "Springfield Atoms") == "BOS"
    assert _resolve("Knicks vs. Celtics", "BOS") == "NYK"
    assert _resolve("Heat at Magic", None) == "ORL"
