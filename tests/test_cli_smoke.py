import json
from pathlib import Path

from sweet_spots.categories import CATEGORIES
from sweet_spots.cli import main
from sweet_spots.store import PERFORMANCE_TABLE, SEASON_TABLE, LocalStore


def _isolate(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in (
        "SWEET_SPOTS_STORE_BACKEND",
        "SWEET_SPOTS_DATA_DIR",
        "SWEET_SPOTS_RUNTIME_CONFIG_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


def test_cli_categories(capsys, monkeypatch, tmp_path: Path) -> None:
    _isolate(monkeypatch, tmp_path)

    code = main(["categories"])
    captured = capsys.readouterr()

    assert code == 0
    payload = json.loads(captured.out)
    assert len(payload["categories"]) == len(CATEGORIES)
    assert payload["ruleset_version"]


def test_cli_analyze_on_empty_store(capsys, monkeypatch, tmp_path: Path) -> None:
    _isolate(monkeypatch, tmp_path)

    code = main(["analyze", "--date", "2026-01-15", f"--data-dir={tmp_path / 'data'}"])
    captured = capsys.readouterr()

    assert code == 0
    payload = json.loads(captured.out)
    assert payload["success"] is True
    assert payload["analysis_date"] == "2026-01-15"
    assert payload["count"] == 0


def test_cli_grade_and_classify(capsys, monkeypatch, tmp_path: Path) -> None:
    _isolate(monkeypatch, tmp_path)
    data_dir = tmp_path / "data"
    store = LocalStore(data_dir)
    store.insert_candidates(
        [
            {
                "analysis_date": "2026-01-15",
                "category": "ELITE_REB_OVER",
                "player_name": "Big Man",
                "prop_type": "rebounds",
                "recommended_side": "over",
                "actual_line": 10.5,
                "is_active": True,
            }
        ]
    )
    store.write_table(
        PERFORMANCE_TABLE, [{"player_name": "Big Man", "game_date": "2026-01-15", "rebounds": 13}]
    )
    store.write_table(
        SEASON_TABLE, [{"player_name": "Big Man", "games_played": 30, "avg_rebounds": 11.2}]
    )

    code = main(["--data-dir", str(data_dir), "grade", "--date", "2026-01-15"])
    graded = json.loads(capsys.readouterr().out)
    assert code == 0
    assert graded["results"][0]["outcome"] == "hit"

    code = main(["classify-archetypes", "--data-dir", str(data_dir)])
    classified = json.loads(capsys.readouterr().out)
    assert code == 0
    assert classified["written"] == 1
    assert store.fetch_role_assignments()[0]["primary_archetype"] == "ELITE_REBOUNDER"


def test_cli_reports_user_errors(capsys, monkeypatch, tmp_path: Path) -> None:
    _isolate(monkeypatch, tmp_path)

    assert main(["analyze", "--category", "NOPE", "--data-dir", str(tmp_path)]) == 2
    assert "unknown category" in capsys.readouterr().err

    assert main(["analyze", "--date", "01/15/2026", "--data-dir", str(tmp_path)]) == 2
    assert "--date must be YYYY-MM-DD" in capsys.readouterr().err

    assert main(["--log-level", "LOUD", "categories"]) == 2
    assert main(["--config", str(tmp_path / "missing.toml"), "categories"]) == 2
    assert main(["categories", "--config"]) == 2
