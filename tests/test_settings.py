from pathlib import Path

from sweet_spots.settings import Settings


def test_settings_defaults(monkeypatch) -> None:
    monkeypatch.delenv("SWEET_SPOTS_STORE_BACKEND", raising=False)
    settings = Settings(_env_file=None)

    assert settings.store_backend == "local"
    assert settings.data_dir == "data/sweet_spots"
    assert settings.rest_page_size == 1000
    assert settings.rest_max_attempts == 1


def test_settings_read_prefixed_env(monkeypatch) -> None:
    monkeypatch.setenv("SWEET_SPOTS_STORE_BACKEND", "rest")
    monkeypatch.setenv("SWEET_SPOTS_REST_URL", "https://db.example/rest/v1")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")

    settings = Settings(_env_file=None)

    assert settings.store_backend == "rest"
    assert settings.rest_url == "https://db.example/rest/v1"
    assert settings.resolved_rest_api_key() == "service-key"


def test_settings_key_file_fallback(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SWEET_SPOTS_REST_API_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    (tmp_path / "REST_API_KEY").write_text("SWEET_SPOTS_REST_API_KEY='from-file'\n")

    settings = Settings(_env_file=None)

    assert settings.resolved_rest_api_key(base_dir=tmp_path) == "from-file"


def test_settings_key_file_ignores_foreign_names(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SWEET_SPOTS_REST_API_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    (tmp_path / "REST_API_KEY.ignore").write_text("OTHER_KEY=nope\n")

    settings = Settings(_env_file=None)

    assert settings.resolved_rest_api_key(base_dir=tmp_path) == ""
