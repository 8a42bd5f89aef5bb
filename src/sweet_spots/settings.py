"""Application settings for sweet-spots."""

import os
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for store access and process-level knobs."""

    model_config = SettingsConfigDict(
        env_prefix="SWEET_SPOTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    store_backend: str = "local"
    data_dir: str = "data/sweet_spots"
    rest_url: str = ""
    rest_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("SWEET_SPOTS_REST_API_KEY", "SUPABASE_SERVICE_ROLE_KEY"),
    )
    rest_timeout_s: float = 15.0
    rest_page_size: int = 1000
    rest_max_attempts: int = 1
    runtime_config_path: str = ""
    max_workers: int = 4
    key_file_candidates: str = "REST_API_KEY,REST_API_KEY.ignore"

    @staticmethod
    def _parse_key_file(path: Path, *, allowed_names: set[str]) -> str:
        try:
            raw = path.read_text(encoding="utf-8").strip()
        except OSError:
            return ""
        if not raw:
            return ""
        first_line = raw.splitlines()[0].strip()
        if not first_line:
            return ""
        if "=" in first_line:
            key_name, value = first_line.split("=", 1)
            if key_name.strip().upper() not in allowed_names:
                return ""
            return value.strip().strip('"').strip("'")
        return first_line.strip().strip('"').strip("'")

    def resolved_rest_api_key(self, *, base_dir: Path | None = None) -> str:
        """Return the REST key from settings/env, falling back to key files."""
        direct = (
            self.rest_api_key.strip()
            or os.environ.get("SWEET_SPOTS_REST_API_KEY", "").strip()
            or os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()
        )
        if direct:
            return direct
        root = (base_dir or Path.cwd()).resolve()
        for candidate in self.key_file_candidates.split(","):
            name = candidate.strip()
            if not name:
                continue
            candidate_path = Path(name).expanduser()
            path = candidate_path if candidate_path.is_absolute() else root / candidate_path
            if not path.exists() or not path.is_file():
                continue
            parsed = self._parse_key_file(
                path,
                allowed_names={"SWEET_SPOTS_REST_API_KEY", "SUPABASE_SERVICE_ROLE_KEY"},
            )
            if parsed:
                return parsed
        return ""
