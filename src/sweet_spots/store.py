"""Store adapters for sweet-spot inputs and persisted candidates.

`LocalStore` keeps each input table as JSONL under a data directory and
writes candidate batches as atomic JSON files partitioned by analysis date.
`RestStore` talks to a PostgREST-style HTTP endpoint.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from contextlib import suppress
from datetime import date, datetime
from pathlib import Path
from typing import Any, Protocol

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from sweet_spots.errors import DataFetchError, StoreWriteError
from sweet_spots.normalize import player_key
from sweet_spots.settings import Settings
from sweet_spots.time_utils import iso_z, parse_day, parse_iso_z

logger = logging.getLogger(__name__)

PERFORMANCE_TABLE = "nba_player_game_logs"
ROLE_TABLE = "player_archetypes"
MATCHUP_TABLE = "matchup_history"
ENVIRONMENT_TABLE = "game_environment"
LIVE_LINE_TABLE = "unified_props"
SEASON_TABLE = "player_season_stats"
CANDIDATE_TABLE = "category_sweet_spots"


class SweetSpotStore(Protocol):
    def fetch_performance(self, *, since: date) -> list[dict[str, Any]]: ...

    def fetch_role_assignments(self) -> list[dict[str, Any]]: ...

    def fetch_matchup_history(self) -> list[dict[str, Any]]: ...

    def fetch_game_environments(self, *, on_or_after: date) -> list[dict[str, Any]]: ...

    def fetch_live_lines(self, *, commence_after: datetime) -> list[dict[str, Any]]: ...

    def fetch_season_averages(self) -> list[dict[str, Any]]: ...

    def fetch_candidates(
        self, analysis_date: date, *, active_only: bool = False
    ) -> list[dict[str, Any]]: ...

    def delete_candidates(self, analysis_date: date) -> int: ...

    def insert_candidates(self, rows: list[dict[str, Any]]) -> int: ...

    def upsert_role_assignments(self, rows: list[dict[str, Any]]) -> int: ...


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".tmp-{path.name}-{uuid.uuid4().hex}")
    try:
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        with suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


def _atomic_write_json(path: Path, value: Any) -> None:
    payload = json.dumps(value, sort_keys=True, ensure_ascii=True, indent=2) + "\n"
    _atomic_write_text(path, payload)


def _on_or_after(value: Any, cutoff: date) -> bool:
    """Rows with an unreadable date pass through so validation can reject them."""
    day = parse_day(value)
    return day is None or day >= cutoff


def _batch_size(path: Path) -> int:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return 0
    return len(payload) if isinstance(payload, list) else 0


class LocalStore:
    """Filesystem store rooted at a data directory."""

    def __init__(self, root: Path | str = Path("data/sweet_spots")) -> None:
        self.root = Path(root)
        self.candidates_dir = self.root / "candidates"

    def table_path(self, table: str) -> Path:
        return self.root / f"{table}.jsonl"

    def write_table(self, table: str, rows: list[dict[str, Any]]) -> None:
        lines = [
            f"{json.dumps(row, sort_keys=True, ensure_ascii=True, default=str)}\n" for row in rows
        ]
        _atomic_write_text(self.table_path(table), "".join(lines))

    def read_table(self, table: str) -> list[dict[str, Any]]:
        path = self.table_path(table)
        if not path.exists():
            return []
        rows: list[dict[str, Any]] = []
        try:
            with path.open("r", encoding="utf-8") as handle:
                for line_no, line in enumerate(handle, start=1):
                    stripped = line.strip()
                    if not stripped:
                        continue
                    try:
                        row = json.loads(stripped)
                    except json.JSONDecodeError as exc:
                        raise DataFetchError(
                            f"{path}:{line_no}: invalid JSON", source=table, partial=rows
                        ) from exc
                    if isinstance(row, dict):
                        rows.append(row)
        except OSError as exc:
            raise DataFetchError(f"failed reading {path}", source=table, partial=rows) from exc
        return rows

    def fetch_performance(self, *, since: date) -> list[dict[str, Any]]:
        rows = self.read_table(PERFORMANCE_TABLE)
        return [row for row in rows if _on_or_after(row.get("game_date"), since)]

    def fetch_role_assignments(self) -> list[dict[str, Any]]:
        return self.read_table(ROLE_TABLE)

    def fetch_matchup_history(self) -> list[dict[str, Any]]:
        return self.read_table(MATCHUP_TABLE)

    def fetch_game_environments(self, *, on_or_after: date) -> list[dict[str, Any]]:
        return [
            row
            for row in self.read_table(ENVIRONMENT_TABLE)
            if not row.get("game_date") or _on_or_after(row.get("game_date"), on_or_after)
        ]

    def fetch_live_lines(self, *, commence_after: datetime) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for row in self.read_table(LIVE_LINE_TABLE):
            raw = row.get("commence_time")
            commence = parse_iso_z(raw) if isinstance(raw, str) else None
            if commence is not None and commence < commence_after:
                continue
            out.append(row)
        return out

    def fetch_season_averages(self) -> list[dict[str, Any]]:
        return self.read_table(SEASON_TABLE)

    def _partition(self, analysis_date: date) -> Path:
        return self.candidates_dir / f"analysis_date={analysis_date.isoformat()}"

    def fetch_candidates(
        self, analysis_date: date, *, active_only: bool = False
    ) -> list[dict[str, Any]]:
        partition = self._partition(analysis_date)
        if not partition.exists():
            return []
        rows: list[dict[str, Any]] = []
        for path in sorted(partition.glob("batch-*.json")):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise DataFetchError(
                    f"failed reading {path}", source=CANDIDATE_TABLE, partial=rows
                ) from exc
            if isinstance(payload, list):
                rows.extend(row for row in payload if isinstance(row, dict))
        if active_only:
            rows = [row for row in rows if row.get("is_active") is True]
        return rows

    def delete_candidates(self, analysis_date: date) -> int:
        partition = self._partition(analysis_date)
        if not partition.exists():
            return 0
        deleted = 0
        try:
            for path in sorted(partition.glob("batch-*.json")):
                deleted += _batch_size(path)
                path.unlink()
        except OSError as exc:
            raise StoreWriteError(f"failed deleting candidates for {analysis_date}: {exc}") from exc
        return deleted

    def insert_candidates(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        analysis_date = parse_day(rows[0].get("analysis_date"))
        if analysis_date is None:
            raise StoreWriteError("candidate rows must carry an analysis_date")
        path = self._partition(analysis_date) / f"batch-{uuid.uuid4().hex}.json"
        try:
            _atomic_write_json(path, rows)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreWriteError(f"failed writing {path}: {exc}") from exc
        return len(rows)

    def upsert_role_assignments(self, rows: list[dict[str, Any]]) -> int:
        merged: dict[str, dict[str, Any]] = {}
        for row in [*self.read_table(ROLE_TABLE), *rows]:
            merged[player_key(str(row.get("player_name", "")))] = row
        try:
            self.write_table(ROLE_TABLE, list(merged.values()))
        except OSError as exc:
            raise StoreWriteError(f"failed writing role assignments: {exc}") from exc
        return len(rows)


class RetryableStatusError(RuntimeError):
    """Raised for retryable status codes."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"retryable status {response.status_code}")


class RestStore:
    """PostgREST-style store over httpx with offset pagination."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        base_url = settings.rest_url.rstrip("/")
        if not base_url:
            raise ValueError("rest store requires SWEET_SPOTS_REST_URL")
        self._base_url = base_url
        self._page_size = max(1, int(settings.rest_page_size))
        self._max_attempts = max(1, int(settings.rest_max_attempts))
        api_key = settings.resolved_rest_api_key()
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        limits = httpx.Limits(max_connections=8, max_keepalive_connections=4)
        self._http = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=settings.rest_timeout_s,
            limits=limits,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> RestStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _request(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        response = self._http.request(method, f"/{table}", **kwargs)
        if response.status_code == 429 or 500 <= response.status_code <= 599:
            raise RetryableStatusError(response)
        response.raise_for_status()
        return response

    def _get(self, table: str, **kwargs: Any) -> httpx.Response:
        # Reads only; writes are sent exactly once.
        for attempt in Retrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception_type(RetryableStatusError),
            wait=wait_exponential(multiplier=0.5, max=8.0),
            reraise=True,
        ):
            with attempt:
                return self._request("GET", table, **kwargs)
        raise httpx.HTTPError(f"GET {table} failed without a response")

    def _select(
        self, table: str, *, filters: dict[str, str] | None = None, order: str | None = None
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        offset = 0
        while True:
            params: dict[str, Any] = {"select": "*", "limit": self._page_size, "offset": offset}
            params.update(filters or {})
            if order:
                params["order"] = order
            try:
                payload = self._get(table, params=params).json()
            except (RetryableStatusError, httpx.HTTPError, ValueError) as exc:
                raise DataFetchError(
                    f"{table} read failed: {exc}", source=table, partial=rows
                ) from exc
            if not isinstance(payload, list):
                raise DataFetchError(
                    f"{table} returned non-list payload", source=table, partial=rows
                )
            rows.extend(row for row in payload if isinstance(row, dict))
            if len(payload) < self._page_size:
                return rows
            offset += self._page_size

    def fetch_performance(self, *, since: date) -> list[dict[str, Any]]:
        return self._select(
            PERFORMANCE_TABLE,
            filters={"game_date": f"gte.{since.isoformat()}"},
            order="game_date.desc",
        )

    def fetch_role_assignments(self) -> list[dict[str, Any]]:
        return self._select(ROLE_TABLE)

    def fetch_matchup_history(self) -> list[dict[str, Any]]:
        return self._select(MATCHUP_TABLE)

    def fetch_game_environments(self, *, on_or_after: date) -> list[dict[str, Any]]:
        return self._select(
            ENVIRONMENT_TABLE, filters={"game_date": f"gte.{on_or_after.isoformat()}"}
        )

    def fetch_live_lines(self, *, commence_after: datetime) -> list[dict[str, Any]]:
        return self._select(
            LIVE_LINE_TABLE,
            filters={"commence_time": f"gte.{iso_z(commence_after)}"},
            order="commence_time.asc",
        )

    def fetch_season_averages(self) -> list[dict[str, Any]]:
        return self._select(SEASON_TABLE)

    def fetch_candidates(
        self, analysis_date: date, *, active_only: bool = False
    ) -> list[dict[str, Any]]:
        filters = {"analysis_date": f"eq.{analysis_date.isoformat()}"}
        if active_only:
            filters["is_active"] = "eq.true"
        return self._select(CANDIDATE_TABLE, filters=filters)

    def _write(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._request(method, table, **kwargs)
        except (RetryableStatusError, httpx.HTTPError) as exc:
            raise StoreWriteError(f"{method} {table} failed: {exc}") from exc

    def delete_candidates(self, analysis_date: date) -> int:
        response = self._write(
            "DELETE",
            CANDIDATE_TABLE,
            params={"analysis_date": f"eq.{analysis_date.isoformat()}"},
            headers={"Prefer": "return=representation"},
        )
        try:
            payload = response.json()
        except ValueError:
            return 0
        return len(payload) if isinstance(payload, list) else 0

    def insert_candidates(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        self._write("POST", CANDIDATE_TABLE, json=rows, headers={"Prefer": "return=minimal"})
        return len(rows)

    def upsert_role_assignments(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        self._write(
            "POST",
            ROLE_TABLE,
            json=rows,
            params={"on_conflict": "player_name"},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        return len(rows)


def build_store(settings: Settings) -> LocalStore | RestStore:
    backend = settings.store_backend.strip().lower()
    if backend == "local":
        return LocalStore(Path(settings.data_dir))
    if backend == "rest":
        return RestStore(settings)
    raise ValueError(f"unknown store backend: {settings.store_backend} (options: local,rest)")
