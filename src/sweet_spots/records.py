"""Validated input records for store payloads.

Every loosely structured row that crosses the store boundary is parsed into one
of these models; rows that fail validation are rejected and counted here, so
downstream computation only ever sees well-formed records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import Annotated, Any, TypeVar

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from sweet_spots.archetypes import Role
from sweet_spots.normalize import BASE_METRICS, COMBO_METRICS, normalize_metric

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _required_text(value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError("value is required")
    return text


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _zero_if_missing(value: Any) -> Any:
    return 0.0 if value is None or value == "" else value


def _metric_name(value: Any) -> str:
    metric = normalize_metric(str(value or ""))
    if not metric:
        raise ValueError("metric is required")
    return metric


def _upper_or_none(value: Any) -> str | None:
    text = _optional_text(value)
    return text.upper() if text else None


RequiredText = Annotated[str, BeforeValidator(_required_text)]
OptionalText = Annotated[str | None, BeforeValidator(_optional_text)]
StatValue = Annotated[float, BeforeValidator(_zero_if_missing)]
MetricName = Annotated[str, BeforeValidator(_metric_name)]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class PerformanceRecord(_Record):
    player_name: RequiredText
    game_date: date
    points: StatValue = 0.0
    rebounds: StatValue = 0.0
    assists: StatValue = 0.0
    threes: StatValue = Field(default=0.0, validation_alias=AliasChoices("threes", "threes_made"))
    steals: StatValue = 0.0
    blocks: StatValue = 0.0
    turnovers: StatValue = 0.0
    minutes_played: float | None = None
    team: OptionalText = None
    opponent: OptionalText = None

    def value(self, metric: str) -> float:
        """Return a base or combo metric value for this game."""
        name = normalize_metric(metric)
        if name in COMBO_METRICS:
            return float(sum(getattr(self, part) for part in COMBO_METRICS[name]))
        if name not in BASE_METRICS:
            raise KeyError(f"unknown metric: {metric}")
        return float(getattr(self, name))


class ArchetypeAssignment(_Record):
    player_name: RequiredText
    role: Annotated[Role, BeforeValidator(lambda value: str(value or "").strip().upper())] = Field(
        validation_alias=AliasChoices("role", "primary_archetype")
    )
    manual_override: bool = False


class MatchupHistory(_Record):
    player_name: RequiredText
    metric: MetricName = Field(validation_alias=AliasChoices("metric", "prop_type"))
    opponent: RequiredText
    games_played: int = Field(ge=0)
    avg_stat: float
    min_stat: float | None = None
    max_stat: float | None = None


class GameEnvironment(_Record):
    game_id: RequiredText
    game_date: date | None = None
    home_team: RequiredText
    away_team: RequiredText
    vegas_total: float | None = None
    vegas_spread: float | None = None
    pace_rating: float | None = None
    pace_class: Annotated[str | None, BeforeValidator(_upper_or_none)] = None


class LiveLine(_Record):
    player_name: RequiredText
    metric: MetricName = Field(validation_alias=AliasChoices("metric", "prop_type"))
    line: float = Field(validation_alias=AliasChoices("line", "current_line"))
    over_price: int | None = None
    under_price: int | None = None
    bookmaker: Annotated[str, BeforeValidator(lambda value: str(value or "").strip())] = ""
    commence_time: datetime | None = None
    opponent: OptionalText = None
    player_team: OptionalText = None
    game_description: OptionalText = None


class SeasonAverages(_Record):
    player_name: RequiredText
    games_played: int = 0
    avg_points: StatValue = 0.0
    avg_rebounds: StatValue = 0.0
    avg_assists: StatValue = 0.0
    avg_threes: StatValue = 0.0
    avg_steals: StatValue = 0.0
    avg_blocks: StatValue = 0.0
    avg_minutes: StatValue = 0.0

    def average(self, metric: str) -> float | None:
        name = normalize_metric(metric)
        if name in COMBO_METRICS:
            return float(sum(getattr(self, f"avg_{part}") for part in COMBO_METRICS[name]))
        value = getattr(self, f"avg_{name}", None)
        return None if value is None else float(value)


def validate_rows(
    model: type[ModelT], rows: Iterable[dict[str, Any]], *, source: str
) -> tuple[list[ModelT], int]:
    """Parse raw store rows, returning valid records and the rejected-row count."""
    records: list[ModelT] = []
    rejected = 0
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            rejected += 1
            continue
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            rejected += 1
            if rejected <= 3:
                logger.debug("%s row %d rejected: %s", source, index, exc.errors()[:2])
    if rejected:
        logger.warning("%s: rejected %d malformed rows (%d kept)", source, rejected, len(records))
    return records, rejected
