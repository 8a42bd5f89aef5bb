"""Runtime configuration loader (config-first, flag-overrides)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.toml"
DEFAULT_LOCAL_OVERRIDE_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.local.toml"


@dataclass(frozen=True)
class WindowConfig:
    target_size: int = 10
    min_size: int = 5
    lookback_days: int = 30


@dataclass(frozen=True)
class ProjectionConfig:
    matchup_weight: float = 0.30
    pace_weight: float = 0.15
    min_meetings: int = 2
    strong_meetings: int = 5


@dataclass(frozen=True)
class BounceBackConfig:
    min_gap: float = 1.5
    min_zscore: float = 0.5
    max_line_gap: float = 2.0
    due_band_low: float = 0.20
    due_band_high: float = 0.50
    season_line_ratio: float = 0.95
    confidence_cap: float = 0.85


@dataclass(frozen=True)
class RiskBands:
    """Ordered `(min_hit_rate, tier)` pairs; the first satisfied band wins."""

    bands: tuple[tuple[float, str], ...]
    fallback: str

    def tier_for(self, hit_rate: float) -> str:
        for minimum, tier in self.bands:
            if hit_rate >= minimum:
                return tier
        return self.fallback


@dataclass(frozen=True)
class FloorBracket:
    min_line: float
    floor: float
    inclusive: bool = True

    def matches(self, line: float) -> bool:
        return line >= self.min_line if self.inclusive else line > self.min_line


@dataclass(frozen=True)
class TieredFloors:
    """Required hit rate by offered line bracket, highest bracket first."""

    brackets: tuple[FloorBracket, ...]
    default: float

    def required_for(self, line: float) -> float:
        for bracket in self.brackets:
            if bracket.matches(line):
                return bracket.floor
        return self.default


def _default_tiered_floors() -> dict[str, TieredFloors]:
    return {
        "big_rebounder": TieredFloors(
            brackets=(
                FloorBracket(min_line=10.5, floor=0.60, inclusive=False),
                FloorBracket(min_line=8.5, floor=0.65, inclusive=True),
            ),
            default=0.70,
        )
    }


@dataclass(frozen=True)
class ReconcileConfig:
    legacy_required_hit_rate: float = 0.70
    optimal_risk: RiskBands = RiskBands(bands=((0.60, "LOW"), (0.45, "MEDIUM")), fallback="HIGH")
    pass_through_risk: RiskBands = RiskBands(
        bands=((0.50, "MEDIUM"), (0.30, "HIGH")), fallback="EXTREME"
    )
    line_eligible_risk: RiskBands = RiskBands(
        bands=((0.70, "LOW"), (0.50, "MEDIUM"), (0.30, "HIGH")), fallback="EXTREME"
    )
    line_eligible_confidence_floor: float = 0.40
    tiered_floors: dict[str, TieredFloors] = field(default_factory=_default_tiered_floors)

    def required_hit_rate(self, *, floors_name: str | None, line: float) -> float:
        if floors_name:
            floors = self.tiered_floors.get(floors_name)
            if floors is not None:
                return floors.required_for(line)
        return self.legacy_required_hit_rate


@dataclass(frozen=True)
class RuntimeConfig:
    """Materialized runtime configuration."""

    config_path: Path | None = None
    window: WindowConfig = WindowConfig()
    projection: ProjectionConfig = ProjectionConfig()
    bounce_back: BounceBackConfig = BounceBackConfig()
    reconcile: ReconcileConfig = ReconcileConfig()
    confidence_ceiling: float = 0.90
    persist_batch_size: int = 100

    def with_overrides(
        self,
        *,
        persist_batch_size: int | None = None,
        confidence_ceiling: float | None = None,
    ) -> RuntimeConfig:
        """Return copy with explicit CLI overrides applied."""
        return replace(
            self,
            persist_batch_size=(
                max(1, int(persist_batch_size))
                if persist_batch_size is not None
                else self.persist_batch_size
            ),
            confidence_ceiling=(
                float(confidence_ceiling)
                if confidence_ceiling is not None
                else self.confidence_ceiling
            ),
        )


_CURRENT_RUNTIME_CONFIG: RuntimeConfig | None = None


def set_current_runtime_config(config: RuntimeConfig | None) -> None:
    global _CURRENT_RUNTIME_CONFIG
    _CURRENT_RUNTIME_CONFIG = config


def current_runtime_config() -> RuntimeConfig:
    config = _CURRENT_RUNTIME_CONFIG
    if config is not None:
        return config
    loaded = load_runtime_config()
    set_current_runtime_config(loaded)
    return loaded


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in overlay.items():
        existing = out.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            out[key] = _deep_merge(existing, value)
        else:
            out[key] = value
    return out


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"failed reading runtime config: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise RuntimeError(f"invalid runtime config TOML: {path}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError(f"runtime config root must be a table: {path}")
    return payload


def _as_table(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuntimeError(f"runtime config section [{key}] must be a table")
    return value


def _as_str(value: Any, *, default: str) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return default


def _as_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _as_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _as_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


def _as_risk_bands(value: Any, *, default: RiskBands) -> RiskBands:
    if not isinstance(value, dict):
        return default
    raw_bands = value.get("bands")
    bands: list[tuple[float, str]] = []
    if isinstance(raw_bands, list):
        for item in raw_bands:
            if not isinstance(item, dict):
                continue
            tier = _as_str(item.get("tier"), default="")
            if not tier:
                continue
            bands.append((_as_float(item.get("min_hit_rate"), default=0.0), tier.upper()))
    bands.sort(key=lambda band: band[0], reverse=True)
    return RiskBands(
        bands=tuple(bands) if bands else default.bands,
        fallback=_as_str(value.get("fallback"), default=default.fallback).upper(),
    )


def _as_tiered_floors(
    value: Any, *, default: dict[str, TieredFloors], legacy_default: float
) -> dict[str, TieredFloors]:
    if not isinstance(value, dict):
        return dict(default)
    out = dict(default)
    for name, table in value.items():
        if not isinstance(table, dict):
            raise RuntimeError(f"runtime config [reconcile.tiered_floors.{name}] must be a table")
        brackets: list[FloorBracket] = []
        for item in table.get("brackets", []) or []:
            if not isinstance(item, dict):
                continue
            brackets.append(
                FloorBracket(
                    min_line=_as_float(item.get("min_line"), default=0.0),
                    floor=_as_float(item.get("floor"), default=legacy_default),
                    inclusive=_as_bool(item.get("inclusive"), default=True),
                )
            )
        brackets.sort(key=lambda bracket: (bracket.min_line, not bracket.inclusive), reverse=True)
        out[str(name).strip().lower()] = TieredFloors(
            brackets=tuple(brackets),
            default=_as_float(table.get("default"), default=legacy_default),
        )
    return out


def runtime_config_from_payload(
    payload: dict[str, Any], *, config_path: Path | None = None
) -> RuntimeConfig:
    """Materialize a config from a parsed TOML payload, defaulting any missing keys."""
    defaults = RuntimeConfig()
    window = _as_table(payload, "window")
    projection = _as_table(payload, "projection")
    bounce_back = _as_table(payload, "bounce_back")
    reconcile = _as_table(payload, "reconcile")
    confidence = _as_table(payload, "confidence")
    persist = _as_table(payload, "persist")

    legacy_required = _as_float(
        reconcile.get("legacy_required_hit_rate"),
        default=defaults.reconcile.legacy_required_hit_rate,
    )
    return RuntimeConfig(
        config_path=config_path,
        window=WindowConfig(
            target_size=max(1, _as_int(window.get("target_size"), default=10)),
            min_size=max(1, _as_int(window.get("min_size"), default=5)),
            lookback_days=max(1, _as_int(window.get("lookback_days"), default=30)),
        ),
        projection=ProjectionConfig(
            matchup_weight=_as_float(projection.get("matchup_weight"), default=0.30),
            pace_weight=_as_float(projection.get("pace_weight"), default=0.15),
            min_meetings=_as_int(projection.get("min_meetings"), default=2),
            strong_meetings=_as_int(projection.get("strong_meetings"), default=5),
        ),
        bounce_back=BounceBackConfig(
            min_gap=_as_float(bounce_back.get("min_gap"), default=1.5),
            min_zscore=_as_float(bounce_back.get("min_zscore"), default=0.5),
            max_line_gap=_as_float(bounce_back.get("max_line_gap"), default=2.0),
            due_band_low=_as_float(bounce_back.get("due_band_low"), default=0.20),
            due_band_high=_as_float(bounce_back.get("due_band_high"), default=0.50),
            season_line_ratio=_as_float(bounce_back.get("season_line_ratio"), default=0.95),
            confidence_cap=_as_float(bounce_back.get("confidence_cap"), default=0.85),
        ),
        reconcile=ReconcileConfig(
            legacy_required_hit_rate=legacy_required,
            optimal_risk=_as_risk_bands(
                reconcile.get("optimal_risk"), default=defaults.reconcile.optimal_risk
            ),
            pass_through_risk=_as_risk_bands(
                reconcile.get("pass_through_risk"), default=defaults.reconcile.pass_through_risk
            ),
            line_eligible_risk=_as_risk_bands(
                reconcile.get("line_eligible_risk"),
                default=defaults.reconcile.line_eligible_risk,
            ),
            line_eligible_confidence_floor=_as_float(
                reconcile.get("line_eligible_confidence_floor"), default=0.40
            ),
            tiered_floors=_as_tiered_floors(
                reconcile.get("tiered_floors"),
                default=defaults.reconcile.tiered_floors,
                legacy_default=legacy_required,
            ),
        ),
        confidence_ceiling=_as_float(confidence.get("ceiling"), default=0.90),
        persist_batch_size=max(1, _as_int(persist.get("batch_size"), default=100)),
    )


def load_runtime_config(config_path: Path | None = None) -> RuntimeConfig:
    """Load runtime config from `config/runtime.toml` plus optional local override.

    An explicit path must exist; when the packaged default is absent (e.g. a
    wheel install without the repo `config/` dir) built-in defaults are used.
    """
    if config_path is not None:
        source = config_path.expanduser().resolve()
        if not source.exists():
            raise RuntimeError(f"runtime config file not found: {source}")
    else:
        source = DEFAULT_CONFIG_PATH
        if not source.exists():
            return RuntimeConfig()

    payload = _read_toml(source)
    if source == DEFAULT_CONFIG_PATH and DEFAULT_LOCAL_OVERRIDE_PATH.exists():
        payload = _deep_merge(payload, _read_toml(DEFAULT_LOCAL_OVERRIDE_PATH))
    return runtime_config_from_payload(payload, config_path=source)
