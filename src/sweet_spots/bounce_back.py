"""Mean-reversion ("bounce-back") detection for line-pending candidates."""

from __future__ import annotations

from dataclasses import dataclass

from sweet_spots.errors import ValidationInconsistency
from sweet_spots.runtime_config import BounceBackConfig
from sweet_spots.stats import WindowStats


@dataclass(frozen=True)
class BounceBackSignal:
    season_avg: float
    gap: float
    zscore: float
    line_hit_rate: float
    confidence: float


def detect(
    *,
    window: WindowStats,
    season_avg: float | None,
    line: float,
    config: BounceBackConfig | None = None,
) -> BounceBackSignal | None:
    """Return a signal when a slumping player is priced near their season norm.

    Every gate must hold: the recent window trails the season average by a
    meaningful absolute and standardized gap, the offered line sits close to
    the season average, the over has recently hit only occasionally, and the
    season average still clears most of the line.
    """
    cfg = config or BounceBackConfig()
    if line <= 0:
        raise ValidationInconsistency(f"bounce-back line must be positive, got {line}")
    if season_avg is None:
        return None

    gap = season_avg - window.mean
    if gap < cfg.min_gap:
        return None
    zscore = gap / window.stddev if window.stddev > 0 else 0.0
    if zscore < cfg.min_zscore:
        return None
    if abs(line - season_avg) > cfg.max_line_gap:
        return None
    line_hit_rate = window.hit_rate(line, "over")
    if not cfg.due_band_low <= line_hit_rate <= cfg.due_band_high:
        return None
    if season_avg < cfg.season_line_ratio * line:
        return None

    confidence = min(
        cfg.confidence_cap,
        0.5 + zscore * 0.15 + (season_avg - line) / line * 0.5,
    )
    return BounceBackSignal(
        season_avg=season_avg,
        gap=gap,
        zscore=zscore,
        line_hit_rate=line_hit_rate,
        confidence=confidence,
    )
