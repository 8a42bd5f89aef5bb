"""Per-category threshold selection over a rolling window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sweet_spots.archetypes import ArchetypeCheck, Role
from sweet_spots.candidate import Candidate, CandidateState, EligibilityPath, advance
from sweet_spots.categories import Category
from sweet_spots.stats import WindowStats


@dataclass(frozen=True)
class EvaluationOutcome:
    candidate: Candidate | None
    reason: str
    archetype_blocked: bool = False


def consistency(window: WindowStats) -> float:
    if window.mean <= 0:
        return 0.0
    return max(0.0, 1.0 - window.stddev / window.mean)


def range_confidence(hit_rate: float, window: WindowStats, *, ceiling: float) -> float:
    """Blend hit rate (60%) with window consistency (40%), capped at `ceiling`."""
    return min(ceiling, 0.6 * hit_rate + 0.4 * consistency(window))


def best_threshold(
    window: WindowStats, category: Category, *, min_hit_rate: float
) -> tuple[float, float] | None:
    """Highest-hit-rate threshold meeting `min_hit_rate`; earlier thresholds win ties."""
    best: tuple[float, float] | None = None
    for threshold in category.thresholds:
        rate = window.hit_rate(threshold, category.direction)
        if rate < min_hit_rate:
            continue
        if best is None or rate > best[1]:
            best = (threshold, rate)
    return best


def evaluate(
    *,
    player_name: str,
    window: WindowStats,
    category: Category,
    archetype: ArchetypeCheck,
    role: Role,
    analysis_date: date,
    min_hit_rate: float | None = None,
    confidence_ceiling: float = 0.90,
) -> EvaluationOutcome:
    if not archetype.passes:
        return EvaluationOutcome(None, archetype.reason, archetype_blocked=True)

    candidate = Candidate(
        category=category,
        player_name=player_name,
        role=role,
        window=window,
        analysis_date=analysis_date,
        direction=category.direction,
        role_caution=archetype.caution,
    )

    if category.average_eligible(window.mean):
        required = category.min_hit_rate if min_hit_rate is None else min_hit_rate
        best = best_threshold(window, category, min_hit_rate=required)
        if best is None:
            return EvaluationOutcome(None, f"no threshold reaches {required:.2f}")
        threshold, rate = best
        candidate.threshold = threshold
        candidate.window_hit_rate = rate
        candidate.required_hit_rate = required
        candidate.confidence = range_confidence(rate, window, ceiling=confidence_ceiling)
        candidate.eligibility = EligibilityPath.RANGE
        advance(candidate, CandidateState.RANGE_ELIGIBLE, reason="average in range")
        return EvaluationOutcome(candidate, "range eligible")

    if category.line_range is not None:
        candidate.eligibility = EligibilityPath.LINE_PENDING
        advance(candidate, CandidateState.LINE_PENDING, reason="awaiting live line")
        return EvaluationOutcome(candidate, "line pending")

    return EvaluationOutcome(None, f"average {window.mean:.1f} outside {category.avg_range}")
