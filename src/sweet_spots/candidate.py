"""Sweet-spot candidates and their lifecycle.

Each candidate moves through one explicit state machine:

    PENDING -> {RANGE_ELIGIBLE | LINE_PENDING} -> VALIDATED -> {ACTIVE | INACTIVE}

Candidates without a live line skip VALIDATED and go straight to INACTIVE.
`advance` is the only place state changes, and it refuses to activate a
candidate whose role the category does not allow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sweet_spots.archetypes import Role, check_role
from sweet_spots.categories import RULESET_VERSION, Category, Direction
from sweet_spots.errors import ValidationInconsistency
from sweet_spots.normalize import player_key
from sweet_spots.stats import WindowStats

if TYPE_CHECKING:
    from sweet_spots.projection import Projection


class CandidateState(StrEnum):
    PENDING = "PENDING"
    RANGE_ELIGIBLE = "RANGE_ELIGIBLE"
    LINE_PENDING = "LINE_PENDING"
    VALIDATED = "VALIDATED"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class EligibilityPath(StrEnum):
    RANGE = "RANGE"
    LINE_PENDING = "LINE_PENDING"
    BOUNCE_BACK = "BOUNCE_BACK"
    LINE_ELIGIBLE = "LINE_ELIGIBLE"


_TRANSITIONS: dict[CandidateState, frozenset[CandidateState]] = {
    CandidateState.PENDING: frozenset({CandidateState.RANGE_ELIGIBLE, CandidateState.LINE_PENDING}),
    CandidateState.RANGE_ELIGIBLE: frozenset({CandidateState.VALIDATED, CandidateState.INACTIVE}),
    CandidateState.LINE_PENDING: frozenset({CandidateState.VALIDATED, CandidateState.INACTIVE}),
    CandidateState.VALIDATED: frozenset({CandidateState.ACTIVE, CandidateState.INACTIVE}),
    CandidateState.ACTIVE: frozenset(),
    CandidateState.INACTIVE: frozenset(),
}


@dataclass
class Candidate:
    category: Category
    player_name: str
    role: Role
    window: WindowStats
    analysis_date: date
    direction: Direction
    threshold: float | None = None
    window_hit_rate: float | None = None
    confidence: float = 0.0
    eligibility: EligibilityPath = EligibilityPath.RANGE
    state: CandidateState = CandidateState.PENDING
    role_caution: bool = False
    projection: Projection | None = None
    live_line: float | None = None
    live_hit_rate: float | None = None
    bookmaker: str | None = None
    over_price: int | None = None
    under_price: int | None = None
    opponent: str | None = None
    risk_tier: str | None = None
    recommendation: str | None = None
    required_hit_rate: float | None = None
    season_avg: float | None = None
    bounce_back_score: float | None = None
    inactive_reason: str | None = None
    notes: list[str] = field(default_factory=list)

    @property
    def metric(self) -> str:
        return self.category.metric

    @property
    def active(self) -> bool:
        return self.state == CandidateState.ACTIVE

    @property
    def dedupe_key(self) -> tuple[str, str]:
        return player_key(self.player_name), self.metric

    @property
    def line_difference(self) -> float | None:
        if self.live_line is None or self.threshold is None:
            return None
        return round(self.live_line - self.threshold, 1)

    def to_row(self) -> dict[str, Any]:
        """Flatten into the persisted sweet-spot row."""
        projection = self.projection
        return {
            "analysis_date": self.analysis_date.isoformat(),
            "category": self.category.key,
            "ruleset_version": RULESET_VERSION,
            "player_name": self.player_name,
            "prop_type": self.metric,
            "recommended_line": self.threshold,
            "recommended_side": self.direction,
            "l10_hit_rate": _round(self.window_hit_rate, 2),
            "l10_avg": round(self.window.mean, 1),
            "l10_median": round(self.window.median, 1),
            "l10_min": self.window.minimum,
            "l10_max": self.window.maximum,
            "l10_std_dev": round(self.window.stddev, 2),
            "games_played": self.window.sample_size,
            "archetype": str(self.role),
            "archetype_caution": self.role_caution,
            "confidence_score": round(self.confidence, 2),
            "eligibility_type": str(self.eligibility),
            "state": str(self.state),
            "is_active": self.active,
            "inactive_reason": self.inactive_reason,
            "projected_value": projection.projected_value if projection else None,
            "matchup_adjustment": projection.matchup_adjustment if projection else None,
            "pace_adjustment": projection.pace_adjustment if projection else None,
            "projection_source": projection.source if projection else None,
            "actual_line": self.live_line,
            "actual_hit_rate": _round(self.live_hit_rate, 2),
            "line_difference": self.line_difference,
            "bookmaker": self.bookmaker,
            "over_price": self.over_price,
            "under_price": self.under_price,
            "opponent": self.opponent,
            "risk_level": self.risk_tier,
            "recommendation": self.recommendation,
            "required_hit_rate": _round(self.required_hit_rate, 2),
            "season_avg": _round(self.season_avg, 1),
            "bounce_back_score": _round(self.bounce_back_score, 2),
        }


def _round(value: float | None, digits: int) -> float | None:
    return None if value is None else round(value, digits)


def advance(candidate: Candidate, target: CandidateState, *, reason: str = "") -> Candidate:
    """Move `candidate` to `target`, enforcing legal transitions and role gating."""
    allowed = _TRANSITIONS[candidate.state]
    if target not in allowed:
        raise ValidationInconsistency(
            f"illegal transition {candidate.state} -> {target} for "
            f"{candidate.player_name} {candidate.category.key}"
        )
    if target == CandidateState.ACTIVE:
        check = check_role(candidate.role, candidate.category)
        if not check.passes:
            raise ValidationInconsistency(check.reason)
    candidate.state = target
    if target == CandidateState.INACTIVE:
        candidate.inactive_reason = reason or candidate.inactive_reason
    elif reason:
        candidate.notes.append(reason)
    return candidate
