"""Reconcile screened candidates against live market lines.

Acceptance is a per-family policy:

- line-pending candidates are admitted by the offered line itself, either as a
  bounce-back over or as a line-eligible over with a risk tier;
- the optimal family activates on the window hit rate and uses the live hit
  rate only to grade risk;
- the legacy family re-gates on the live hit rate against a (possibly tiered)
  floor, and "big stat" categories keep their over with a risk tier on a miss.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from sweet_spots import bounce_back
from sweet_spots.candidate import Candidate, CandidateState, EligibilityPath, advance
from sweet_spots.errors import NoUpcomingGameError
from sweet_spots.records import LiveLine
from sweet_spots.runtime_config import RuntimeConfig

logger = logging.getLogger(__name__)

NO_LINE_REASON = "no upcoming game/line"


@dataclass
class ReconcileCounters:
    dropped: int = 0
    no_game: int = 0
    bounce_back: int = 0
    line_eligible: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


def _require_line(candidate: Candidate, line: LiveLine | None) -> LiveLine:
    if line is None:
        raise NoUpcomingGameError(f"{candidate.player_name} {candidate.metric}: {NO_LINE_REASON}")
    return line


def _attach_line(candidate: Candidate, line: LiveLine) -> None:
    candidate.live_line = line.line
    candidate.bookmaker = line.bookmaker or None
    candidate.over_price = line.over_price
    candidate.under_price = line.under_price


def _line_pending(
    candidate: Candidate,
    line: LiveLine,
    *,
    config: RuntimeConfig,
    counters: ReconcileCounters,
) -> Candidate:
    category = candidate.category
    if not category.line_eligible(line.line):
        return advance(
            candidate,
            CandidateState.INACTIVE,
            reason=f"line {line.line} outside line range {category.line_range}",
        )

    window = candidate.window
    if category.supports_reversion:
        signal = bounce_back.detect(
            window=window,
            season_avg=candidate.season_avg,
            line=line.line,
            config=config.bounce_back,
        )
        if signal is not None:
            candidate.direction = "over"
            candidate.threshold = line.line
            candidate.live_hit_rate = signal.line_hit_rate
            candidate.eligibility = EligibilityPath.BOUNCE_BACK
            candidate.bounce_back_score = signal.zscore
            candidate.required_hit_rate = config.bounce_back.due_band_low
            candidate.confidence = min(config.confidence_ceiling, signal.confidence)
            candidate.recommendation = (
                f"Bounce-back - season {signal.season_avg:.1f} vs L10 {window.mean:.1f} "
                f"({signal.zscore:.2f} std devs below)"
            )
            counters.bounce_back += 1
            advance(candidate, CandidateState.VALIDATED, reason="bounce-back signal")
            return advance(candidate, CandidateState.ACTIVE)

    rate = window.hit_rate(line.line, "over")
    tier = config.reconcile.line_eligible_risk.tier_for(rate)
    candidate.direction = "over"
    candidate.threshold = line.line
    candidate.live_hit_rate = rate
    candidate.eligibility = EligibilityPath.LINE_ELIGIBLE
    candidate.risk_tier = tier
    candidate.required_hit_rate = 0.0
    candidate.confidence = max(
        config.reconcile.line_eligible_confidence_floor,
        min(config.confidence_ceiling, rate * 0.8 + 0.3),
    )
    candidate.recommendation = f"{tier} risk - {_pct(rate)} L10 over {line.line}"
    counters.line_eligible += 1
    advance(candidate, CandidateState.VALIDATED, reason="line eligible")
    return advance(candidate, CandidateState.ACTIVE)


def _optimal(
    candidate: Candidate, line: LiveLine, *, config: RuntimeConfig, counters: ReconcileCounters
) -> Candidate:
    category = candidate.category
    rate = candidate.window.hit_rate(line.line, candidate.direction)
    window_rate = candidate.window_hit_rate or 0.0
    candidate.live_hit_rate = rate
    candidate.required_hit_rate = category.min_hit_rate
    candidate.risk_tier = config.reconcile.optimal_risk.tier_for(rate)
    candidate.recommendation = (
        f"{candidate.risk_tier} risk - {_pct(rate)} vs actual line, {_pct(window_rate)} L10"
    )
    advance(candidate, CandidateState.VALIDATED, reason="live line attached")
    if window_rate >= category.min_hit_rate:
        return advance(candidate, CandidateState.ACTIVE)
    counters.dropped += 1
    return advance(
        candidate,
        CandidateState.INACTIVE,
        reason=f"L10 hit rate {_pct(window_rate)} below {_pct(category.min_hit_rate)}",
    )


def _legacy(
    candidate: Candidate, line: LiveLine, *, config: RuntimeConfig, counters: ReconcileCounters
) -> Candidate:
    category = candidate.category
    rate = candidate.window.hit_rate(line.line, candidate.direction)
    required = config.reconcile.required_hit_rate(
        floors_name=category.tiered_floors, line=line.line
    )
    candidate.live_hit_rate = rate
    advance(candidate, CandidateState.VALIDATED, reason="live line attached")

    if rate >= required:
        candidate.required_hit_rate = required
        candidate.risk_tier = "LOW"
        candidate.recommendation = f"{_pct(rate)} at actual line (req {_pct(required)})"
        return advance(candidate, CandidateState.ACTIVE)

    if category.keeps_direction_on_miss:
        candidate.direction = category.direction
        candidate.required_hit_rate = 0.0
        candidate.risk_tier = config.reconcile.pass_through_risk.tier_for(rate)
        candidate.recommendation = f"{candidate.risk_tier} risk - {_pct(rate)} L10 at {line.line}"
        return advance(candidate, CandidateState.ACTIVE)

    candidate.required_hit_rate = required
    counters.dropped += 1
    return advance(
        candidate,
        CandidateState.INACTIVE,
        reason=f"hit rate {_pct(rate)} below {_pct(required)} at actual line {line.line}",
    )


def reconcile(
    candidate: Candidate,
    line: LiveLine | None,
    *,
    config: RuntimeConfig,
    counters: ReconcileCounters,
) -> Candidate:
    """Attach the live line to `candidate` and settle it to ACTIVE or INACTIVE."""
    try:
        live = _require_line(candidate, line)
    except NoUpcomingGameError:
        counters.no_game += 1
        return advance(candidate, CandidateState.INACTIVE, reason=NO_LINE_REASON)

    _attach_line(candidate, live)
    if candidate.state == CandidateState.LINE_PENDING:
        settled = _line_pending(candidate, live, config=config, counters=counters)
    elif candidate.category.family == "optimal":
        settled = _optimal(candidate, live, config=config, counters=counters)
    else:
        settled = _legacy(candidate, live, config=config, counters=counters)

    logger.debug(
        "%s %s %s %s -> %s (%s)",
        settled.category.key,
        settled.player_name,
        settled.direction,
        live.line,
        settled.state,
        settled.risk_tier or settled.eligibility,
    )
    return settled
