from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from sweet_spots.archetypes import Role, check_role
from sweet_spots.candidate import Candidate, CandidateState, EligibilityPath
from sweet_spots.categories import Category, get_category
from sweet_spots.evaluator import evaluate
from sweet_spots.reconcile import NO_LINE_REASON, ReconcileCounters, reconcile
from sweet_spots.records import LiveLine
from sweet_spots.runtime_config import RuntimeConfig
from sweet_spots.stats import window_stats

CONFIG = RuntimeConfig()
STEADY = [10, 9, 11, 8, 12, 9, 10, 11, 9, 10]


def _screened(values: list[float], category: Category, role: Role = Role.ELITE_REBOUNDER):
    outcome = evaluate(
        player_name="Big Man",
        window=window_stats(values, min_size=5),
        category=category,
        archetype=check_role(role, category),
        role=role,
        analysis_date=date(2026, 1, 15),
    )
    assert outcome.candidate is not None
    return outcome.candidate


def _line(value: float, **kwargs) -> LiveLine:
    return LiveLine.model_validate(
        {"player_name": "Big Man", "prop_type": "player_rebounds", "line": value, **kwargs}
    )


def _reconcile(candidate: Candidate, line: LiveLine | None) -> tuple[Candidate, ReconcileCounters]:
    counters = ReconcileCounters()
    return reconcile(candidate, line, config=CONFIG, counters=counters), counters


def test_optimal_family_keeps_window_gate_and_grades_risk_on_live_line() -> None:
    candidate = _screened(STEADY, get_category("ELITE_REB_OVER"))

    settled, counters = _reconcile(candidate, _line(10.5, bookmaker="fanduel", over_price=-115))

    assert settled.state == CandidateState.ACTIVE
    assert settled.live_line == 10.5
    assert settled.live_hit_rate == pytest.approx(0.3)
    assert settled.risk_tier == "HIGH"
    assert settled.bookmaker == "fanduel"
    assert settled.over_price == -115
    assert settled.line_difference == 1.0
    assert counters.dropped == 0


def test_legacy_big_stat_keeps_over_with_risk_tier_on_miss() -> None:
    category = replace(get_category("BIG_REBOUNDER"), thresholds=(9.5,), min_hit_rate=0.55)
    candidate = _screened(STEADY, category)
    assert candidate.threshold == 9.5

    settled, counters = _reconcile(candidate, _line(10.5))

    assert settled.state == CandidateState.ACTIVE
    assert settled.direction == "over"
    assert settled.live_hit_rate == pytest.approx(0.3)
    assert settled.risk_tier == "HIGH"
    assert settled.required_hit_rate == 0.0
    assert counters.dropped == 0


def test_legacy_passes_with_tiered_floor() -> None:
    category = replace(get_category("BIG_REBOUNDER"), thresholds=(9.5,), min_hit_rate=0.55)
    candidate = _screened(STEADY, category)

    settled, _ = _reconcile(candidate, _line(8.5))

    assert settled.state == CandidateState.ACTIVE
    assert settled.live_hit_rate == pytest.approx(0.9)
    assert settled.required_hit_rate == 0.65
    assert settled.risk_tier == "LOW"


def test_legacy_without_pass_through_is_dropped() -> None:
    category = replace(
        get_category("BIG_REBOUNDER"),
        thresholds=(9.5,),
        min_hit_rate=0.55,
        keeps_direction_on_miss=False,
    )
    candidate = _screened(STEADY, category)

    settled, counters = _reconcile(candidate, _line(10.5))

    assert settled.state == CandidateState.INACTIVE
    assert counters.dropped == 1
    assert "below" in (settled.inactive_reason or "")


def test_missing_line_marks_inactive_and_counts_no_game() -> None:
    candidate = _screened(STEADY, get_category("ELITE_REB_OVER"))

    settled, counters = _reconcile(candidate, None)

    assert settled.state == CandidateState.INACTIVE
    assert settled.inactive_reason == NO_LINE_REASON
    assert counters.no_game == 1


def test_line_pending_outside_line_range_is_inactive() -> None:
    candidate = _screened([8, 9, 10, 7, 8, 9, 10, 8, 9, 7], get_category("BIG_REBOUNDER"))

    settled, counters = _reconcile(candidate, _line(7.5))

    assert settled.state == CandidateState.INACTIVE
    assert "outside line range" in (settled.inactive_reason or "")
    assert counters.line_eligible == 0


def test_line_pending_becomes_line_eligible_with_risk_tier() -> None:
    candidate = _screened([8, 9, 10, 7, 8, 9, 10, 8, 9, 7], get_category("BIG_REBOUNDER"))

    settled, counters = _reconcile(candidate, _line(9.5))

    assert settled.state == CandidateState.ACTIVE
    assert settled.eligibility == EligibilityPath.LINE_ELIGIBLE
    assert settled.threshold == 9.5
    assert settled.live_hit_rate == pytest.approx(0.2)
    assert settled.risk_tier == "EXTREME"
    assert settled.confidence == pytest.approx(0.46)
    assert counters.line_eligible == 1


def test_line_pending_bounce_back_over() -> None:
    candidate = _screened([10, 10, 4, 5, 6, 7, 8, 6, 7, 7], get_category("BIG_REBOUNDER"))
    candidate.season_avg = 10.0

    settled, counters = _reconcile(candidate, _line(9.5))

    assert settled.state == CandidateState.ACTIVE
    assert settled.eligibility == EligibilityPath.BOUNCE_BACK
    assert settled.direction == "over"
    assert settled.threshold == 9.5
    assert settled.required_hit_rate == 0.20
    assert settled.bounce_back_score == pytest.approx(1.627, abs=1e-3)
    assert settled.confidence == pytest.approx(0.770, abs=1e-3)
    assert counters.bounce_back == 1
    assert counters.line_eligible == 0
