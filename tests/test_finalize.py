from __future__ import annotations

from datetime import date
from typing import Any

from sweet_spots.archetypes import Role
from sweet_spots.candidate import Candidate, CandidateState
from sweet_spots.categories import get_category
from sweet_spots.errors import StoreWriteError
from sweet_spots.finalize import deduplicate, group_by_category, persist, rank
from sweet_spots.stats import window_stats

DAY = date(2026, 1, 15)
WINDOW = window_stats([10, 9, 11, 8, 12, 9, 10, 11, 9, 10], min_size=5)


def _candidate(player: str, category_key: str, confidence: float, *, active: bool) -> Candidate:
    category = get_category(category_key)
    return Candidate(
        category=category,
        player_name=player,
        role=Role.ELITE_REBOUNDER,
        window=WINDOW,
        analysis_date=DAY,
        direction=category.direction,
        confidence=confidence,
        state=CandidateState.ACTIVE if active else CandidateState.INACTIVE,
    )


class _FakeStore:
    def __init__(self, *, fail_batches: set[int] | None = None, fail_delete: bool = False) -> None:
        self.fail_batches = fail_batches or set()
        self.fail_delete = fail_delete
        self.batches: list[list[dict[str, Any]]] = []

    def delete_candidates(self, analysis_date: date) -> int:
        if self.fail_delete:
            raise StoreWriteError("delete refused")
        return 7

    def insert_candidates(self, rows: list[dict[str, Any]]) -> int:
        index = len(self.batches)
        self.batches.append(rows)
        if index in self.fail_batches:
            raise StoreWriteError("insert refused")
        return len(rows)


def test_deduplicate_prefers_active_then_confidence() -> None:
    inactive_high = _candidate("Big Man", "BIG_REBOUNDER", 0.9, active=False)
    active_low = _candidate("Big Man", "ELITE_REB_OVER", 0.6, active=True)
    other_metric = _candidate("Big Man", "HIGH_ASSIST", 0.5, active=True)

    kept = deduplicate([inactive_high, active_low, other_metric])

    assert kept == [active_low, other_metric]


def test_deduplicate_keeps_earlier_on_exact_tie() -> None:
    first = _candidate("Big Man", "HIGH_REB_UNDER", 0.9, active=True)
    second = _candidate("Big Man Jr", "BIG_REBOUNDER", 0.9, active=True)

    assert deduplicate([first, second]) == [first]


def test_rank_puts_active_first_by_confidence() -> None:
    a = _candidate("A", "ELITE_REB_OVER", 0.6, active=True)
    b = _candidate("B", "ELITE_REB_OVER", 0.9, active=False)
    c = _candidate("C", "ELITE_REB_OVER", 0.8, active=True)

    assert rank([a, b, c]) == [c, a, b]
    assert list(group_by_category([c, a])) == ["ELITE_REB_OVER"]


def test_persist_counts_failed_batches() -> None:
    candidates = [_candidate(f"P{i}", "ELITE_REB_OVER", 0.7, active=True) for i in range(250)]
    store = _FakeStore(fail_batches={1})

    summary = persist(store, DAY, candidates, batch_size=100)

    assert summary == {
        "deleted": 7,
        "inserted": 150,
        "batches": 3,
        "failed_batches": 1,
        "failed_rows": 100,
    }
    assert [len(batch) for batch in store.batches] == [100, 100, 50]


def test_persist_aborts_when_delete_fails() -> None:
    store = _FakeStore(fail_delete=True)

    summary = persist(store, DAY, [_candidate("A", "ELITE_REB_OVER", 0.7, active=True)])

    assert summary["failed_rows"] == 1
    assert summary["inserted"] == 0
    assert store.batches == []
